"""
Travel CRM - Main Application Entry Point
Multi-tenant travel agency CRM backend
"""

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import structlog

from travel_crm.core.cache import RedisSessionCache, get_session_cache
from travel_crm.core.config import get_settings
from travel_crm.core.database import async_session_maker
from travel_crm.core.errors import AppError
from travel_crm.services.audit import AuditMiddleware, AuditRecorder
from travel_crm.api import (
    auth, tenants, agents, customers, suppliers, itineraries,
    quotes, bookings, assignments, expenses, audit_logs
)

# Configure structured logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.JSONRenderer()
    ],
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
)

logger = structlog.get_logger(__name__)
settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    # Startup
    logger.info("Initializing Travel CRM backend", environment=settings.ENVIRONMENT)
    # Tables are created by Alembic migrations, not auto-generated
    logger.info("Database managed by Alembic migrations")

    yield

    # Shutdown
    await app.state.audit_recorder.drain()
    cache = get_session_cache()
    if isinstance(cache, RedisSessionCache):
        await cache.close()
    logger.info("Shutting down Travel CRM backend")


# Create FastAPI application
app = FastAPI(
    title="Travel CRM API",
    description="Multi-tenant travel agency CRM with quote, booking and expense lifecycles",
    version="1.0.0",
    lifespan=lifespan,
)
app.state.audit_recorder = AuditRecorder(async_session_maker)

# Configure middleware stack (last added runs first)
app.add_middleware(AuditMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["*"],
)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error("Request failed", path=request.url.path, code=exc.code, error=exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "success": False,
            "message": "Invalid request",
            "code": "VALIDATION_ERROR",
            "details": {"errors": jsonable_encoder(exc.errors())},
        },
    )


# Include routers
prefix = settings.API_V1_PREFIX
app.include_router(auth.router, prefix=f"{prefix}/auth", tags=["auth"])
app.include_router(tenants.router, prefix=f"{prefix}/tenants", tags=["tenants"])
app.include_router(agents.router, prefix=f"{prefix}/agents", tags=["agents"])
app.include_router(customers.router, prefix=f"{prefix}/customers", tags=["customers"])
app.include_router(suppliers.router, prefix=f"{prefix}/suppliers", tags=["suppliers"])
app.include_router(itineraries.router, prefix=f"{prefix}/itineraries", tags=["itineraries"])
app.include_router(quotes.router, prefix=f"{prefix}/quotes", tags=["quotes"])
app.include_router(bookings.router, prefix=f"{prefix}/bookings", tags=["bookings"])
app.include_router(assignments.router, prefix=f"{prefix}/assignments", tags=["assignments"])
app.include_router(expenses.router, prefix=f"{prefix}/expenses", tags=["expenses"])
app.include_router(audit_logs.router, prefix=f"{prefix}/audit-logs", tags=["audit"])


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "service": "travel-crm-api"}


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "Travel CRM API",
        "version": "1.0.0",
        "docs": "/docs",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "travel_crm.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.ENVIRONMENT == "development",
        log_level="info",
    )
