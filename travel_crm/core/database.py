"""
Database configuration and session management
"""

from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker
import structlog

from travel_crm.core.config import get_settings

logger = structlog.get_logger(__name__)
settings = get_settings()


def to_async_url(url: str) -> str:
    """Rewrite a plain PostgreSQL URL to the asyncpg driver"""
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return url


# Create async engine
async_engine = create_async_engine(
    to_async_url(settings.DATABASE_URL),
    echo=settings.DEBUG,
    future=True,
)

# Create async session factory
async_session_maker = async_sessionmaker(
    bind=async_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def init_db():
    """Initialize database tables (development only, production uses Alembic)"""
    import travel_crm.models  # noqa: F401 - register table metadata

    async with async_engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    logger.info("Database tables created")


async def get_session():
    """Dependency to get database session"""
    async with async_session_maker() as session:
        yield session
