"""
Audit trail for successful mutating requests

AuditMiddleware wraps every POST/PUT/PATCH/DELETE. After a 2xx response it
hands the entry to AuditRecorder, which persists it from a local task in its
own session. Persistence failures are logged and never reach the client.
"""

from datetime import datetime
from typing import Any, Callable, Dict, Optional, Set, Tuple
import asyncio
import json
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
import structlog

from travel_crm.core.config import get_settings
from travel_crm.core.events import AuditRecorded, EventBus, event_bus
from travel_crm.models.audit_log import AuditLog

logger = structlog.get_logger(__name__)

MUTATING_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})
METHOD_ACTIONS = {"POST": "create", "PUT": "update", "PATCH": "update", "DELETE": "delete"}
SENSITIVE_FIELDS = frozenset({
    "password",
    "current_password",
    "new_password",
    "admin_password",
    "token",
    "access_token",
})
REDACTED = "[REDACTED]"


def redact(value: Any) -> Any:
    if isinstance(value, dict):
        return {
            key: REDACTED if key.lower() in SENSITIVE_FIELDS else redact(item)
            for key, item in value.items()
        }
    if isinstance(value, list):
        return [redact(item) for item in value]
    return value


def parse_body(raw: bytes) -> Any:
    if not raw:
        return None
    try:
        return redact(json.loads(raw))
    except (ValueError, UnicodeDecodeError):
        return {"raw_length": len(raw)}


def _is_uuid(value: str) -> bool:
    try:
        uuid.UUID(value)
    except ValueError:
        return False
    return True


def describe_path(method: str, path: str, prefix: str = "") -> Tuple[str, str, Optional[str]]:
    """(action, resource_type, resource_id) for a request path

    /api/v1/quotes/<id>/send -> ("send", "quotes", "<id>")
    """
    if prefix and path.startswith(prefix):
        path = path[len(prefix):]
    segments = [segment for segment in path.split("/") if segment]
    if not segments:
        return METHOD_ACTIONS.get(method, method.lower()), "root", None

    resource_type = segments[0]
    resource_id = next((segment for segment in segments[1:] if _is_uuid(segment)), None)
    action = METHOD_ACTIONS.get(method, method.lower())
    last = segments[-1]
    if len(segments) > 1 and not _is_uuid(last) and method in ("POST", "PATCH"):
        action = last
    return action, resource_type, resource_id


class AuditRecorder:
    def __init__(
        self,
        session_factory: Callable[[], Any],
        retention_days: Optional[int] = None,
        events: EventBus = event_bus,
    ):
        self.session_factory = session_factory
        self.retention_days = retention_days or get_settings().AUDIT_RETENTION_DAYS
        self.events = events
        self._tasks: Set[asyncio.Task] = set()

    def schedule(self, entry: Dict[str, Any]) -> asyncio.Task:
        task = asyncio.create_task(self.persist(entry))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def persist(self, entry: Dict[str, Any]) -> Optional[AuditLog]:
        try:
            timestamp = entry.get("timestamp") or datetime.utcnow()
            log = AuditLog(
                **{**entry, "timestamp": timestamp},
                expires_at=AuditLog.expiry_for(timestamp, self.retention_days),
            )
            async with self.session_factory() as session:
                session.add(log)
                await session.commit()
        except Exception as e:
            logger.error(
                "Failed to persist audit log",
                action=entry.get("action"),
                resource_type=entry.get("resource_type"),
                resource_id=entry.get("resource_id"),
                error=str(e),
            )
            return None

        await self.events.publish(
            AuditRecorded(log.id, log.tenant_id, log.action, log.resource_type, log.resource_id)
        )
        return log

    async def drain(self) -> None:
        """Wait for pending writes (shutdown and tests)"""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


def build_entry(request: Request, body: bytes, prefix: str) -> Dict[str, Any]:
    action, resource_type, resource_id = describe_path(request.method, request.url.path, prefix)
    state = request.state
    user = getattr(state, "user", None)
    tenant = getattr(state, "tenant", None)
    override = getattr(state, "audit_resource_id", None)

    return {
        "tenant_id": tenant.id if tenant is not None else (user.tenant_id if user is not None else None),
        "user_id": user.id if user is not None else None,
        "role": user.role.value if user is not None else None,
        "action": action,
        "resource_type": resource_type,
        "resource_id": str(override) if override else resource_id,
        "details": {
            "method": request.method,
            "path": request.url.path,
            "body": parse_body(body),
        },
        "ip": request.client.host if request.client else None,
        "user_agent": request.headers.get("user-agent"),
        "timestamp": datetime.utcnow(),
    }


class AuditMiddleware(BaseHTTPMiddleware):
    """Schedules an audit entry for every successful mutating request"""

    async def dispatch(self, request: Request, call_next):
        if request.method not in MUTATING_METHODS:
            return await call_next(request)

        body = await request.body()
        response = await call_next(request)

        if 200 <= response.status_code < 300:
            recorder: Optional[AuditRecorder] = getattr(request.app.state, "audit_recorder", None)
            if recorder is not None:
                try:
                    recorder.schedule(build_entry(request, body, get_settings().API_V1_PREFIX))
                except Exception as e:
                    logger.error("Failed to schedule audit log", path=request.url.path, error=str(e))

        return response
