"""
Background job to purge expired audit logs

Run periodically (e.g. via cron) to delete audit rows past their
retention window.
"""

import asyncio
import sys
from datetime import datetime
from typing import Optional

from sqlalchemy import delete
from sqlmodel.ext.asyncio.session import AsyncSession
import structlog

from travel_crm.core.database import async_session_maker
from travel_crm.models.audit_log import AuditLog

logger = structlog.get_logger(__name__)


async def purge_expired_audit_logs(session: AsyncSession, now: Optional[datetime] = None) -> dict:
    """Delete every audit log whose expires_at has passed"""
    now = now or datetime.utcnow()
    try:
        result = await session.execute(delete(AuditLog).where(AuditLog.expires_at < now))
        await session.commit()
    except Exception as e:
        await session.rollback()
        logger.error("Error purging audit logs", error=str(e))
        raise

    purged = result.rowcount or 0
    if purged:
        logger.info("Purged expired audit logs", purged=purged)
    else:
        logger.info("No expired audit logs found")
    return {"purged": purged}


async def run() -> dict:
    async with async_session_maker() as session:
        return await purge_expired_audit_logs(session)


def main():
    """Main entry point for the purge job"""
    logger.info("Starting audit log purge job")
    try:
        results = asyncio.run(run())
        logger.info("Audit log purge complete", **results)
    except Exception as e:
        logger.error("Fatal error in audit log purge job", error=str(e))
        sys.exit(1)


if __name__ == "__main__":
    main()
