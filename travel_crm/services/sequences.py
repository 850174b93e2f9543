"""
Atomic per-tenant document numbering

A row per (tenant, name, year) is seeded if missing and advanced with a
single UPDATE ... RETURNING inside the caller's transaction. Concurrent
creators serialize on that row; a rolled-back transaction hands its number back.
"""

from datetime import datetime
from typing import Optional
import uuid

from sqlalchemy import update
from sqlalchemy.dialects import postgresql, sqlite
from sqlmodel.ext.asyncio.session import AsyncSession

from travel_crm.models.sequence import TenantSequence

QUOTE = ("quote", "Q")
BOOKING = ("booking", "B")
EXPENSE = ("expense", "EXP")

_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


async def next_value(
    session: AsyncSession,
    tenant_id: uuid.UUID,
    name: str,
    year: int,
) -> int:
    insert = _INSERTS[session.bind.dialect.name]
    seed = (
        insert(TenantSequence)
        .values(tenant_id=tenant_id, name=name, year=year, value=0)
        .on_conflict_do_nothing(index_elements=["tenant_id", "name", "year"])
    )
    await session.execute(seed)

    advance = (
        update(TenantSequence)
        .where(
            TenantSequence.tenant_id == tenant_id,
            TenantSequence.name == name,
            TenantSequence.year == year,
        )
        .values(value=TenantSequence.value + 1)
        .returning(TenantSequence.value)
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(advance)
    return result.scalar_one()


async def next_number(
    session: AsyncSession,
    tenant_id: uuid.UUID,
    sequence: tuple,
    year: Optional[int] = None,
) -> str:
    """Formatted number such as Q2024-000001"""
    name, prefix = sequence
    year = year or datetime.utcnow().year
    value = await next_value(session, tenant_id, name, year)
    return f"{prefix}{year}-{value:06d}"
