"""
Per-tenant document numbering
"""

from travel_crm.services import sequences


async def test_numbers_increment_per_tenant_and_kind(db, world):
    tenant_id = world.tenant.id

    assert await sequences.next_number(db, tenant_id, sequences.QUOTE, year=2026) == "Q2026-000001"
    assert await sequences.next_number(db, tenant_id, sequences.QUOTE, year=2026) == "Q2026-000002"
    assert await sequences.next_number(db, tenant_id, sequences.BOOKING, year=2026) == "B2026-000001"
    assert await sequences.next_number(db, tenant_id, sequences.EXPENSE, year=2026) == "EXP2026-000001"
    assert await sequences.next_number(db, world.other_tenant.id, sequences.QUOTE, year=2026) == "Q2026-000001"
    await db.commit()


async def test_new_year_restarts_sequence(db, world):
    tenant_id = world.tenant.id
    await sequences.next_number(db, tenant_id, sequences.QUOTE, year=2026)
    assert await sequences.next_number(db, tenant_id, sequences.QUOTE, year=2027) == "Q2027-000001"
    await db.commit()


async def test_rolled_back_number_is_reused(db, world):
    tenant_id = world.tenant.id
    await sequences.next_number(db, tenant_id, sequences.BOOKING, year=2026)
    await db.rollback()

    assert await sequences.next_number(db, tenant_id, sequences.BOOKING, year=2026) == "B2026-000001"
    await db.commit()
