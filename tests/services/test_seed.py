import pytest
from sqlalchemy import select, update

from fulfil.models.warehouse import Warehouse
from fulfil.seed import WAREHOUSES, seed_warehouses


@pytest.mark.asyncio
async def test_seed_is_idempotent_by_name(async_session_maker):
    async with async_session_maker() as s:
        await seed_warehouses(s)
        await s.commit()
    async with async_session_maker() as s:
        await seed_warehouses(s)
        await s.commit()

    async with async_session_maker() as s:
        rows = (await s.execute(select(Warehouse))).scalars().all()
        await s.rollback()

    assert len(rows) == len(WAREHOUSES) == 6
    assert {w.name: w.stock for w in rows} == {r["name"]: r["stock"] for r in WAREHOUSES}


@pytest.mark.asyncio
async def test_seed_keep_stock(async_session_maker):
    async with async_session_maker() as s:
        await seed_warehouses(s)
        await s.execute(update(Warehouse).where(Warehouse.name == "Paris").values(stock=1))
        await s.commit()

    async with async_session_maker() as s:
        await seed_warehouses(s, reset_stock=False)
        await s.commit()
    async with async_session_maker() as s:
        paris = await s.scalar(select(Warehouse.stock).where(Warehouse.name == "Paris"))
        await s.rollback()
    assert paris == 1

    async with async_session_maker() as s:
        await seed_warehouses(s)
        await s.commit()
    async with async_session_maker() as s:
        paris = await s.scalar(select(Warehouse.stock).where(Warehouse.name == "Paris"))
        await s.rollback()
    assert paris == 694
