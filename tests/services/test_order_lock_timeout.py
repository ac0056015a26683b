import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool

from fulfil.core.config import OrderingConfig
from fulfil.db.engine import create_async_engine_safe, is_sqlite
from fulfil.models.order import Order
from fulfil.models.warehouse import Warehouse
from fulfil.services.order_errors import InsufficientStock, TransactionConflict
from fulfil.services.order_service import OrderService
from fulfil.services.warehouse_repo import WarehouseRepo

LONDON = {"latitude": 51.5074, "longitude": -0.1278}
SHORT_LOCK_TIMEOUT_MS = 200


@pytest.mark.asyncio
async def test_commit_lock_timeout_is_conflict_and_rolls_back(
    database_url, async_session_maker, seed
):
    """别的事务一直持有仓库锁：提交在锁超时后以 TransactionConflict 失败，库存不动。"""
    (wid,) = await seed([{"name": "Paris", "latitude": 49.009722, "longitude": 2.547778, "stock": 10}])

    fast_engine = create_async_engine_safe(
        database_url,
        lock_timeout_ms=SHORT_LOCK_TIMEOUT_MS,
        poolclass=NullPool,
    )
    fast_maker = async_sessionmaker(fast_engine, class_=AsyncSession, expire_on_commit=False)
    svc = OrderService(fast_maker, OrderingConfig(), lock_timeout_ms=SHORT_LOCK_TIMEOUT_MS)

    holder = async_session_maker()
    try:
        # SQLite: BEGIN IMMEDIATE 拿库级写锁；PG: FOR UPDATE 行锁
        await WarehouseRepo().lock_and_read(holder)

        with pytest.raises(TransactionConflict) as ei:
            await svc.commit(5, LONDON)
        assert ei.value.http_status == 503

        if is_sqlite(database_url):
            calc = await svc.verify(5, LONDON)
            assert calc.is_valid is False
            assert calc.invalid_code == "transaction_conflict"
    finally:
        await holder.rollback()
        await holder.close()
        await fast_engine.dispose()

    async with async_session_maker() as s:
        stock = await s.scalar(select(Warehouse.stock).where(Warehouse.id == wid))
        orders = (await s.execute(select(Order.id))).scalars().all()
        await s.rollback()
    assert stock == 10
    assert orders == []


@pytest.mark.asyncio
async def test_guarded_decrement_refuses_to_oversell(async_session_maker, seed):
    (wid,) = await seed([{"name": "Paris", "latitude": 49.009722, "longitude": 2.547778, "stock": 10}])
    repo = WarehouseRepo()

    async with async_session_maker() as s:
        with pytest.raises(InsufficientStock) as ei:
            await repo.decrement_stock(s, wid, 11)
        await s.rollback()
    assert ei.value.context == {"requested": 11, "available": 10, "shortfall": 1}

    async with async_session_maker() as s:
        left = await repo.decrement_stock(s, wid, 4)
        await s.commit()
    assert left == 6

    async with async_session_maker() as s:
        stock = await s.scalar(select(Warehouse.stock).where(Warehouse.id == wid))
        await s.rollback()
    assert stock == 6


@pytest.mark.asyncio
async def test_decrement_rejects_non_positive_amount(async_session_maker, seed):
    (wid,) = await seed([{"name": "Paris", "latitude": 49.009722, "longitude": 2.547778, "stock": 10}])
    async with async_session_maker() as s:
        with pytest.raises(ValueError):
            await WarehouseRepo().decrement_stock(s, wid, 0)
