import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import ProgrammingError

from fulfil.core.config import OrderingConfig
from fulfil.models.order import Order
from fulfil.models.warehouse import Warehouse
from fulfil.services.geo import Coordinates
from fulfil.services.order_errors import AllocationFailed
from fulfil.services.order_service import SNAPSHOT_UNAVAILABLE, OrderService
from fulfil.services.order_types import WarehouseSnapshot
from fulfil.services.warehouse_repo import WarehouseRepo

LONDON = {"latitude": 51.5074, "longitude": -0.1278}
NEW_YORK = Coordinates(40.7128, -74.0060)


async def _stock_by_name(session):
    rows = (await session.execute(select(Warehouse.name, Warehouse.stock))).all()
    # 结束读事务：SQLite 下每个事务都持有写锁
    await session.rollback()
    return {name: stock for name, stock in rows}


@pytest.mark.asyncio
async def test_verify_prices_nearest_warehouse(order_service, reference_warehouses):
    calc = await order_service.verify(50, LONDON)

    assert calc.is_valid is True
    assert calc.invalid_reason is None
    assert [a.warehouse_name for a in calc.allocations] == ["Paris"]
    assert calc.allocated_quantity == 50

    assert calc.subtotal == 7500
    assert calc.discount == 0.10
    assert calc.discount_amount == pytest.approx(750)
    assert calc.total == pytest.approx(7500 - 750 + calc.shipping_cost)
    # 巴黎 -> 伦敦 ~344 km：50 * 0.365 * 0.01 * 344 ~ 62.8
    assert 55 < calc.shipping_cost < 70


@pytest.mark.asyncio
async def test_verify_is_idempotent_and_side_effect_free(order_service, reference_warehouses, session):
    before = await _stock_by_name(session)

    first = await order_service.verify(300, NEW_YORK)
    second = await order_service.verify(300, NEW_YORK)

    assert first == second
    assert first.is_valid is True
    assert sum(a.quantity for a in first.allocations) == 300

    assert await _stock_by_name(session) == before
    assert (await session.scalar(select(func.count()).select_from(Order))) == 0
    await session.rollback()


@pytest.mark.asyncio
async def test_verify_insufficient_total_stock(order_service, reference_warehouses):
    calc = await order_service.verify(10_000, LONDON)

    assert calc.is_valid is False
    assert calc.invalid_code == "insufficient_stock"
    assert calc.invalid_reason == "Insufficient stock available"
    assert calc.allocations == ()


@pytest.mark.asyncio
async def test_verify_shipping_cap_exceeded_keeps_breakdown(order_service, seed):
    await seed([{"name": "Hong Kong", "latitude": 22.308889, "longitude": 113.914444, "stock": 100}])

    calc = await order_service.verify(1, NEW_YORK)

    assert calc.is_valid is False
    assert calc.invalid_code == "shipping_cap_exceeded"
    assert calc.invalid_reason.startswith("Shipping cost ($")
    assert "exceeds 15% of order amount ($22.50)" in calc.invalid_reason
    # 报价明细仍然返回，便于前端展示
    assert calc.subtotal == 150
    assert len(calc.allocations) == 1
    assert calc.shipping_cost > 22.5


@pytest.mark.asyncio
async def test_verify_skips_empty_warehouses(order_service, seed):
    await seed(
        [
            {"name": "Near", "latitude": 51.0, "longitude": 0.0, "stock": 0},
            {"name": "Paris", "latitude": 49.009722, "longitude": 2.547778, "stock": 10},
        ]
    )
    calc = await order_service.verify(5, LONDON)

    assert calc.is_valid is True
    assert [a.warehouse_name for a in calc.allocations] == ["Paris"]


@pytest.mark.asyncio
@pytest.mark.parametrize("qty", [0, -3, True, "5", 2.5])
async def test_verify_rejects_bad_quantity(order_service, qty):
    calc = await order_service.verify(qty, LONDON)
    assert calc.is_valid is False
    assert calc.invalid_code == "invalid_input"


@pytest.mark.asyncio
async def test_verify_rejects_bad_destination(order_service):
    calc = await order_service.verify(5, {"latitude": 123.0, "longitude": 0.0})
    assert calc.is_valid is False
    assert calc.invalid_code == "invalid_input"
    assert "latitude" in calc.invalid_reason


@pytest.mark.asyncio
async def test_verify_bool_quantity_reports_zero(order_service):
    calc = await order_service.verify(True, LONDON)
    assert calc.invalid_code == "invalid_input"
    assert calc.quantity == 0
    assert type(calc.quantity) is int


@pytest.mark.asyncio
async def test_verify_bad_stored_coordinates_is_reported(order_service, seed):
    await seed([{"name": "Broken", "latitude": 200.0, "longitude": 0.0, "stock": 10}])

    calc = await order_service.verify(5, LONDON)

    assert calc.is_valid is False
    assert calc.invalid_code == SNAPSHOT_UNAVAILABLE
    assert "latitude out of range" in calc.invalid_reason


class _BrokenWarehouseRepo(WarehouseRepo):
    async def read_all(self, session):
        raise ProgrammingError("SELECT * FROM warehouses", {}, Exception("relation does not exist"))


@pytest.mark.asyncio
async def test_verify_database_error_is_reported(async_session_maker):
    svc = OrderService(async_session_maker, OrderingConfig(), warehouses=_BrokenWarehouseRepo())

    calc = await svc.verify(5, LONDON)

    assert calc.is_valid is False
    assert calc.invalid_code == SNAPSHOT_UNAVAILABLE
    assert calc.invalid_reason == "Stock snapshot unavailable"


@pytest.mark.asyncio
async def test_evaluate_maps_allocator_failure_reason(order_service):
    snapshot = [WarehouseSnapshot(1, "Paris", Coordinates(49.009722, 2.547778), 10)]

    calc, err = order_service.evaluate(snapshot, 0, NEW_YORK)

    assert isinstance(err, AllocationFailed)
    assert err.reason == "invalid_quantity"
    assert err.context["reason"] == "invalid_quantity"
    assert calc.invalid_code == "allocation_failed"
