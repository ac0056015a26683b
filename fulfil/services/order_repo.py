# fulfil/services/order_repo.py
from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from fulfil.models.order import ORDER_STATUS_COMPLETED, Order
from fulfil.models.order_allocation import OrderAllocation
from fulfil.services.geo import Coordinates
from fulfil.services.order_types import Allocation, OrderCalculation

_CENT = Decimal("0.01")


def _money(v: float) -> Decimal:
    return Decimal(str(v)).quantize(_CENT, rounding=ROUND_HALF_UP)


class OrderRepo:
    """
    订单落库原语（同样不 commit，由 UnitOfWork 统一提交 / 回滚）。
    """

    async def create_order(
        self,
        session: AsyncSession,
        *,
        order_number: str,
        destination: Coordinates,
        calculation: OrderCalculation,
    ) -> Order:
        order = Order(
            order_number=order_number,
            quantity=calculation.quantity,
            shipping_latitude=destination.latitude,
            shipping_longitude=destination.longitude,
            subtotal=_money(calculation.subtotal),
            discount=Decimal(str(calculation.discount)),
            discount_amount=_money(calculation.discount_amount),
            shipping_cost=_money(calculation.shipping_cost),
            total=_money(calculation.total),
            status=ORDER_STATUS_COMPLETED,
        )
        session.add(order)
        # flush：拿到主键，同时让 order_number 唯一约束在这里就暴露
        await session.flush()
        return order

    async def create_allocation(
        self,
        session: AsyncSession,
        *,
        order_id: int,
        allocation: Allocation,
    ) -> OrderAllocation:
        row = OrderAllocation(
            order_id=order_id,
            warehouse_id=allocation.warehouse_id,
            quantity=allocation.quantity,
            distance_km=allocation.distance_km,
            shipping_cost=_money(allocation.shipping_cost),
        )
        session.add(row)
        await session.flush()
        return row

    async def find_by_number(self, session: AsyncSession, order_number: str) -> Optional[Order]:
        stmt = (
            select(Order)
            .where(Order.order_number == order_number)
            .options(selectinload(Order.allocations).selectinload(OrderAllocation.warehouse))
        )
        return (await session.execute(stmt)).scalar_one_or_none()

    async def find_by_id(self, session: AsyncSession, order_id: int) -> Optional[Order]:
        stmt = (
            select(Order)
            .where(Order.id == order_id)
            .options(selectinload(Order.allocations).selectinload(OrderAllocation.warehouse))
        )
        return (await session.execute(stmt)).scalar_one_or_none()
