# fulfil/services/warehouse_repo.py
from __future__ import annotations

from typing import List, Optional

from sqlalchemy import select, text, update
from sqlalchemy.ext.asyncio import AsyncSession

from fulfil.models.warehouse import Warehouse
from fulfil.services.geo import Coordinates
from fulfil.services.order_errors import InsufficientStock
from fulfil.services.order_types import WarehouseSnapshot


def _to_snapshot(w: Warehouse) -> WarehouseSnapshot:
    return WarehouseSnapshot(
        id=int(w.id),
        name=str(w.name),
        location=Coordinates(latitude=float(w.latitude), longitude=float(w.longitude)),
        stock=int(w.stock or 0),
    )


class WarehouseRepo:
    """
    仓库存储原语（由外层 UnitOfWork 控事务，本类不 commit）：

    - read_all       : 未加锁快照（参考值，允许过期）
    - lock_and_read  : 事务内 FOR UPDATE 按 name 排序锁全表，返回提交依据快照
    - decrement_stock: 条件扣减，stock 不足则 0 行命中 -> InsufficientStock
    """

    def __init__(self, *, lock_timeout_ms: Optional[int] = None) -> None:
        self.lock_timeout_ms = lock_timeout_ms

    async def read_all(self, session: AsyncSession) -> List[WarehouseSnapshot]:
        rows = (await session.execute(select(Warehouse).order_by(Warehouse.name))).scalars().all()
        return [_to_snapshot(w) for w in rows]

    async def list_models(self, session: AsyncSession) -> List[Warehouse]:
        return list((await session.execute(select(Warehouse).order_by(Warehouse.name))).scalars().all())

    async def lock_and_read(self, session: AsyncSession) -> List[WarehouseSnapshot]:
        bind = session.get_bind()
        if bind.dialect.name == "postgresql" and self.lock_timeout_ms:
            # 只作用于当前事务；超时由 PG 抛 LockNotAvailable
            await session.execute(text(f"SET LOCAL lock_timeout = '{int(self.lock_timeout_ms)}ms'"))

        # 固定锁序（name），populate_existing 保证拿到锁后的最新值而不是身份映射里的旧对象
        stmt = (
            select(Warehouse)
            .order_by(Warehouse.name)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        rows = (await session.execute(stmt)).scalars().all()
        return [_to_snapshot(w) for w in rows]

    async def decrement_stock(self, session: AsyncSession, warehouse_id: int, amount: int) -> int:
        """扣减并返回剩余库存。"""
        if amount <= 0:
            raise ValueError(f"decrement amount must be positive, got {amount}")

        stmt = (
            update(Warehouse)
            .where(Warehouse.id == warehouse_id, Warehouse.stock >= amount)
            .values(stock=Warehouse.stock - amount)
            .returning(Warehouse.stock)
            .execution_options(synchronize_session=False)
        )
        left = (await session.execute(stmt)).scalar_one_or_none()
        if left is None:
            current = await session.scalar(select(Warehouse.stock).where(Warehouse.id == warehouse_id))
            raise InsufficientStock(
                requested=amount,
                available=int(current or 0),
                message=f"Warehouse {warehouse_id} cannot cover {amount} units",
            )
        return int(left)
