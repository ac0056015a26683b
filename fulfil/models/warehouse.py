# fulfil/models/warehouse.py
from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Float, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from fulfil.db.base import Base


class Warehouse(Base):
    """
    仓库主档（强契约）：
    - stock >= 0 由 CHECK 约束兜底；业务上只允许下单提交事务扣减
    - name 唯一：加锁顺序按 name，避免并发事务锁序死锁
    """

    __tablename__ = "warehouses"
    __table_args__ = (CheckConstraint("stock >= 0", name="ck_warehouses_stock_non_negative"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)

    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)

    stock: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    def __repr__(self) -> str:
        return f"<Warehouse id={self.id} name={self.name!r} stock={self.stock}>"
