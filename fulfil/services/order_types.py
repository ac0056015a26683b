# fulfil/services/order_types.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Tuple

from fulfil.services.geo import Coordinates


@dataclass(frozen=True)
class WarehouseSnapshot:
    """仓库库存快照（未加锁 = 参考值；加锁 = 提交依据）。"""

    id: int
    name: str
    location: Coordinates
    stock: int


@dataclass(frozen=True)
class Allocation:
    warehouse_id: int
    warehouse_name: str
    quantity: int
    distance_km: float
    shipping_cost: float


@dataclass(frozen=True)
class PriceBreakdown:
    quantity: int
    subtotal: float
    discount: float
    discount_amount: float
    shipping_cost: float
    total: float
    # subtotal - discount_amount
    order_amount: float
    # order_amount * max_shipping_fraction
    shipping_cap: float


@dataclass(frozen=True)
class OrderCalculation:
    quantity: int
    subtotal: float = 0.0
    discount: float = 0.0
    discount_amount: float = 0.0
    shipping_cost: float = 0.0
    total: float = 0.0
    allocations: Tuple[Allocation, ...] = field(default_factory=tuple)
    is_valid: bool = False
    invalid_reason: Optional[str] = None
    # 机读失败码（insufficient_stock / allocation_failed / shipping_cap_exceeded / invalid_input /
    # transaction_conflict / snapshot_unavailable）
    invalid_code: Optional[str] = None

    @classmethod
    def rejected(cls, quantity: int, *, code: str, reason: str) -> "OrderCalculation":
        return cls(quantity=quantity, is_valid=False, invalid_code=code, invalid_reason=reason)

    @property
    def allocated_quantity(self) -> int:
        return sum(a.quantity for a in self.allocations)


@dataclass(frozen=True)
class CommitResult:
    order_id: int
    order_number: str
    calculation: OrderCalculation
