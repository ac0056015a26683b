# fulfil/services/allocation.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Sequence, Tuple, Union

from fulfil.core.config import OrderingConfig
from fulfil.services.geo import Coordinates, distance_km, shipping_cost
from fulfil.services.order_types import Allocation, WarehouseSnapshot

DistanceFn = Callable[[Coordinates, Coordinates], float]


@dataclass(frozen=True)
class AllocationSuccess:
    allocations: Tuple[Allocation, ...]


@dataclass(frozen=True)
class AllocationFailure:
    code: str  # insufficient_stock / invalid_quantity
    reason: str
    shortfall: int = 0


AllocationResult = Union[AllocationSuccess, AllocationFailure]


@dataclass(frozen=True)
class _Candidate:
    warehouse: WarehouseSnapshot
    distance_km: float
    unit_cost: float


class AllocationEngine:
    """
    多仓分配器（贪心 · 最低运费优先）

    核心思想：
    ------------------------------------------
    • 运费对重量线性 => 每仓单位运费恒定
    • 按单位运费升序（稳定排序，同价保持输入顺序）逐仓取 min(剩余, 库存)
    • 库存为 0 的仓直接剔除
    • 覆盖不了需求量 => 失败，不返回部分分配
    ------------------------------------------

    纯函数：输入是内存快照，不读库、不加锁；加锁由编排层负责。
    """

    def __init__(self, config: OrderingConfig, *, distance: DistanceFn = distance_km) -> None:
        self.config = config
        self._distance = distance

    def unit_cost(self, distance: float) -> float:
        return shipping_cost(distance, self.config.unit_weight_kg, self.config.rate_per_kg_per_km)

    def rank(self, warehouses: Sequence[WarehouseSnapshot], destination: Coordinates) -> List[_Candidate]:
        seq: List[_Candidate] = []
        for wh in warehouses:
            if wh.stock <= 0:
                continue
            d = self._distance(wh.location, destination)
            seq.append(_Candidate(warehouse=wh, distance_km=d, unit_cost=self.unit_cost(d)))

        # list.sort 稳定：同价时保留输入顺序（可复现）
        seq.sort(key=lambda c: c.unit_cost)
        return seq

    def allocate(
        self,
        warehouses: Sequence[WarehouseSnapshot],
        quantity: int,
        destination: Coordinates,
    ) -> AllocationResult:
        if quantity <= 0:
            return AllocationFailure(
                code="invalid_quantity",
                reason=f"Quantity must be at least 1 (got {quantity}).",
            )

        remaining = int(quantity)
        out: List[Allocation] = []

        for c in self.rank(warehouses, destination):
            if remaining == 0:
                break
            take = min(remaining, c.warehouse.stock)
            cost = shipping_cost(
                c.distance_km,
                take * self.config.unit_weight_kg,
                self.config.rate_per_kg_per_km,
            )
            out.append(
                Allocation(
                    warehouse_id=c.warehouse.id,
                    warehouse_name=c.warehouse.name,
                    quantity=take,
                    distance_km=c.distance_km,
                    shipping_cost=cost,
                )
            )
            remaining -= take

        if remaining > 0:
            return AllocationFailure(
                code="insufficient_stock",
                reason=f"Insufficient stock. Need {remaining} more units.",
                shortfall=remaining,
            )

        return AllocationSuccess(allocations=tuple(out))
