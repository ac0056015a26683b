# fulfil/services/order_service.py
from __future__ import annotations

import time
from typing import Any, List, Mapping, Optional, Sequence, Tuple, Union

from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from fulfil.core.config import OrderingConfig
from fulfil.core.logging import get_logger
from fulfil.metrics import (
    COMMIT_LATENCY,
    ORDER_NUMBER_COLLISIONS,
    ORDER_REJECTIONS,
    ORDER_VERIFICATIONS,
    ORDERS_COMMITTED,
)
from fulfil.models.order import Order
from fulfil.models.warehouse import Warehouse
from fulfil.services.allocation import AllocationEngine, AllocationFailure, DistanceFn
from fulfil.services.geo import Coordinates, distance_km
from fulfil.services.order_errors import (
    AllocationFailed,
    InsufficientStock,
    InvalidInput,
    NotFound,
    OrderError,
    OrderNumberExhausted,
    OrderRejected,
    ShippingCapExceeded,
    TransactionConflict,
)
from fulfil.services.order_number import OrderNumberFactory, generate_order_number
from fulfil.services.order_repo import OrderRepo
from fulfil.services.order_types import CommitResult, OrderCalculation, WarehouseSnapshot
from fulfil.services.pricing import PricingEngine
from fulfil.services.uow import UnitOfWork
from fulfil.services.warehouse_repo import WarehouseRepo

log = get_logger("orders")

DestinationLike = Union[Coordinates, Mapping[str, Any], Tuple[float, float]]

# verify 读快照失败（非锁冲突）时的失败码
SNAPSHOT_UNAVAILABLE = "snapshot_unavailable"


def _as_destination(value: DestinationLike) -> Coordinates:
    if isinstance(value, Coordinates):
        return value
    if isinstance(value, Mapping):
        try:
            return Coordinates(latitude=value["latitude"], longitude=value["longitude"])
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidInput(f"Invalid shipping address: {e}") from e
    if isinstance(value, (tuple, list)) and len(value) == 2:
        try:
            return Coordinates(latitude=value[0], longitude=value[1])
        except (TypeError, ValueError) as e:
            raise InvalidInput(f"Invalid shipping address: {e}") from e
    raise InvalidInput("Invalid shipping address")


def _check_quantity(quantity: Any) -> int:
    # bool 是 int 子类，单独排除
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise InvalidInput(
            f"Quantity must be a positive integer (got {quantity!r})",
            context={"quantity": quantity},
        )
    return quantity


class OrderService:
    """
    下单编排器（唯一有副作用的组件）：

    verify  : 未加锁快照 -> 分配 -> 定价 -> 运费上限校验；只读，从不抛业务异常
    commit  : 单事务内 锁仓（按 name）-> 锁内重读 -> 重新分配 / 定价 / 校验
              -> 生成单号 -> 写订单 + 分仓明细 -> 条件扣减库存 -> 提交
              任一步失败整体回滚，库存不动。

    verify 的结果只是报价，绝不复用于 commit。
    """

    MAX_ORDER_NUMBER_ATTEMPTS = 5

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        config: OrderingConfig,
        *,
        distance: DistanceFn = distance_km,
        order_number_factory: OrderNumberFactory = generate_order_number,
        lock_timeout_ms: Optional[int] = None,
        warehouses: Optional[WarehouseRepo] = None,
        orders: Optional[OrderRepo] = None,
    ) -> None:
        self._session_factory = session_factory
        self.config = config
        self.allocator = AllocationEngine(config, distance=distance)
        self.pricing = PricingEngine(config)
        self.warehouses = warehouses or WarehouseRepo(lock_timeout_ms=lock_timeout_ms)
        self.orders = orders or OrderRepo()
        self._order_number_factory = order_number_factory

    # ---------------------------------------------------------------
    # 纯计算：快照 -> OrderCalculation（+ 失败原因）
    # ---------------------------------------------------------------
    def evaluate(
        self,
        snapshot: Sequence[WarehouseSnapshot],
        quantity: int,
        destination: Coordinates,
    ) -> Tuple[OrderCalculation, Optional[OrderRejected]]:
        available = sum(w.stock for w in snapshot)
        if available < quantity:
            err: OrderRejected = InsufficientStock(requested=quantity, available=available)
            return OrderCalculation.rejected(quantity, code=err.code, reason=err.message), err

        result = self.allocator.allocate(snapshot, quantity, destination)
        if isinstance(result, AllocationFailure):
            err = AllocationFailed(result.reason, shortfall=result.shortfall, reason=result.code)
            return OrderCalculation.rejected(quantity, code=err.code, reason=err.message), err

        price = self.pricing.price(quantity, result.allocations)
        cap_ok = self.pricing.is_shipping_valid(price.shipping_cost, price.order_amount)

        cap_err: Optional[OrderRejected] = None
        if not cap_ok:
            cap_err = ShippingCapExceeded(
                self.pricing.describe_cap_violation(price),
                shipping_cost=price.shipping_cost,
                cap=price.shipping_cap,
            )

        calc = OrderCalculation(
            quantity=quantity,
            subtotal=price.subtotal,
            discount=price.discount,
            discount_amount=price.discount_amount,
            shipping_cost=price.shipping_cost,
            total=price.total,
            allocations=result.allocations,
            is_valid=cap_ok,
            invalid_reason=cap_err.message if cap_err else None,
            invalid_code=cap_err.code if cap_err else None,
        )
        return calc, cap_err

    # ---------------------------------------------------------------
    # verify：报价，无副作用
    # ---------------------------------------------------------------
    async def verify(self, quantity: Any, destination: DestinationLike) -> OrderCalculation:
        try:
            qty = _check_quantity(quantity)
            dest = _as_destination(destination)
        except InvalidInput as e:
            ORDER_VERIFICATIONS.labels(valid="false").inc()
            return OrderCalculation.rejected(
                quantity if isinstance(quantity, int) and not isinstance(quantity, bool) else 0,
                code=e.code,
                reason=e.message,
            )

        try:
            async with UnitOfWork(self._session_factory) as uow:
                snapshot = await self.warehouses.read_all(uow.session)
        except OperationalError as e:
            log.warning("verify snapshot read failed: %s", e)
            ORDER_VERIFICATIONS.labels(valid="false").inc()
            return OrderCalculation.rejected(
                qty,
                code=TransactionConflict.code,
                reason="Stock snapshot unavailable, please retry",
            )
        except SQLAlchemyError as e:
            log.error("verify snapshot read error: %s", e)
            ORDER_VERIFICATIONS.labels(valid="false").inc()
            return OrderCalculation.rejected(qty, code=SNAPSHOT_UNAVAILABLE, reason="Stock snapshot unavailable")
        except InvalidInput as e:
            # 库里的仓库坐标不合法
            log.error("verify snapshot has invalid warehouse data: %s", e.message)
            ORDER_VERIFICATIONS.labels(valid="false").inc()
            return OrderCalculation.rejected(
                qty,
                code=SNAPSHOT_UNAVAILABLE,
                reason=f"Stock snapshot unavailable: {e.message}",
            )

        calc, _ = self.evaluate(snapshot, qty, dest)
        ORDER_VERIFICATIONS.labels(valid="true" if calc.is_valid else "false").inc()
        return calc

    # ---------------------------------------------------------------
    # commit：锁内重算 + 落单 + 扣库存（单事务）
    # ---------------------------------------------------------------
    async def commit(self, quantity: Any, destination: DestinationLike) -> CommitResult:
        qty = _check_quantity(quantity)
        dest = _as_destination(destination)

        started = time.perf_counter()
        try:
            async with UnitOfWork(self._session_factory) as uow:
                session = uow.session
                # 锁内快照才是提交依据
                snapshot = await self.warehouses.lock_and_read(session)

                calc, err = self.evaluate(snapshot, qty, dest)
                if err is not None:
                    raise err

                order = await self._create_order_with_unique_number(session, dest, calc)
                for a in calc.allocations:
                    await self.orders.create_allocation(session, order_id=order.id, allocation=a)
                    await self.warehouses.decrement_stock(session, a.warehouse_id, a.quantity)

                result = CommitResult(order_id=int(order.id), order_number=order.order_number, calculation=calc)
        except OrderRejected as e:
            ORDER_REJECTIONS.labels(code=e.code).inc()
            log.info("order rejected: code=%s qty=%s reason=%s", e.code, qty, e.message)
            raise
        except OperationalError as e:
            ORDER_REJECTIONS.labels(code=TransactionConflict.code).inc()
            log.warning("order commit conflict: qty=%s err=%s", qty, e)
            raise TransactionConflict(
                "Stock is being updated by another order, please retry",
                context={"quantity": qty},
            ) from e
        except OrderError as e:
            ORDER_REJECTIONS.labels(code=e.code).inc()
            raise

        COMMIT_LATENCY.observe(time.perf_counter() - started)
        ORDERS_COMMITTED.inc()
        log.info(
            "order committed: %s id=%s qty=%s total=%.2f warehouses=%s",
            result.order_number,
            result.order_id,
            qty,
            calc.total,
            [a.warehouse_id for a in calc.allocations],
        )
        return result

    async def _create_order_with_unique_number(
        self,
        session: AsyncSession,
        destination: Coordinates,
        calc: OrderCalculation,
    ) -> Order:
        for attempt in range(1, self.MAX_ORDER_NUMBER_ATTEMPTS + 1):
            number = self._order_number_factory()
            try:
                # SAVEPOINT：撞号只回滚这一次插入，不丢掉外层的行锁
                async with session.begin_nested():
                    return await self.orders.create_order(
                        session,
                        order_number=number,
                        destination=destination,
                        calculation=calc,
                    )
            except IntegrityError as e:
                if "order_number" not in str(getattr(e, "orig", e)).lower():
                    raise
                ORDER_NUMBER_COLLISIONS.inc()
                log.warning(
                    "order_number collision: %s (attempt %d/%d)",
                    number,
                    attempt,
                    self.MAX_ORDER_NUMBER_ATTEMPTS,
                )

        raise OrderNumberExhausted(
            f"Could not generate a unique order number after {self.MAX_ORDER_NUMBER_ATTEMPTS} attempts"
        )

    # ---------------------------------------------------------------
    # 查询
    # ---------------------------------------------------------------
    async def get_order_by_number(self, order_number: str) -> Order:
        async with UnitOfWork(self._session_factory) as uow:
            order = await self.orders.find_by_number(uow.session, order_number)
        if order is None:
            raise NotFound("Order not found", context={"order_number": order_number})
        return order

    async def get_order_by_id(self, order_id: int) -> Order:
        async with UnitOfWork(self._session_factory) as uow:
            order = await self.orders.find_by_id(uow.session, order_id)
        if order is None:
            raise NotFound("Order not found", context={"order_id": order_id})
        return order

    async def list_warehouses(self) -> List[Warehouse]:
        async with UnitOfWork(self._session_factory) as uow:
            return await self.warehouses.list_models(uow.session)
