# fulfil/services/order_errors.py
from __future__ import annotations

from typing import Any, Dict, Optional


class OrderError(Exception):
    """
    下单链路统一异常基类：
    - code        : 机读错误码（Problem.error_code）
    - http_status : API 层映射的状态码
    - context     : 附加上下文（shortfall / cap 等），原样进入 Problem.context
    """

    code = "order_error"
    http_status = 400

    def __init__(self, message: str, *, context: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = dict(context or {})


class InvalidInput(OrderError):
    code = "invalid_input"
    http_status = 422


class OrderRejected(OrderError):
    """调用方问题（库存 / 运费上限），不自动重试。"""

    code = "order_rejected"
    http_status = 409


class InsufficientStock(OrderRejected):
    code = "insufficient_stock"

    def __init__(self, *, requested: int, available: int, message: Optional[str] = None) -> None:
        shortfall = max(0, int(requested) - int(available))
        super().__init__(
            message or "Insufficient stock available",
            context={
                "requested": int(requested),
                "available": int(available),
                "shortfall": shortfall,
            },
        )
        self.requested = int(requested)
        self.available = int(available)
        self.shortfall = shortfall


class AllocationFailed(OrderRejected):
    code = "allocation_failed"

    def __init__(self, message: str, *, shortfall: int = 0, reason: str = "insufficient_stock") -> None:
        # reason：分配器给出的失败码（insufficient_stock / invalid_quantity）
        super().__init__(message, context={"shortfall": int(shortfall), "reason": reason})
        self.shortfall = int(shortfall)
        self.reason = reason


class ShippingCapExceeded(OrderRejected):
    code = "shipping_cap_exceeded"
    http_status = 422

    def __init__(self, message: str, *, shipping_cost: float, cap: float) -> None:
        super().__init__(
            message,
            context={"shipping_cost": round(shipping_cost, 2), "cap": round(cap, 2)},
        )
        self.shipping_cost = shipping_cost
        self.cap = cap


class TransactionConflict(OrderError):
    """锁等待超时 / 序列化失败：基础设施问题，调用方可用新快照整体重试。"""

    code = "transaction_conflict"
    http_status = 503


class OrderNumberExhausted(OrderError):
    code = "order_number_exhausted"
    http_status = 500


class NotFound(OrderError):
    code = "not_found"
    http_status = 404
