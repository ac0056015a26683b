# fulfil/api/problem.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, TypedDict

from fulfil.services.order_errors import OrderError, TransactionConflict


class ProblemDetail(TypedDict, total=False):
    # 必填
    type: str  # validation|shortage|shipping_cap|state
    # 可选：用于行内定位
    path: str  # e.g. shippingAddress.latitude
    reason: str

    required_qty: int
    available_qty: int
    short_qty: int


@dataclass(frozen=True)
class Problem:
    error_code: str
    message: str
    http_status: int
    context: Optional[Dict[str, Any]] = None
    details: Optional[List[ProblemDetail]] = None
    retryable: bool = False
    trace_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "error_code": self.error_code,
            "message": self.message,
            "http_status": int(self.http_status),
        }
        if self.context:
            out["context"] = self.context
        if self.details:
            out["details"] = self.details
        if self.retryable:
            out["retryable"] = True
        if self.trace_id:
            out["trace_id"] = self.trace_id
        return out


def make_problem(
    *,
    status_code: int,
    error_code: str,
    message: str,
    context: Optional[Dict[str, Any]] = None,
    details: Optional[Sequence[ProblemDetail]] = None,
    retryable: bool = False,
    trace_id: Optional[str] = None,
) -> Dict[str, Any]:
    p = Problem(
        error_code=str(error_code),
        message=str(message),
        http_status=int(status_code),
        context=context,
        details=list(details) if details else None,
        retryable=retryable,
        trace_id=trace_id,
    )
    return p.to_dict()


def _details_for(exc: OrderError) -> List[ProblemDetail]:
    ctx = exc.context
    if "shortfall" in ctx:
        d: ProblemDetail = {"type": "shortage", "reason": exc.code, "short_qty": int(ctx["shortfall"])}
        if "requested" in ctx:
            d["required_qty"] = int(ctx["requested"])
        if "available" in ctx:
            d["available_qty"] = int(ctx["available"])
        return [d]
    if "cap" in ctx:
        return [{"type": "shipping_cap", "reason": exc.code}]
    return [{"type": "state", "reason": exc.code}]


def problem_from_order_error(exc: OrderError) -> Dict[str, Any]:
    """下单领域异常 -> Problem（TransactionConflict 标记可重试）。"""
    return make_problem(
        status_code=exc.http_status,
        error_code=exc.code,
        message=exc.message,
        context=exc.context or None,
        details=_details_for(exc),
        retryable=isinstance(exc, TransactionConflict),
    )
