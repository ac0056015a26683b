# fulfil/metrics.py
from __future__ import annotations

import os
import time

from fastapi import APIRouter
from fastapi.responses import Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
    multiprocess,
)
from starlette.middleware.base import BaseHTTPMiddleware

# ---- 下单业务指标 ----------------------------------------------------------

ORDER_VERIFICATIONS = Counter(
    "fulfil_order_verifications_total",
    "Order verifications (quotes) computed",
    ["valid"],
)
ORDERS_COMMITTED = Counter(
    "fulfil_orders_committed_total",
    "Orders committed (stock decremented)",
)
ORDER_REJECTIONS = Counter(
    "fulfil_order_rejections_total",
    "Order commits rejected or aborted",
    ["code"],
)
ORDER_NUMBER_COLLISIONS = Counter(
    "fulfil_order_number_collisions_total",
    "Order number unique-constraint collisions (retried)",
)
COMMIT_LATENCY = Histogram(
    "fulfil_commit_latency_seconds",
    "Commit transaction latency (lock -> commit)",
)

# ---- HTTP ------------------------------------------------------------------

http_requests_total = Counter("fulfil_http_requests_total", "HTTP requests", ["method", "path", "code"])
http_request_duration = Histogram(
    "fulfil_http_request_duration_seconds", "HTTP request duration seconds", ["method", "path"]
)


class PrometheusMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - start
        # 用路由模板而不是原始路径，避免订单号把 label 撑爆
        route = request.scope.get("route")
        path = getattr(route, "path", None) or "unmatched"
        http_requests_total.labels(request.method, path, str(response.status_code)).inc()
        http_request_duration.labels(request.method, path).observe(elapsed)
        return response


router = APIRouter()


@router.get("/metrics", include_in_schema=False)
def metrics() -> Response:
    """
    单进程直接导出默认 REGISTRY；
    多进程（设置了 PROMETHEUS_MULTIPROC_DIR）时由 MultiProcessCollector 合并各分片。
    """
    if os.environ.get("PROMETHEUS_MULTIPROC_DIR"):
        registry = CollectorRegistry()
        multiprocess.MultiProcessCollector(registry)
        payload = generate_latest(registry)
    else:
        payload = generate_latest(REGISTRY)
    return Response(content=payload, media_type=CONTENT_TYPE_LATEST)
