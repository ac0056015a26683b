# fulfil/api/routers/orders.py
from __future__ import annotations

from fastapi import APIRouter

from fulfil.api.routers import orders_routes
from fulfil.api.routers.orders_schemas import (
    CreateOrderResponse,
    OrderDetailResponse,
    OrderRequestIn,
    VerifyOrderResponse,
    WarehousesResponse,
)

router = APIRouter(prefix="/api/orders", tags=["orders"])


def _register_all_routes() -> None:
    orders_routes.register(router)


_register_all_routes()

__all__ = [
    "router",
    "OrderRequestIn",
    "VerifyOrderResponse",
    "CreateOrderResponse",
    "OrderDetailResponse",
    "WarehousesResponse",
]
