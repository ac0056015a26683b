# fulfil/api/routers/orders_routes.py
from __future__ import annotations

from fastapi import APIRouter, Body, Depends, Path, status

from fulfil.api.deps import get_order_service
from fulfil.api.routers.orders_mappers import (
    calculation_out,
    commit_out,
    order_detail_out,
    warehouse_out,
)
from fulfil.api.routers.orders_schemas import (
    CreateOrderResponse,
    OrderDetailResponse,
    OrderRequestIn,
    VerifyOrderResponse,
    WarehousesResponse,
)
from fulfil.services.geo import Coordinates
from fulfil.services.order_service import OrderService


def _destination(body: OrderRequestIn) -> Coordinates:
    return Coordinates(
        latitude=body.shippingAddress.latitude,
        longitude=body.shippingAddress.longitude,
    )


def register(router: APIRouter) -> None:
    @router.post(
        "/verify",
        response_model=VerifyOrderResponse,
        summary="Verify an order without submitting",
    )
    async def verify_order(
        body: OrderRequestIn = Body(...),
        svc: OrderService = Depends(get_order_service),
    ) -> VerifyOrderResponse:
        """
        报价：计算分仓、运费、折扣与总价，不落库、不扣库存。

        - 库存不足 / 运费超上限时 isValid=false + invalidReason（仍返回 200）
        """
        calc = await svc.verify(body.quantity, _destination(body))
        return VerifyOrderResponse(data=calculation_out(calc))

    @router.post(
        "",
        response_model=CreateOrderResponse,
        status_code=status.HTTP_201_CREATED,
        summary="Create and submit an order",
    )
    async def create_order(
        body: OrderRequestIn = Body(...),
        svc: OrderService = Depends(get_order_service),
    ) -> CreateOrderResponse:
        """
        下单：锁仓 -> 锁内重算 -> 落单 + 扣库存（单事务）。

        - 库存不足 / 分配失败 -> 409
        - 运费超上限 -> 422
        - 锁冲突 -> 503（retryable，可用新请求整体重试）
        """
        result = await svc.commit(body.quantity, _destination(body))
        return CreateOrderResponse(data=commit_out(result))

    @router.get(
        "/warehouses/list",
        response_model=WarehousesResponse,
        summary="Get all warehouses",
    )
    async def list_warehouses(
        svc: OrderService = Depends(get_order_service),
    ) -> WarehousesResponse:
        rows = await svc.list_warehouses()
        return WarehousesResponse(data=[warehouse_out(w) for w in rows])

    @router.get(
        "/by-id/{order_id}",
        response_model=OrderDetailResponse,
        summary="Get order details by id",
    )
    async def get_order_by_id(
        order_id: int = Path(..., ge=1),
        svc: OrderService = Depends(get_order_service),
    ) -> OrderDetailResponse:
        order = await svc.get_order_by_id(order_id)
        return OrderDetailResponse(data=order_detail_out(order))

    @router.get(
        "/{order_number}",
        response_model=OrderDetailResponse,
        summary="Get order details by order number",
    )
    async def get_order_by_number(
        order_number: str = Path(..., min_length=1, description="e.g. ORD-20240101120000-1A2B3C4D"),
        svc: OrderService = Depends(get_order_service),
    ) -> OrderDetailResponse:
        order = await svc.get_order_by_number(order_number)
        return OrderDetailResponse(data=order_detail_out(order))
