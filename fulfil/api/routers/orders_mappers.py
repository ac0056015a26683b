# fulfil/api/routers/orders_mappers.py
from __future__ import annotations

from fulfil.api.routers.orders_schemas import (
    AllocationOut,
    CreateOrderDataOut,
    OrderAllocationDetailOut,
    OrderCalculationOut,
    OrderDetailOut,
    WarehouseBriefOut,
    WarehouseOut,
)
from fulfil.models.order import Order
from fulfil.models.warehouse import Warehouse
from fulfil.services.order_types import Allocation, CommitResult, OrderCalculation


def allocation_out(a: Allocation) -> AllocationOut:
    return AllocationOut(
        warehouseId=a.warehouse_id,
        warehouseName=a.warehouse_name,
        quantity=a.quantity,
        distance=a.distance_km,
        shippingCost=a.shipping_cost,
    )


def calculation_out(c: OrderCalculation) -> OrderCalculationOut:
    return OrderCalculationOut(
        quantity=c.quantity,
        subtotal=c.subtotal,
        discount=c.discount,
        discountAmount=c.discount_amount,
        shippingCost=c.shipping_cost,
        total=c.total,
        allocations=[allocation_out(a) for a in c.allocations],
        isValid=c.is_valid,
        invalidReason=c.invalid_reason,
    )


def commit_out(r: CommitResult) -> CreateOrderDataOut:
    c = r.calculation
    return CreateOrderDataOut(
        orderId=r.order_id,
        orderNumber=r.order_number,
        quantity=c.quantity,
        subtotal=c.subtotal,
        discount=c.discount,
        discountAmount=c.discount_amount,
        shippingCost=c.shipping_cost,
        total=c.total,
        allocations=[allocation_out(a) for a in c.allocations],
    )


def warehouse_brief_out(w: Warehouse) -> WarehouseBriefOut:
    return WarehouseBriefOut(id=w.id, name=w.name, latitude=w.latitude, longitude=w.longitude)


def warehouse_out(w: Warehouse) -> WarehouseOut:
    return WarehouseOut(
        id=w.id,
        name=w.name,
        latitude=w.latitude,
        longitude=w.longitude,
        stock=int(w.stock or 0),
    )


def order_detail_out(o: Order) -> OrderDetailOut:
    return OrderDetailOut(
        id=o.id,
        orderNumber=o.order_number,
        quantity=o.quantity,
        shippingLatitude=o.shipping_latitude,
        shippingLongitude=o.shipping_longitude,
        subtotal=float(o.subtotal),
        discount=float(o.discount),
        discountAmount=float(o.discount_amount),
        shippingCost=float(o.shipping_cost),
        total=float(o.total),
        status=o.status,
        createdAt=o.created_at,
        updatedAt=o.updated_at,
        allocations=[
            OrderAllocationDetailOut(
                id=a.id,
                orderId=a.order_id,
                warehouseId=a.warehouse_id,
                quantity=a.quantity,
                distance=float(a.distance_km or 0.0),
                shippingCost=float(a.shipping_cost),
                warehouse=warehouse_brief_out(a.warehouse),
            )
            for a in o.allocations
        ],
    )
