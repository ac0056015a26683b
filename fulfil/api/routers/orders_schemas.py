# fulfil/api/routers/orders_schemas.py
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ShippingAddressIn(BaseModel):
    model_config = ConfigDict(extra="ignore")

    latitude: float = Field(..., ge=-90, le=90, description="目的地纬度")
    longitude: float = Field(..., ge=-180, le=180, description="目的地经度")


class OrderRequestIn(BaseModel):
    """verify / create 共用请求体。"""

    model_config = ConfigDict(
        extra="ignore",
        json_schema_extra={
            "examples": [
                {"quantity": 50, "shippingAddress": {"latitude": 51.5074, "longitude": -0.1278}},
                {"quantity": 250, "shippingAddress": {"latitude": 40.7128, "longitude": -74.0060}},
            ]
        },
    )

    # strict：拒绝 "5" / 5.0 这类隐式转换
    quantity: int = Field(..., ge=1, strict=True, description="设备数量（正整数）")
    shippingAddress: ShippingAddressIn


class AllocationOut(BaseModel):
    warehouseId: int
    warehouseName: str
    quantity: int = Field(..., gt=0)
    distance: float = Field(..., ge=0, description="仓库到目的地距离（km）")
    shippingCost: float = Field(..., ge=0)


class OrderCalculationOut(BaseModel):
    quantity: int
    subtotal: float
    discount: float = Field(..., ge=0, le=1, description="折扣比例 0..1")
    discountAmount: float
    shippingCost: float
    total: float
    allocations: List[AllocationOut] = Field(default_factory=list)
    isValid: bool
    invalidReason: Optional[str] = None


class VerifyOrderResponse(BaseModel):
    success: bool = True
    data: OrderCalculationOut


class CreateOrderDataOut(BaseModel):
    orderId: int
    orderNumber: str
    quantity: int
    subtotal: float
    discount: float
    discountAmount: float
    shippingCost: float
    total: float
    allocations: List[AllocationOut] = Field(default_factory=list)


class CreateOrderResponse(BaseModel):
    success: bool = True
    data: CreateOrderDataOut


class WarehouseBriefOut(BaseModel):
    id: int
    name: str
    latitude: float
    longitude: float


class WarehouseOut(WarehouseBriefOut):
    stock: int = Field(..., ge=0)


class WarehousesResponse(BaseModel):
    success: bool = True
    data: List[WarehouseOut] = Field(default_factory=list)


class OrderAllocationDetailOut(BaseModel):
    id: int
    orderId: int
    warehouseId: int
    quantity: int
    distance: float
    shippingCost: float
    warehouse: WarehouseBriefOut


class OrderDetailOut(BaseModel):
    id: int
    orderNumber: str
    quantity: int
    shippingLatitude: float
    shippingLongitude: float
    subtotal: float
    discount: float
    discountAmount: float
    shippingCost: float
    total: float
    status: str
    createdAt: datetime
    updatedAt: datetime
    allocations: List[OrderAllocationDetailOut] = Field(default_factory=list)


class OrderDetailResponse(BaseModel):
    success: bool = True
    data: OrderDetailOut
