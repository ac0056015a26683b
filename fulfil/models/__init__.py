# fulfil/models/__init__.py
"""
统一导出 ORM 模型。
"""

from fulfil.models.order import ORDER_STATUS_COMPLETED, Order
from fulfil.models.order_allocation import OrderAllocation
from fulfil.models.warehouse import Warehouse

__all__ = ["Order", "OrderAllocation", "Warehouse", "ORDER_STATUS_COMPLETED"]
