# fulfil/services/pricing.py
from __future__ import annotations

from typing import Sequence

from fulfil.core.config import OrderingConfig
from fulfil.services.order_types import Allocation, PriceBreakdown


class PricingEngine:
    """
    定价引擎（纯函数集合，无 I/O）：

    - discount_tier     : 数量 -> 折扣比例（阶梯，下界包含）
    - subtotal          : 数量 * 单价
    - discount_amount   : subtotal * 折扣比例
    - total             : subtotal - 折扣额 + 运费
    - is_shipping_valid : 运费 <= 折后金额 * 上限比例（边界包含）
    - price             : 组合以上，运费 = 各分配运费之和
    """

    def __init__(self, config: OrderingConfig) -> None:
        self.config = config

    def discount_tier(self, quantity: int) -> float:
        # tiers 已按 min_quantity 降序：第一个命中即最高档
        for tier in self.config.discount_tiers:
            if quantity >= tier.min_quantity:
                return tier.percentage
        return 0.0

    def subtotal(self, quantity: int) -> float:
        return quantity * self.config.unit_price

    @staticmethod
    def discount_amount(subtotal: float, discount: float) -> float:
        return subtotal * discount

    @staticmethod
    def total(subtotal: float, discount_amount: float, shipping_cost: float) -> float:
        return subtotal - discount_amount + shipping_cost

    def shipping_cap(self, order_amount: float) -> float:
        return order_amount * self.config.max_shipping_fraction

    def is_shipping_valid(self, shipping_cost: float, order_amount: float) -> bool:
        return shipping_cost <= self.shipping_cap(order_amount)

    def price(self, quantity: int, allocations: Sequence[Allocation]) -> PriceBreakdown:
        subtotal = self.subtotal(quantity)
        discount = self.discount_tier(quantity)
        discount_amount = self.discount_amount(subtotal, discount)
        shipping = sum(a.shipping_cost for a in allocations)
        order_amount = subtotal - discount_amount
        return PriceBreakdown(
            quantity=quantity,
            subtotal=subtotal,
            discount=discount,
            discount_amount=discount_amount,
            shipping_cost=shipping,
            total=self.total(subtotal, discount_amount, shipping),
            order_amount=order_amount,
            shipping_cap=self.shipping_cap(order_amount),
        )

    def describe_cap_violation(self, breakdown: PriceBreakdown) -> str:
        pct = self.config.max_shipping_fraction * 100
        return (
            f"Shipping cost (${breakdown.shipping_cost:.2f}) exceeds {pct:g}% "
            f"of order amount (${breakdown.shipping_cap:.2f})"
        )
