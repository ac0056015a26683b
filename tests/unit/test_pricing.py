import pytest

from fulfil.core.config import DiscountTier, OrderingConfig
from fulfil.services.order_types import Allocation
from fulfil.services.pricing import PricingEngine


@pytest.fixture
def pricing() -> PricingEngine:
    return PricingEngine(OrderingConfig())


@pytest.mark.parametrize(
    "qty,expected",
    [
        (1, 0.0),
        (24, 0.0),
        (25, 0.05),
        (49, 0.05),
        (50, 0.10),
        (99, 0.10),
        (100, 0.15),
        (249, 0.15),
        (250, 0.20),
        (1_000_000, 0.20),
    ],
)
def test_discount_tier_boundaries(pricing, qty, expected):
    assert pricing.discount_tier(qty) == expected


def test_subtotal(pricing):
    assert pricing.subtotal(1) == 150
    assert pricing.subtotal(100) == 15000


def test_shipping_cap_is_inclusive(pricing):
    assert pricing.is_shipping_valid(1500, 10000) is True
    assert pricing.is_shipping_valid(1501, 10000) is False


def test_tiers_are_sorted_on_construction():
    cfg = OrderingConfig(discount_tiers=(DiscountTier(10, 0.1), DiscountTier(100, 0.5)))
    assert [t.min_quantity for t in cfg.discount_tiers] == [100, 10]
    assert PricingEngine(cfg).discount_tier(150) == 0.5


def test_price_sums_allocation_shipping(pricing):
    allocs = [
        Allocation(warehouse_id=1, warehouse_name="A", quantity=30, distance_km=10, shipping_cost=12.5),
        Allocation(warehouse_id=2, warehouse_name="B", quantity=20, distance_km=20, shipping_cost=7.5),
    ]
    b = pricing.price(50, allocs)

    assert b.subtotal == 7500
    assert b.discount == 0.10
    assert b.discount_amount == pytest.approx(750)
    assert b.shipping_cost == pytest.approx(20.0)
    assert b.total == pytest.approx(7500 - 750 + 20)
    assert b.order_amount == pytest.approx(6750)
    assert b.shipping_cap == pytest.approx(1012.5)


def test_describe_cap_violation(pricing):
    allocs = [Allocation(1, "Far", 1, 13000.0, 47.45)]
    b = pricing.price(1, allocs)
    msg = pricing.describe_cap_violation(b)
    assert msg == "Shipping cost ($47.45) exceeds 15% of order amount ($22.50)"
