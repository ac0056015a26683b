import math

import pytest

from fulfil.services.geo import EARTH_RADIUS_KM, Coordinates, distance_km, shipping_cost
from fulfil.services.order_errors import InvalidInput

PARIS = Coordinates(49.009722, 2.547778)
NEW_YORK = Coordinates(40.639722, -73.778889)
LONDON = Coordinates(51.5074, -0.1278)


def test_distance_is_zero_for_same_point():
    assert distance_km(PARIS, Coordinates(49.009722, 2.547778)) == 0.0


def test_distance_is_symmetric():
    assert distance_km(PARIS, NEW_YORK) == pytest.approx(distance_km(NEW_YORK, PARIS))


def test_distance_paris_london_is_plausible():
    # CDG -> 伦敦市中心约 340 km
    assert 320 < distance_km(PARIS, LONDON) < 360


def test_distance_antipodes_is_half_circumference():
    d = distance_km(Coordinates(0, 0), Coordinates(0, 180))
    assert d == pytest.approx(math.pi * EARTH_RADIUS_KM)


def test_shipping_cost_is_linear_in_weight_and_distance():
    base = shipping_cost(100.0, 1.0, 0.01)
    assert base == pytest.approx(1.0)
    assert shipping_cost(200.0, 1.0, 0.01) == pytest.approx(2 * base)
    assert shipping_cost(100.0, 3.0, 0.01) == pytest.approx(3 * base)


@pytest.mark.parametrize("distance,weight", [(0.0, 5.0), (100.0, 0.0)])
def test_shipping_cost_zero_distance_or_weight(distance, weight):
    assert shipping_cost(distance, weight, 0.01) == 0.0


@pytest.mark.parametrize(
    "lat,lon",
    [(90.5, 0), (-91, 0), (0, 180.1), (0, -181), (float("nan"), 0)],
)
def test_coordinates_out_of_range_rejected(lat, lon):
    with pytest.raises(InvalidInput):
        Coordinates(lat, lon)


def test_coordinates_boundaries_accepted():
    c = Coordinates(-90, 180)
    assert (c.latitude, c.longitude) == (-90.0, 180.0)


def test_sub_metre_distance_is_not_rounded_away():
    d = distance_km(Coordinates(0, 0), Coordinates(0, 1e-6))
    assert d > 0.0
    assert d == pytest.approx(0.000111, rel=0.01)
