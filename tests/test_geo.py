"""Tests for geographic helpers."""
import pytest

from tests.locations import MOMBASA, NAIROBI, NAKURU, THIKA
from utils.geo import (
    coordinates_of,
    distance_meters,
    distance_or_none,
    encode_geohash,
    geocell_for,
    get_covering_geohashes,
    is_nearby,
)


def test_distance_to_self_is_zero():
    assert distance_meters(NAIROBI, NAIROBI) == 0.0


def test_distance_is_symmetric():
    assert distance_meters(NAIROBI, MOMBASA) == pytest.approx(distance_meters(MOMBASA, NAIROBI))


def test_known_distance():
    """Nairobi to Mombasa is roughly 440 km as the crow flies."""
    assert distance_meters(NAIROBI, MOMBASA) == pytest.approx(440_000, rel=0.03)


def test_one_degree_of_latitude():
    assert distance_meters((0.0, 0.0), (1.0, 0.0)) == pytest.approx(111_195, rel=0.001)


def test_nearby_cutoff():
    """Thika is inside the 50 km cutoff from Nairobi, Nakuru is not."""
    assert is_nearby(NAIROBI, THIKA, 50_000)
    assert not is_nearby(NAIROBI, NAKURU, 50_000)


def test_missing_coordinates():
    assert coordinates_of({"address": "Unknown"}) is None
    assert distance_or_none(NAIROBI, None) is None
    assert not is_nearby(NAIROBI, None, 50_000)
    with pytest.raises(ValueError):
        distance_meters(NAIROBI, {"address": "Unknown"})


def test_geohash_known_value():
    assert encode_geohash(57.64911, 10.40744, precision=11) == "u4pruydqqvj"


def test_geocell_for_location():
    assert geocell_for(NAIROBI) == encode_geohash(NAIROBI["latitude"], NAIROBI["longitude"])
    assert geocell_for(None) is None


def test_covering_cells_include_nearby_points():
    """Every point within the radius falls in one of the covering cells."""
    cells = get_covering_geohashes(NAIROBI["latitude"], NAIROBI["longitude"], 50_000)

    assert geocell_for(NAIROBI) in cells
    assert geocell_for(THIKA) in cells
    assert geocell_for(MOMBASA) not in cells
