"""Shared fixtures: a small synthetic world indexed with the real builder."""

import pytest

from geo_intel_offline.indexer import build_geohash_index
from geo_intel_offline.models import CountryMetadata, PolygonGeometry
from geo_intel_offline.store import InMemoryDataStore


def box(min_lat, max_lat, min_lon, max_lon):
    """Axis-aligned rectangular ring (unclosed, counter-clockwise)."""
    return (
        (min_lat, min_lon),
        (min_lat, max_lon),
        (max_lat, max_lon),
        (max_lat, min_lon),
    )


LAKE = box(44.0, 46.0, -88.0, -84.0)
LESOTHO = box(-30.7, -28.6, 27.0, 29.5)

WORLD_POLYGONS = {
    1: PolygonGeometry.single(box(25.0, 49.0, -125.0, -67.0), holes=(LAKE,)),
    2: PolygonGeometry.single(box(42.0, 51.0, -5.0, 8.0)),
    3: PolygonGeometry.single(box(47.0, 55.0, 8.0, 15.0)),
    4: PolygonGeometry.single(box(4.0, 13.9, 3.0, 14.0)),
    5: PolygonGeometry.single(box(14.0, 23.0, 0.0, 16.0)),
    6: PolygonGeometry.single(box(-35.0, -22.0, 16.0, 33.0), holes=(LESOTHO,)),
    7: PolygonGeometry.single(LESOTHO),
    8: PolygonGeometry(
        exteriors=(
            box(-18.0, -17.0, 177.0, 178.5),
            box(-17.0, -16.0, 178.6, 179.9),
        ),
        multi=True,
    ),
}

WORLD_METADATA = {
    1: CountryMetadata("United States of America", "US", "USA", "North America", "America/New_York"),
    2: CountryMetadata("France", "FR", "FRA", "Europe", "Europe/Paris"),
    3: CountryMetadata("Germany", "DE", "DEU", "Europe", "Europe/Berlin"),
    4: CountryMetadata("Nigeria", "NG", "NGA", "Africa", "Africa/Lagos"),
    5: CountryMetadata("Niger", "NE", "NER", "Africa", "Africa/Niamey"),
    6: CountryMetadata("South Africa", "ZA", "ZAF", "Africa", "Africa/Johannesburg"),
    7: CountryMetadata("Lesotho", "LS", "LSO", "Africa", "Africa/Maseru"),
    8: CountryMetadata("Fiji", "FJ", "FJI", "Oceania", "Pacific/Fiji"),
}


@pytest.fixture(scope="session")
def world_index():
    """Geohash index of the synthetic world."""
    index, _ = build_geohash_index(WORLD_POLYGONS, max_precision=3)
    return index


@pytest.fixture
def world_store(world_index):
    """In-memory store of the synthetic world."""
    return InMemoryDataStore(world_index, WORLD_POLYGONS, WORLD_METADATA)


@pytest.fixture
def unit_square():
    """Unit square ring with corners at (0, 0) and (1, 1)."""
    return box(0.0, 1.0, 0.0, 1.0)
