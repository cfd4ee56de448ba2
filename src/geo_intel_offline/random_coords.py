"""
Random coordinate generation within regions and areas.

Region sampling draws uniform points from the bounding box of a country or
continent and keeps those that fall inside its polygons (holes excluded)
and that the resolver assigns to the region. Area sampling draws points
uniformly from a circle around a center.

Both take an optional integer seed; the same seed, inputs and data give
the same coordinates.
"""

import logging
import math
import random
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from .errors import NotFoundError, SamplingError
from .geohash import validate_coords
from .geometry import Point, bounding_box, merge_boxes, point_in_polygon_with_holes
from .models import PolygonGeometry
from .resolver import Resolver, normalize_name

logger = logging.getLogger(__name__)

REGION_TYPES = ("country", "continent")

METERS_PER_DEGREE = 111000.0

AREA_UNITS = {
    "m": 1.0,
    "km": 1000.0,
    "mile": 1609.34,
}

# Fraction of requested points that may fail before sampling gives up
MAX_FAILURE_RATIO = 0.5


@dataclass(frozen=True)
class RandomCoordinateResult:
    """Coordinates generated for a region or area."""
    coordinates: Tuple[Point, ...]
    region: str
    region_type: str
    total_requested: int

    @property
    def total_generated(self) -> int:
        return len(self.coordinates)


def _continent_ids(resolver: Resolver, continent: str) -> List[int]:
    name = normalize_name(continent)
    return [
        country_id
        for country_id, meta in resolver.store.metadata_items()
        if meta.continent and normalize_name(meta.continent) == name
    ]


def detect_region_type(resolver: Resolver, region: str) -> str:
    """Return "continent" if any country lists the region as its continent, else "country"."""
    return "continent" if _continent_ids(resolver, region) else "country"


def region_polygons(resolver: Resolver, region: str, region_type: str) -> Dict[int, PolygonGeometry]:
    """
    Polygons of every country in a region.

    Raises:
        NotFoundError: If the region matches no country
        ValueError: For an unknown region type
    """
    if region_type == "country":
        ids = [resolver.find_country(region)[0]]
    elif region_type == "continent":
        ids = _continent_ids(resolver, region)
        if not ids:
            raise NotFoundError(f"Continent not found: {region!r}")
    else:
        raise ValueError(f"Unknown region type: {region_type!r}. Supported: {', '.join(REGION_TYPES)}")

    polygons = {}
    for country_id in ids:
        polygon = resolver.store.polygon(country_id)
        if polygon is not None:
            polygons[country_id] = polygon
    if not polygons:
        raise NotFoundError(f"No polygons found for region: {region!r}")
    return polygons


def _contains(point: Point, polygons: Dict[int, PolygonGeometry]) -> bool:
    for polygon in polygons.values():
        for exterior in polygon.exteriors:
            if point_in_polygon_with_holes(point, exterior, polygon.holes):
                return True
    return False


def generate_random_coordinates_by_region(
    region: str,
    count: int,
    resolver: Resolver,
    region_type: Optional[str] = None,
    seed: Optional[int] = None,
    max_attempts: int = 1000,
) -> RandomCoordinateResult:
    """
    Generate random points inside a country or continent.

    Args:
        region: Country name, ISO2/ISO3 code or continent name
        count: Number of points to generate
        resolver: Resolver over the loaded data
        region_type: "country" or "continent" (detected when omitted)
        seed: Random seed for reproducible output
        max_attempts: Draws per point before counting it as failed

    Returns:
        RandomCoordinateResult; it may hold fewer than `count` points when
        some (at most half) failed

    Raises:
        ValueError: If count or max_attempts is not positive
        NotFoundError: If the region does not resolve
        SamplingError: If more than half of the points failed
    """
    if count <= 0:
        raise ValueError(f"count must be positive, got {count}")
    if max_attempts <= 0:
        raise ValueError(f"max_attempts must be positive, got {max_attempts}")

    if region_type is None:
        region_type = detect_region_type(resolver, region)
    polygons = region_polygons(resolver, region, region_type)
    min_lat, max_lat, min_lon, max_lon = merge_boxes(
        bounding_box(exterior)
        for polygon in polygons.values()
        for exterior in polygon.exteriors
    )

    rng = random.Random(seed)
    coordinates: List[Point] = []
    failed = 0

    for _ in range(count):
        for _ in range(max_attempts):
            point = (rng.uniform(min_lat, max_lat), rng.uniform(min_lon, max_lon))
            if not _contains(point, polygons):
                continue
            # The resolver decides overlaps and shared borders
            if resolver.resolve_coordinates(*point).country_id in polygons:
                coordinates.append(point)
                break
        else:
            failed += 1
            if failed > count * MAX_FAILURE_RATIO:
                raise SamplingError(
                    f"Failed to generate {failed} of {count} points in {region!r} "
                    f"after {max_attempts} attempts each; increase max_attempts "
                    "or use a different region"
                )

    if failed:
        logger.warning("Generated %d of %d points in %r", len(coordinates), count, region)

    return RandomCoordinateResult(
        coordinates=tuple(coordinates),
        region=region,
        region_type=region_type,
        total_requested=count,
    )


def radius_to_degrees(radius: float, unit: str = "m") -> float:
    """
    Convert a radius to degrees of latitude.

    Raises:
        ValueError: For an unknown unit
    """
    unit = unit.strip().lower()
    if unit == "degree":
        return radius
    if unit not in AREA_UNITS:
        raise ValueError(f"Unknown radius unit: {unit!r}. Supported: 'm', 'km', 'mile', 'degree'")
    return radius * AREA_UNITS[unit] / METERS_PER_DEGREE


def point_in_circle(center: Point, radius_deg: float, rng: random.Random) -> Point:
    """
    Draw a uniform point from a circle of `radius_deg` degrees of latitude.

    Longitude offsets are stretched by 1/cos(latitude) so the circle stays
    round on the ground, except within ~0.6 degrees of a pole.
    """
    angle = rng.uniform(0.0, 2 * math.pi)
    r = math.sqrt(rng.random()) * radius_deg

    lat_offset = r * math.cos(angle)
    lon_offset = r * math.sin(angle)
    cos_lat = abs(math.cos(math.radians(center[0])))
    if cos_lat > 0.01:
        lon_offset /= cos_lat

    lat = max(-90.0, min(90.0, center[0] + lat_offset))
    lon = center[1] + lon_offset
    if lon < -180.0 or lon > 180.0:
        lon = (lon + 180.0) % 360.0 - 180.0
    return lat, lon


def generate_random_coordinates_by_area(
    center: Point,
    radius: float,
    count: int,
    radius_unit: str = "m",
    seed: Optional[int] = None,
) -> RandomCoordinateResult:
    """
    Generate random points within a radius of a center.

    Args:
        center: (lat, lon) of the circle center
        radius: Circle radius in `radius_unit`
        count: Number of points to generate
        radius_unit: "m", "km", "mile" or "degree"
        seed: Random seed for reproducible output

    Returns:
        RandomCoordinateResult with exactly `count` points

    Raises:
        InputRangeError: If the center is out of range
        ValueError: If count is not positive, radius is negative or the
            unit is unknown
    """
    if count <= 0:
        raise ValueError(f"count must be positive, got {count}")
    validate_coords(*center)
    if radius < 0:
        raise ValueError(f"radius cannot be negative, got {radius}")

    radius_deg = radius_to_degrees(radius, radius_unit)
    rng = random.Random(seed)
    coordinates = tuple(point_in_circle(center, radius_deg, rng) for _ in range(count))

    return RandomCoordinateResult(
        coordinates=coordinates,
        region=f"Area around ({center[0]}, {center[1]})",
        region_type="area",
        total_requested=count,
    )
