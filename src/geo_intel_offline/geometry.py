"""
Planar polygon operations on (lat, lon) rings.

Rings are sequences of (lat, lon) points with an implicit closing edge from
the last point back to the first. Latitude/longitude are treated as a flat
Cartesian plane, which is adequate at the scale these operations are used
for (containment tests and distances under ~0.1 degrees).
"""

import math
from typing import Iterable, List, Sequence, Tuple

Point = Tuple[float, float]
Ring = Sequence[Point]
BBox = Tuple[float, float, float, float]  # (min_lat, max_lat, min_lon, max_lon)


def point_in_polygon(point: Point, ring: Ring) -> bool:
    """
    Test whether a point lies inside a ring using ray casting.

    A ray is cast eastward from the point and crossings with ring edges are
    counted; an odd count means inside. Horizontal edges never straddle the
    ray's latitude and are skipped naturally, as are zero-length edges.

    Args:
        point: (lat, lon) tuple
        ring: Ring of (lat, lon) points

    Returns:
        True if the point is inside, False otherwise (including rings with
        fewer than 3 points)
    """
    if len(ring) < 3:
        return False

    lat, lon = point
    inside = False

    j = len(ring) - 1
    for i in range(len(ring)):
        lat_i, lon_i = ring[i][0], ring[i][1]
        lat_j, lon_j = ring[j][0], ring[j][1]

        if (lat_i > lat) != (lat_j > lat):
            crossing_lon = (lat - lat_i) * (lon_j - lon_i) / (lat_j - lat_i) + lon_i
            if lon < crossing_lon:
                inside = not inside

        j = i

    return inside


def point_in_polygon_with_holes(point: Point, exterior: Ring, holes: Iterable[Ring] = ()) -> bool:
    """
    Test whether a point is inside an exterior ring and outside every hole.

    Holes model lakes and enclaves cut out of a country's territory.
    """
    if not point_in_polygon(point, exterior):
        return False

    for hole in holes:
        if point_in_polygon(point, hole):
            return False

    return True


def distance_to_edge(point: Point, ring: Ring) -> float:
    """
    Minimum distance in degrees from a point to any edge of a ring.

    Args:
        point: (lat, lon) tuple
        ring: Ring of (lat, lon) points

    Returns:
        Planar point-to-segment distance, or infinity for an empty ring
    """
    if len(ring) == 0:
        return math.inf

    lat, lon = point
    min_dist = math.inf

    j = len(ring) - 1
    for i in range(len(ring)):
        lat_i, lon_i = ring[i][0], ring[i][1]
        lat_j, lon_j = ring[j][0], ring[j][1]

        dy = lat_j - lat_i
        dx = lon_j - lon_i

        if dx == 0 and dy == 0:
            dist = math.hypot(lat - lat_i, lon - lon_i)
        else:
            # Project onto the segment and clamp to its endpoints
            t = ((lat - lat_i) * dy + (lon - lon_i) * dx) / (dx * dx + dy * dy)
            t = max(0.0, min(1.0, t))
            dist = math.hypot(lat - (lat_i + t * dy), lon - (lon_i + t * dx))

        min_dist = min(min_dist, dist)
        j = i

    return min_dist


def polygon_centroid(ring: Ring) -> Point:
    """
    Vertex-average centroid of a ring.

    This is the mean of the ring's points, not the area-weighted centroid.
    Returns (0.0, 0.0) for an empty ring.
    """
    if len(ring) == 0:
        return 0.0, 0.0

    lat_sum = sum(p[0] for p in ring)
    lon_sum = sum(p[1] for p in ring)
    return lat_sum / len(ring), lon_sum / len(ring)


def bounding_box(ring: Ring) -> BBox:
    """
    Bounding box of a ring as (min_lat, max_lat, min_lon, max_lon).

    Returns all zeros for an empty ring.
    """
    if len(ring) == 0:
        return 0.0, 0.0, 0.0, 0.0

    lats = [p[0] for p in ring]
    lons = [p[1] for p in ring]
    return min(lats), max(lats), min(lons), max(lons)


def merge_boxes(boxes: Iterable[BBox]) -> BBox:
    """Smallest box enclosing all given boxes."""
    boxes = list(boxes)
    if not boxes:
        return 0.0, 0.0, 0.0, 0.0
    return (
        min(b[0] for b in boxes),
        max(b[1] for b in boxes),
        min(b[2] for b in boxes),
        max(b[3] for b in boxes),
    )


def boxes_overlap(a: BBox, b: BBox) -> bool:
    """Check if two closed boxes share at least one point."""
    return a[0] <= b[1] and b[0] <= a[1] and a[2] <= b[3] and b[2] <= a[3]


def segment_intersects_box(a: Point, b: Point, box: BBox) -> bool:
    """
    Check if the segment a-b touches a closed axis-aligned box.

    Uses Liang-Barsky clipping of the segment against the box.
    """
    min_lat, max_lat, min_lon, max_lon = box
    lat0, lon0 = a[0], a[1]
    dlat = b[0] - lat0
    dlon = b[1] - lon0

    t0, t1 = 0.0, 1.0
    for p, q in (
        (-dlon, lon0 - min_lon),
        (dlon, max_lon - lon0),
        (-dlat, lat0 - min_lat),
        (dlat, max_lat - lat0),
    ):
        if p == 0:
            if q < 0:
                return False
            continue
        r = q / p
        if p < 0:
            if r > t1:
                return False
            t0 = max(t0, r)
        else:
            if r < t0:
                return False
            t1 = min(t1, r)

    return t0 <= t1


def ring_edges(ring: Ring) -> List[Tuple[Point, Point]]:
    """List the edges of a ring, including the implicit closing edge."""
    n = len(ring)
    if n < 2:
        return []
    return [(tuple(ring[i - 1]), tuple(ring[i])) for i in range(n)]


def geojson_to_latlon(coords: Iterable[Sequence[float]]) -> List[Point]:
    """Convert GeoJSON [lon, lat] positions to (lat, lon) tuples."""
    return [(float(c[1]), float(c[0])) for c in coords]
