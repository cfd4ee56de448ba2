"""
Confidence scoring for forward resolutions.

Confidence is a proxy for how far a point lies from its country's border,
reduced when the spatial index offered several candidate countries. It is a
heuristic in [0.5, 1.0] for matched points, not a probability.

Distance bands (degrees to the nearest exterior or hole edge):
- >= 0.1        -> 0.98
- [0.05, 0.1)   -> 0.88 .. 0.98
- [0.01, 0.05)  -> 0.75 .. 0.88
- < 0.01        -> 0.70 .. 0.75
"""

from typing import Iterable

from .geometry import Point, Ring, distance_to_edge

MIN_CONFIDENCE = 0.5
MAX_CONFIDENCE = 1.0

HIGH_THRESHOLD = 0.90
MEDIUM_THRESHOLD = 0.75


def distance_to_boundary(point: Point, exterior: Ring, holes: Iterable[Ring] = ()) -> float:
    """Distance in degrees from a point to the nearest exterior or hole edge."""
    dist = distance_to_edge(point, exterior)
    for hole in holes:
        dist = min(dist, distance_to_edge(point, hole))
    return dist


def confidence_from_distance(dist: float) -> float:
    """Map a boundary distance in degrees to a base confidence."""
    if dist >= 0.1:
        return 0.98
    if dist >= 0.05:
        return 0.88 + (dist - 0.05) / 0.05 * 0.10
    if dist >= 0.01:
        return 0.75 + (dist - 0.01) / 0.04 * 0.13
    return 0.70 + dist / 0.01 * 0.05


def ambiguity_penalty(candidate_count: int) -> float:
    """Confidence deducted when the index returned several candidates."""
    if candidate_count <= 1:
        return 0.0
    return min(0.2, (candidate_count - 1) * 0.05)


def score(
    point: Point,
    exterior: Ring,
    holes: Iterable[Ring] = (),
    candidate_count: int = 1,
) -> float:
    """
    Calculate the confidence of a point-in-polygon match.

    Args:
        point: (lat, lon) of the query
        exterior: Exterior ring the point matched
        holes: Hole rings of the matched country
        candidate_count: Number of candidate countries considered

    Returns:
        Confidence clamped to [0.5, 1.0]
    """
    base = confidence_from_distance(distance_to_boundary(point, exterior, holes))
    base -= ambiguity_penalty(candidate_count)
    return max(MIN_CONFIDENCE, min(MAX_CONFIDENCE, base))


def confidence_label(confidence: float) -> str:
    """Human-readable band for a confidence: "high", "medium" or "low"."""
    if confidence >= HIGH_THRESHOLD:
        return "high"
    if confidence >= MEDIUM_THRESHOLD:
        return "medium"
    return "low"
