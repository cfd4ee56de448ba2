"""
Great-circle and ellipsoidal distances between points or countries.

Locations are either (lat, lon) tuples or country identifiers, which are
turned into coordinates with the resolver's reverse lookup.

Methods:
- haversine: spherical, accurate for short and medium distances
- spherical: spherical law of cosines, an alternative check
- vincenty: WGS84 ellipsoid, most accurate; may fail to converge for
  nearly antipodal points
- auto: vincenty for >= 1000 km, otherwise haversine
"""

import logging
import math
from dataclasses import dataclass
from typing import Optional, Tuple, Union

from .geohash import validate_coords
from .resolver import Resolver

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0

# WGS84 ellipsoid
WGS84_A = 6378137.0
WGS84_F = 1 / 298.257223563
WGS84_B = (1 - WGS84_F) * WGS84_A

MILES_PER_KM = 0.621371
KM_PER_MILE = 1.60934

# ISO2 codes of countries that measure road distances in miles
IMPERIAL_COUNTRIES = frozenset({"US", "GB", "LR", "MM"})

METHODS = ("haversine", "spherical", "vincenty", "auto")
AUTO_VINCENTY_THRESHOLD_KM = 1000.0

Location = Union[Tuple[float, float], str]


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Great-circle distance in kilometers using the Haversine formula.

    Raises:
        InputRangeError: If any coordinate is out of range
    """
    validate_coords(lat1, lon1)
    validate_coords(lat2, lon2)

    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = phi2 - phi1
    dlambda = math.radians(lon2 - lon1)

    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def spherical_law_of_cosines(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in kilometers using the spherical law of cosines."""
    validate_coords(lat1, lon1)
    validate_coords(lat2, lon2)

    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dlambda = math.radians(lon2 - lon1)

    cos_angle = math.sin(phi1) * math.sin(phi2) + math.cos(phi1) * math.cos(phi2) * math.cos(dlambda)
    # Rounding can push the cosine just outside [-1, 1]
    cos_angle = max(-1.0, min(1.0, cos_angle))
    return EARTH_RADIUS_KM * math.acos(cos_angle)


def vincenty_distance(
    lat1: float,
    lon1: float,
    lat2: float,
    lon2: float,
    max_iterations: int = 200,
    tolerance: float = 1e-12,
) -> float:
    """
    Ellipsoidal distance in kilometers using Vincenty's inverse formula.

    Args:
        lat1, lon1: First point in degrees
        lat2, lon2: Second point in degrees
        max_iterations: Iteration limit for the lambda recurrence
        tolerance: Convergence threshold in radians

    Returns:
        Distance in kilometers

    Raises:
        InputRangeError: If any coordinate is out of range
        ValueError: If the iteration does not converge (nearly antipodal
            points)
    """
    validate_coords(lat1, lon1)
    validate_coords(lat2, lon2)

    L = math.radians(lon2 - lon1)
    U1 = math.atan((1 - WGS84_F) * math.tan(math.radians(lat1)))
    U2 = math.atan((1 - WGS84_F) * math.tan(math.radians(lat2)))
    sin_u1, cos_u1 = math.sin(U1), math.cos(U1)
    sin_u2, cos_u2 = math.sin(U2), math.cos(U2)

    lam = L
    for _ in range(max_iterations):
        sin_lam, cos_lam = math.sin(lam), math.cos(lam)
        sin_sigma = math.sqrt(
            (cos_u2 * sin_lam) ** 2
            + (cos_u1 * sin_u2 - sin_u1 * cos_u2 * cos_lam) ** 2
        )
        if sin_sigma == 0:
            return 0.0  # coincident points

        cos_sigma = sin_u1 * sin_u2 + cos_u1 * cos_u2 * cos_lam
        sigma = math.atan2(sin_sigma, cos_sigma)
        sin_alpha = cos_u1 * cos_u2 * sin_lam / sin_sigma
        cos2_alpha = 1 - sin_alpha ** 2
        # Equatorial lines have cos2_alpha == 0
        cos_2sigma_m = cos_sigma - 2 * sin_u1 * sin_u2 / cos2_alpha if cos2_alpha else 0.0

        C = WGS84_F / 16 * cos2_alpha * (4 + WGS84_F * (4 - 3 * cos2_alpha))
        lam_prev = lam
        lam = L + (1 - C) * WGS84_F * sin_alpha * (
            sigma + C * sin_sigma * (cos_2sigma_m + C * cos_sigma * (-1 + 2 * cos_2sigma_m ** 2))
        )
        if abs(lam - lam_prev) < tolerance:
            break
    else:
        raise ValueError(
            f"Vincenty formula failed to converge after {max_iterations} iterations; "
            "points may be nearly antipodal"
        )

    u_sq = cos2_alpha * (WGS84_A ** 2 - WGS84_B ** 2) / WGS84_B ** 2
    A = 1 + u_sq / 16384 * (4096 + u_sq * (-768 + u_sq * (320 - 175 * u_sq)))
    B = u_sq / 1024 * (256 + u_sq * (-128 + u_sq * (74 - 47 * u_sq)))
    delta_sigma = B * sin_sigma * (
        cos_2sigma_m + B / 4 * (
            cos_sigma * (-1 + 2 * cos_2sigma_m ** 2)
            - B / 6 * cos_2sigma_m * (-3 + 4 * sin_sigma ** 2) * (-3 + 4 * cos_2sigma_m ** 2)
        )
    )

    return WGS84_B * A * (sigma - delta_sigma) / 1000.0


def km_to_miles(km: float) -> float:
    return km * MILES_PER_KM


def miles_to_km(miles: float) -> float:
    return miles * KM_PER_MILE


def unit_preference(iso2: Optional[str]) -> str:
    """Preferred distance unit for a country: "mile" or "km"."""
    if iso2 and iso2.strip().upper() in IMPERIAL_COUNTRIES:
        return "mile"
    return "km"


def normalize_unit(unit: str) -> str:
    """
    Normalize a unit name to "km" or "mile".

    Raises:
        ValueError: For an unknown unit
    """
    value = unit.strip().lower()
    if value in ("km", "kilometer", "kilometre", "kilometers", "kilometres"):
        return "km"
    if value in ("mile", "miles", "mi"):
        return "mile"
    raise ValueError(f"Invalid unit: {unit!r}. Must be 'km' or 'mile'")


def distance_km(
    lat1: float, lon1: float, lat2: float, lon2: float, method: str = "haversine"
) -> float:
    """Distance in kilometers with an explicit (non-auto) method."""
    if method == "haversine":
        return haversine_distance(lat1, lon1, lat2, lon2)
    if method == "vincenty":
        return vincenty_distance(lat1, lon1, lat2, lon2)
    if method == "spherical":
        return spherical_law_of_cosines(lat1, lon1, lat2, lon2)
    raise ValueError(
        f"Unknown method: {method!r}. Supported: 'haversine', 'vincenty', 'spherical'"
    )


@dataclass(frozen=True)
class DistanceResult:
    """Distance between two locations."""
    distance: float
    unit: str
    method: str
    from_location: Location
    to_location: Location
    from_coordinates: Tuple[float, float]
    to_coordinates: Tuple[float, float]


def locate(location: Location, resolver: Optional[Resolver] = None) -> Tuple[Tuple[float, float], Optional[str]]:
    """Turn a location into coordinates and, for countries, its ISO2 code."""
    if isinstance(location, str):
        if resolver is None:
            raise ValueError(
                f"Cannot resolve {location!r} without a resolver; pass (lat, lon) instead"
            )
        result = resolver.resolve_country(location)
        return (result.latitude, result.longitude), result.iso2

    lat, lon = location
    validate_coords(lat, lon)
    return (float(lat), float(lon)), None


def calculate_distance(
    from_location: Location,
    to_location: Location,
    resolver: Optional[Resolver] = None,
    method: str = "auto",
    unit: Optional[str] = None,
) -> DistanceResult:
    """
    Calculate the distance between two locations.

    Args:
        from_location: (lat, lon) tuple or country identifier
        to_location: (lat, lon) tuple or country identifier
        resolver: Resolver used for country identifiers
        method: "haversine", "spherical", "vincenty" or "auto"
        unit: "km" or "mile"; when omitted, miles are used if either
            location is a country that prefers them, otherwise km

    Returns:
        DistanceResult

    Raises:
        NotFoundError: If a country identifier does not resolve
        ValueError: For an unknown method or unit
    """
    if method not in METHODS:
        raise ValueError(f"Unknown method: {method!r}. Supported: {', '.join(METHODS)}")

    from_coords, from_iso2 = locate(from_location, resolver)
    to_coords, to_iso2 = locate(to_location, resolver)

    if unit is not None:
        chosen_unit = normalize_unit(unit)
    elif "mile" in (unit_preference(from_iso2), unit_preference(to_iso2)):
        chosen_unit = "mile"
    else:
        chosen_unit = "km"

    if method == "auto":
        km = haversine_distance(*from_coords, *to_coords)
        chosen_method = "haversine"
        if km >= AUTO_VINCENTY_THRESHOLD_KM:
            try:
                km = vincenty_distance(*from_coords, *to_coords)
                chosen_method = "vincenty"
            except ValueError as e:
                logger.warning("Falling back to haversine: %s", e)
    else:
        km = distance_km(*from_coords, *to_coords, method=method)
        chosen_method = method

    return DistanceResult(
        distance=km_to_miles(km) if chosen_unit == "mile" else km,
        unit=chosen_unit,
        method=chosen_method,
        from_location=from_location,
        to_location=to_location,
        from_coordinates=from_coords,
        to_coordinates=to_coords,
    )
