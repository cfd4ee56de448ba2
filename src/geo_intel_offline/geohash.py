"""
Geohash codec for the spatial index.

A geohash interleaves longitude and latitude bits (longitude first) produced
by repeated binary subdivision of [-180, 180] and [-90, 90], and packs each
group of 5 bits into one base-32 character.

Precision 6 is used for lookups (cells of roughly 1.2km x 0.6km); the index
itself may store shorter keys which are found through prefix fallback.
"""

from dataclasses import dataclass
from typing import List, Tuple

from .errors import InputRangeError


BASE32 = "0123456789bcdefghjkmnpqrstuvwxyz"
GEOHASH_PRECISION = 6

_BITS_PER_CHAR = 5
_DECODE_MAP = {ch: i for i, ch in enumerate(BASE32)}


@dataclass(frozen=True)
class GeohashCell:
    """
    A decoded geohash cell.

    lat/lon is the cell center; the ranges are the exact [min, max)
    bounds of the cell in degrees.
    """
    lat: float
    lon: float
    lat_range: Tuple[float, float]
    lon_range: Tuple[float, float]

    @property
    def lat_step(self) -> float:
        """Cell height in degrees."""
        return self.lat_range[1] - self.lat_range[0]

    @property
    def lon_step(self) -> float:
        """Cell width in degrees."""
        return self.lon_range[1] - self.lon_range[0]

    def contains(self, lat: float, lon: float) -> bool:
        """Check if (lat, lon) lies within the closed cell bounds."""
        return (
            self.lat_range[0] <= lat <= self.lat_range[1]
            and self.lon_range[0] <= lon <= self.lon_range[1]
        )


def validate_coords(lat: float, lon: float) -> None:
    """
    Raise InputRangeError unless lat is in [-90, 90] and lon in [-180, 180].

    NaN fails both comparisons and is rejected as well.
    """
    if not -90.0 <= lat <= 90.0:
        raise InputRangeError(f"Latitude must be between -90 and 90, got {lat}")
    if not -180.0 <= lon <= 180.0:
        raise InputRangeError(f"Longitude must be between -180 and 180, got {lon}")


def encode(lat: float, lon: float, precision: int = GEOHASH_PRECISION) -> str:
    """
    Encode WGS84 coordinates to a geohash string.

    Args:
        lat: Latitude in degrees [-90, 90]
        lon: Longitude in degrees [-180, 180]
        precision: Number of geohash characters (>= 1)

    Returns:
        Geohash of exactly `precision` characters

    Raises:
        InputRangeError: If coordinates or precision are out of range
    """
    validate_coords(lat, lon)
    if precision < 1:
        raise InputRangeError(f"Precision must be at least 1, got {precision}")

    lat_min, lat_max = -90.0, 90.0
    lon_min, lon_max = -180.0, 180.0
    chars = []
    ch = 0

    for i in range(precision * _BITS_PER_CHAR):
        ch <<= 1
        if i % 2 == 0:
            mid = (lon_min + lon_max) / 2
            if lon >= mid:
                ch |= 1
                lon_min = mid
            else:
                lon_max = mid
        else:
            mid = (lat_min + lat_max) / 2
            if lat >= mid:
                ch |= 1
                lat_min = mid
            else:
                lat_max = mid

        if (i + 1) % _BITS_PER_CHAR == 0:
            chars.append(BASE32[ch])
            ch = 0

    return "".join(chars)


def decode(geohash: str) -> GeohashCell:
    """
    Decode a geohash to its center point and bounding box.

    Args:
        geohash: Geohash string (lowercase base-32 alphabet)

    Returns:
        GeohashCell with center and exact ranges

    Raises:
        InputRangeError: If the geohash is empty or has an invalid character
    """
    if not geohash:
        raise InputRangeError("Geohash cannot be empty")

    lat_min, lat_max = -90.0, 90.0
    lon_min, lon_max = -180.0, 180.0
    is_lon = True

    for char in geohash:
        idx = _DECODE_MAP.get(char)
        if idx is None:
            raise InputRangeError(f"Invalid geohash character: {char!r}")

        for shift in range(_BITS_PER_CHAR - 1, -1, -1):
            bit = (idx >> shift) & 1
            if is_lon:
                mid = (lon_min + lon_max) / 2
                if bit:
                    lon_min = mid
                else:
                    lon_max = mid
            else:
                mid = (lat_min + lat_max) / 2
                if bit:
                    lat_min = mid
                else:
                    lat_max = mid
            is_lon = not is_lon

    return GeohashCell(
        lat=(lat_min + lat_max) / 2,
        lon=(lon_min + lon_max) / 2,
        lat_range=(lat_min, lat_max),
        lon_range=(lon_min, lon_max),
    )


def _wrap_lon(lon: float) -> float:
    """Wrap longitude into [-180, 180)."""
    return ((lon + 180.0) % 360.0) - 180.0


def _step_point(lat: float, lon: float) -> Tuple[float, float]:
    """
    Bring a point stepped off the globe back onto it.

    Latitudes past a pole are reflected and moved to the opposite
    meridian; longitudes wrap across the antimeridian.
    """
    if lat > 90.0:
        lat = 180.0 - lat
        lon += 180.0
    elif lat < -90.0:
        lat = -180.0 - lat
        lon += 180.0
    return lat, _wrap_lon(lon)


def neighbors(geohash: str) -> List[str]:
    """
    Get the 8 geohashes surrounding a cell.

    Neighbors are found by re-encoding the cell center shifted by one cell
    step in each direction. Longitude wraps across the antimeridian and
    steps past a pole continue on the far side of it, so the result is
    always 8 distinct cells of the same length as the input.

    Args:
        geohash: Center geohash

    Returns:
        List of 8 geohashes ordered SW, S, SE, W, E, NW, N, NE
    """
    cell = decode(geohash)
    precision = len(geohash)

    result = []
    for dlat in (-cell.lat_step, 0.0, cell.lat_step):
        for dlon in (-cell.lon_step, 0.0, cell.lon_step):
            if dlat == 0.0 and dlon == 0.0:
                continue
            lat, lon = _step_point(cell.lat + dlat, cell.lon + dlon)
            result.append(encode(lat, lon, precision))

    return result


def children(geohash: str) -> List[str]:
    """Get the 32 geohashes one character longer than `geohash`."""
    return [geohash + ch for ch in BASE32]


def cell_dimensions(precision: int) -> Tuple[float, float]:
    """
    Get the size of a geohash cell at a given precision.

    Args:
        precision: Number of geohash characters

    Returns:
        Tuple of (lat_degrees, lon_degrees)
    """
    if precision < 1:
        raise InputRangeError(f"Precision must be at least 1, got {precision}")
    total_bits = precision * _BITS_PER_CHAR
    lon_bits = (total_bits + 1) // 2
    lat_bits = total_bits // 2
    return 180.0 / (2 ** lat_bits), 360.0 / (2 ** lon_bits)
