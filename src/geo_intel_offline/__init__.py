"""
geo-intel-offline: Offline country resolution for coordinates.

Resolves (lat, lon) to the enclosing country, and country names or ISO
codes to representative coordinates, without network access. Lookups use a
precomputed geohash index, ray-casting point-in-polygon verification and a
distance-to-border confidence score. Distances, geofence monitoring and
random sampling of points build on the same data.
"""

__version__ = "0.1.0"

from .errors import (
    DataConsistencyError,
    GeoIntelError,
    InputRangeError,
    NotFoundError,
    SamplingError,
)
from .geohash import decode, encode, neighbors
from .models import CountryMetadata, PolygonGeometry, ResolutionResult, ReverseResolutionResult
from .store import DataStore, InMemoryDataStore
from .resolver import Resolver, ResolverConfig
from .serialize import load_data_store, result_to_dict, write_data_files
from .distance import DistanceResult, calculate_distance
from .geofence import GeofenceConfig, GeofenceMonitor, GeofenceResult, GeofenceState, check_geofence
from .random_coords import (
    RandomCoordinateResult,
    generate_random_coordinates_by_area,
    generate_random_coordinates_by_region,
)

__all__ = [
    "DataConsistencyError",
    "GeoIntelError",
    "InputRangeError",
    "NotFoundError",
    "SamplingError",
    "encode",
    "decode",
    "neighbors",
    "CountryMetadata",
    "PolygonGeometry",
    "ResolutionResult",
    "ReverseResolutionResult",
    "DataStore",
    "InMemoryDataStore",
    "Resolver",
    "ResolverConfig",
    "load_data_store",
    "result_to_dict",
    "write_data_files",
    "DistanceResult",
    "calculate_distance",
    "GeofenceConfig",
    "GeofenceMonitor",
    "GeofenceResult",
    "GeofenceState",
    "check_geofence",
    "RandomCoordinateResult",
    "generate_random_coordinates_by_area",
    "generate_random_coordinates_by_region",
]
