"""
Exception taxonomy for geo-intel-offline.

Invalid input and data integrity problems are raised; a point that lies in
no country is not an error and is reported as a zero-confidence result.
"""


class GeoIntelError(Exception):
    """Base class for all errors raised by this package."""


class InputRangeError(GeoIntelError, ValueError):
    """Latitude/longitude out of range, or an empty or malformed geohash."""


class NotFoundError(GeoIntelError, LookupError):
    """A reverse lookup matched no country record."""


class DataConsistencyError(GeoIntelError, RuntimeError):
    """
    The data store references a country that has no polygon or metadata.

    This indicates a corrupt or incomplete data build and is never
    silently skipped.
    """


class SamplingError(GeoIntelError, RuntimeError):
    """Random sampling could not place enough points inside a region."""
