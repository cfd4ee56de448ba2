"""
Immutable data records shared by the store, resolver and serializers.

Records are plain frozen dataclasses; conversion to dictionaries happens in
`serialize`, at the system boundary.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

from .geometry import Point, Ring

ISO_SENTINEL = "-99"


@dataclass(frozen=True)
class PolygonGeometry:
    """
    Territory of one country.

    A single polygon has one exterior ring; a multi-polygon country
    (archipelagos, exclaves) has several. Holes are shared by every
    exterior and subtracted from all of them.
    """
    exteriors: Tuple[Ring, ...]
    holes: Tuple[Ring, ...] = ()
    multi: bool = False

    def __post_init__(self):
        if not self.exteriors:
            raise ValueError("PolygonGeometry needs at least one exterior ring")

    @property
    def exterior(self) -> Ring:
        """The first exterior ring."""
        return self.exteriors[0]

    @classmethod
    def single(cls, exterior: Ring, holes: Tuple[Ring, ...] = ()) -> "PolygonGeometry":
        """Create a single-polygon geometry."""
        return cls(exteriors=(exterior,), holes=tuple(holes), multi=False)


@dataclass(frozen=True)
class CountryMetadata:
    """
    Descriptive fields for a country ID.

    ISO codes may be missing or set to the "-99" sentinel for disputed or
    unrecognized territories; the country ID is the only stable key.
    """
    name: str
    iso2: Optional[str] = None
    iso3: Optional[str] = None
    continent: Optional[str] = None
    timezone: Optional[str] = None

    @property
    def has_iso2(self) -> bool:
        return bool(self.iso2) and self.iso2 != ISO_SENTINEL

    @property
    def has_iso3(self) -> bool:
        return bool(self.iso3) and self.iso3 != ISO_SENTINEL


@dataclass(frozen=True)
class ResolutionResult:
    """Outcome of a forward (coordinates -> country) resolution."""
    country_id: Optional[int]
    name: Optional[str] = None
    iso2: Optional[str] = None
    iso3: Optional[str] = None
    continent: Optional[str] = None
    timezone: Optional[str] = None
    confidence: float = 0.0

    @property
    def is_match(self) -> bool:
        """True unless the point resolved to no country."""
        return self.country_id is not None

    @classmethod
    def no_match(cls) -> "ResolutionResult":
        """Result for a point in no country (ocean or data gap)."""
        return cls(country_id=None, confidence=0.0)

    @classmethod
    def from_metadata(
        cls, country_id: int, metadata: CountryMetadata, confidence: float
    ) -> "ResolutionResult":
        return cls(
            country_id=country_id,
            name=metadata.name,
            iso2=metadata.iso2,
            iso3=metadata.iso3,
            continent=metadata.continent,
            timezone=metadata.timezone,
            confidence=confidence,
        )


@dataclass(frozen=True)
class ReverseResolutionResult:
    """Outcome of a reverse (country identifier -> coordinates) resolution."""
    country_id: int
    latitude: float
    longitude: float
    name: Optional[str] = None
    iso2: Optional[str] = None
    iso3: Optional[str] = None
    continent: Optional[str] = None
    timezone: Optional[str] = None
    confidence: float = 1.0

    @property
    def coordinates(self) -> Point:
        return self.latitude, self.longitude
