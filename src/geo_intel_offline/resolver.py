"""
Resolution pipelines.

Forward: (lat, lon) -> country.
    1. Encode the point to a geohash at the configured precision.
    2. Gather candidate countries through an ordered list of strategies,
       stopping at the first that yields any: primary cell, its 8 neighbors,
       second-order neighbors, every country in the store.
    3. Verify each candidate with point-in-polygon (holes subtracted,
       multi-polygon exteriors tested independently) and score matches.
    4. If nothing matched, scan every untested country and discount the
       confidence of a match found that way.
    5. Return the highest-confidence match, or a zero-confidence result.

Reverse: country name / ISO2 / ISO3 -> representative coordinates.

A Resolver holds no mutable state; it can be shared across threads as long
as the store is not mutated.
"""

import logging
from dataclasses import dataclass
from typing import Callable, List, NamedTuple, Optional, Sequence, Set, Tuple

from . import geohash
from .confidence import score
from .errors import DataConsistencyError, NotFoundError
from .geometry import Point, point_in_polygon_with_holes, polygon_centroid
from .models import (
    CountryMetadata,
    PolygonGeometry,
    ResolutionResult,
    ReverseResolutionResult,
)
from .store import DataStore

logger = logging.getLogger(__name__)


@dataclass
class ResolverConfig:
    """Configuration for the resolver."""

    precision: int = geohash.GEOHASH_PRECISION
    """Geohash precision used to query the index."""

    fallback_discount: float = 0.95
    """Multiplier applied to matches found by the exhaustive scan."""

    exhaustive_fallback: bool = True
    """Scan every country when no indexed candidate matches."""

    def __post_init__(self):
        if self.precision < 1:
            raise ValueError("precision must be at least 1")
        if not 0.0 < self.fallback_discount <= 1.0:
            raise ValueError("fallback_discount must be in (0, 1]")


class Match(NamedTuple):
    """A verified point-in-polygon hit."""
    country_id: int
    confidence: float


CandidateStrategy = Callable[[str], List[int]]


def _dedupe(ids) -> List[int]:
    return list(dict.fromkeys(ids))


def normalize_name(name: str) -> str:
    """Normalize a country name for matching: trim, lowercase, '_'/'-' -> ' '."""
    return name.strip().lower().replace("_", " ").replace("-", " ")


def normalize_code(code: str) -> str:
    """Normalize an ISO code for matching: trim and uppercase."""
    return code.strip().upper()


class Resolver:
    """
    Forward and reverse country resolution over a DataStore.
    """

    def __init__(self, store: DataStore, config: Optional[ResolverConfig] = None):
        """
        Args:
            store: Loaded, read-only data store
            config: Resolver configuration (defaults if omitted)
        """
        self.store = store
        self.config = config or ResolverConfig()
        self.strategies: List[Tuple[str, CandidateStrategy]] = [
            ("primary", self._primary_candidates),
            ("neighbors", self._neighbor_candidates),
            ("extended_neighbors", self._extended_neighbor_candidates),
            ("all_countries", self._all_candidates),
        ]

    # Candidate generation

    def _primary_candidates(self, cell: str) -> List[int]:
        return self.store.candidate_countries(cell)

    def _neighbor_candidates(self, cell: str) -> List[int]:
        ids: List[int] = []
        for neighbor in geohash.neighbors(cell):
            ids.extend(self.store.candidate_countries(neighbor))
        return _dedupe(ids)

    def _extended_neighbor_candidates(self, cell: str) -> List[int]:
        cells: List[str] = []
        for neighbor in geohash.neighbors(cell):
            cells.append(neighbor)
            cells.extend(geohash.neighbors(neighbor))

        ids: List[int] = []
        for other in _dedupe(cells):
            if other != cell:
                ids.extend(self.store.candidate_countries(other))
        return _dedupe(ids)

    def _all_candidates(self, cell: str) -> List[int]:
        return self.store.all_country_ids()

    def candidates(self, cell: str) -> List[int]:
        """
        Run the candidate strategies in order until one yields countries.

        Args:
            cell: Geohash of the query point

        Returns:
            Candidate country IDs (empty only if the store is empty)
        """
        for name, strategy in self.strategies:
            ids = strategy(cell)
            if ids:
                logger.debug("Candidates for %s from %s: %s", cell, name, ids)
                return ids
        return []

    # Verification

    @staticmethod
    def _matching_exterior(point: Point, polygon: PolygonGeometry):
        """Return the first exterior containing the point, or None."""
        for exterior in polygon.exteriors:
            if len(exterior) == 0:
                continue
            if point_in_polygon_with_holes(point, exterior, polygon.holes):
                return exterior
        return None

    def _verify_candidates(self, point: Point, candidates: Sequence[int]) -> List[Match]:
        matches = []
        for country_id in candidates:
            polygon = self.store.polygon(country_id)
            if polygon is None:
                # Index noise: a candidate with no geometry cannot contain the point
                logger.debug("Skipping candidate %s without polygon", country_id)
                continue

            exterior = self._matching_exterior(point, polygon)
            if exterior is not None:
                confidence = score(point, exterior, polygon.holes, len(candidates))
                matches.append(Match(country_id, confidence))
        return matches

    def _exhaustive_scan(self, point: Point, tested: Set[int]) -> List[Match]:
        matches = []
        for country_id in self.store.all_country_ids():
            if country_id in tested:
                continue

            polygon = self.store.polygon(country_id)
            if polygon is None:
                raise DataConsistencyError(
                    f"Country {country_id} has metadata but no polygon"
                )

            exterior = self._matching_exterior(point, polygon)
            if exterior is not None:
                confidence = score(point, exterior, polygon.holes, 1)
                matches.append(Match(country_id, confidence * self.config.fallback_discount))
        return matches

    def _metadata_for(self, country_id: int) -> CountryMetadata:
        metadata = self.store.metadata(country_id)
        if metadata is None:
            raise DataConsistencyError(f"Metadata not found for country ID {country_id}")
        return metadata

    # Forward

    def resolve_coordinates(self, lat: float, lon: float) -> ResolutionResult:
        """
        Resolve a point to the country containing it.

        Args:
            lat: Latitude in degrees [-90, 90]
            lon: Longitude in degrees [-180, 180]

        Returns:
            ResolutionResult; `country_id` is None with confidence 0.0 when
            the point lies in no country

        Raises:
            InputRangeError: If the coordinates are out of range
            DataConsistencyError: If the store is missing records for a
                matched country
        """
        point = (lat, lon)
        cell = geohash.encode(lat, lon, self.config.precision)

        candidates = self.candidates(cell)
        if not candidates:
            return ResolutionResult.no_match()

        matches = self._verify_candidates(point, candidates)

        if not matches and self.config.exhaustive_fallback:
            logger.debug("No candidate contains %s; scanning all countries", point)
            matches = self._exhaustive_scan(point, set(candidates))

        if not matches:
            return ResolutionResult.no_match()

        # max() keeps the first of equal confidences
        best = max(matches, key=lambda m: m.confidence)
        return ResolutionResult.from_metadata(
            best.country_id, self._metadata_for(best.country_id), best.confidence
        )

    resolve = resolve_coordinates

    # Reverse

    def find_country(self, identifier: str) -> Tuple[int, CountryMetadata]:
        """
        Find a country by ISO2, ISO3, exact name or name containment.

        Each tier is tried against every record before moving to the next,
        so an exact match always beats a containment match.

        Args:
            identifier: Country name, ISO 3166 alpha-2 or alpha-3 code

        Returns:
            Tuple of (country_id, metadata)

        Raises:
            NotFoundError: If no record matches
        """
        code = normalize_code(identifier)
        name = normalize_name(identifier)
        if not name:
            raise NotFoundError("Country identifier cannot be empty")

        records = [
            (country_id, meta, normalize_name(meta.name or ""))
            for country_id, meta in self.store.metadata_items()
        ]

        for country_id, meta, _ in records:
            if meta.has_iso2 and normalize_code(meta.iso2) == code:
                return country_id, meta

        for country_id, meta, _ in records:
            if meta.has_iso3 and normalize_code(meta.iso3) == code:
                return country_id, meta

        for country_id, meta, meta_name in records:
            if meta_name and meta_name == name:
                return country_id, meta

        for country_id, meta, meta_name in records:
            if meta_name and (meta_name in name or name in meta_name):
                return country_id, meta

        raise NotFoundError(
            f"Country not found: {identifier!r}. "
            "Provide a country name or an ISO 3166 alpha-2/alpha-3 code."
        )

    def resolve_country(self, identifier: str) -> ReverseResolutionResult:
        """
        Resolve a country identifier to a representative coordinate.

        The coordinate is the arithmetic mean of the centroids of every
        exterior ring (not an area-weighted centroid).

        Raises:
            NotFoundError: If no country matches the identifier
            DataConsistencyError: If the matched country has no usable polygon
        """
        country_id, meta = self.find_country(identifier)

        polygon = self.store.polygon(country_id)
        if polygon is None:
            raise DataConsistencyError(f"Polygon data not found for country ID {country_id}")

        centroids = [polygon_centroid(ext) for ext in polygon.exteriors if len(ext) > 0]
        if not centroids:
            raise DataConsistencyError(f"No valid exteriors found for country ID {country_id}")

        lat = sum(c[0] for c in centroids) / len(centroids)
        lon = sum(c[1] for c in centroids) / len(centroids)

        return ReverseResolutionResult(
            country_id=country_id,
            latitude=lat,
            longitude=lon,
            name=meta.name,
            iso2=meta.iso2,
            iso3=meta.iso3,
            continent=meta.continent,
            timezone=meta.timezone,
            confidence=1.0,
        )

    resolve_by_country = resolve_country
