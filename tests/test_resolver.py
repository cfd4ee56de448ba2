"""Tests for the forward and reverse resolution pipelines."""

import pytest

from conftest import box
from geo_intel_offline import geohash
from geo_intel_offline.errors import DataConsistencyError, InputRangeError, NotFoundError
from geo_intel_offline.models import CountryMetadata, PolygonGeometry
from geo_intel_offline.resolver import Resolver, ResolverConfig, normalize_code, normalize_name
from geo_intel_offline.store import InMemoryDataStore


@pytest.fixture
def resolver(world_store):
    """Resolver over the synthetic world."""
    return Resolver(world_store)


class TestResolverConfig:
    """Tests for resolver configuration."""

    def test_defaults(self):
        """Test the default configuration."""
        config = ResolverConfig()
        assert config.precision == 6
        assert config.fallback_discount == 0.95
        assert config.exhaustive_fallback

    @pytest.mark.parametrize("kwargs", [
        {"precision": 0},
        {"fallback_discount": 0.0},
        {"fallback_discount": 1.5},
    ])
    def test_invalid(self, kwargs):
        """Test that invalid values are rejected."""
        with pytest.raises(ValueError):
            ResolverConfig(**kwargs)


class TestNormalization:
    """Tests for identifier normalization."""

    def test_name(self):
        """Test name normalization."""
        assert normalize_name("  United_States-of America ") == "united states of america"

    def test_code(self):
        """Test code normalization."""
        assert normalize_code(" us ") == "US"


class TestResolveCoordinates:
    """Tests for forward resolution."""

    def test_new_york(self, resolver):
        """Test a point deep inside the United States."""
        result = resolver.resolve_coordinates(40.7128, -74.0060)
        assert result.is_match
        assert result.iso2 == "US"
        assert result.iso3 == "USA"
        assert result.name == "United States of America"
        assert result.continent == "North America"
        assert result.confidence >= 0.9

    def test_ocean(self, resolver):
        """Test that (0, 0) resolves to no country."""
        result = resolver.resolve_coordinates(0.0, 0.0)
        assert not result.is_match
        assert result.country_id is None
        assert result.confidence == 0.0

    def test_border_point(self, resolver):
        """Test a point just inside France at the German border."""
        result = resolver.resolve_coordinates(48.5, 7.98)
        assert result.iso2 == "FR"
        assert 0.70 <= result.confidence < 0.90
        # Both countries are candidates: 0.7825 minus one ambiguity step
        assert result.confidence == pytest.approx(0.7325)

    def test_hole_excluded(self, resolver):
        """Test that a point in a lake hole belongs to no country."""
        result = resolver.resolve_coordinates(45.0, -86.0)
        assert not result.is_match

    def test_enclave(self, resolver):
        """Test that an enclave resolves to itself, not the surrounding country."""
        result = resolver.resolve_coordinates(-29.5, 28.2)
        assert result.iso2 == "LS"
        assert resolver.resolve_coordinates(-25.0, 25.0).iso2 == "ZA"

    def test_multipolygon_islands(self, resolver):
        """Test that each island of a multi-polygon country resolves."""
        assert resolver.resolve_coordinates(-17.5, 177.5).iso2 == "FJ"
        assert resolver.resolve_coordinates(-16.5, 179.5).iso2 == "FJ"
        assert not resolver.resolve_coordinates(-16.5, 177.5).is_match

    def test_idempotent(self, resolver):
        """Test that repeated queries give identical results."""
        first = resolver.resolve_coordinates(52.52, 13.405)
        second = resolver.resolve_coordinates(52.52, 13.405)
        assert first == second
        assert first.iso2 == "DE"

    def test_alias(self, resolver):
        """Test that resolve is an alias of resolve_coordinates."""
        assert resolver.resolve(48.8566, 2.3522) == resolver.resolve_coordinates(48.8566, 2.3522)

    @pytest.mark.parametrize("lat,lon", [(91.0, 0.0), (0.0, -181.0)])
    def test_invalid_coordinates(self, resolver, lat, lon):
        """Test that out-of-range coordinates raise InputRangeError."""
        with pytest.raises(InputRangeError):
            resolver.resolve_coordinates(lat, lon)

    def test_tie_keeps_first_candidate(self):
        """Test that equal confidences resolve to the first indexed candidate."""
        store = InMemoryDataStore(
            {"s": [2, 1]},
            {
                1: PolygonGeometry.single(box(10.0, 11.0, 10.0, 11.0)),
                2: PolygonGeometry.single(box(10.0, 11.0, 10.0, 11.0)),
            },
            {
                1: CountryMetadata("Alpha", "AA", "AAA"),
                2: CountryMetadata("Beta", "BB", "BBB"),
            },
        )
        result = Resolver(store).resolve_coordinates(10.5, 10.5)
        assert result.country_id == 2
        assert result.iso2 == "BB"

    def test_overlap_prefers_farther_border(self):
        """Test that the country whose border is farther from the point wins."""
        store = InMemoryDataStore(
            {"s": [2, 1]},
            {
                1: PolygonGeometry.single(box(10.0, 11.0, 10.0, 11.0)),
                2: PolygonGeometry.single(box(10.47, 10.53, 10.47, 10.53)),
            },
            {
                1: CountryMetadata("Alpha", "AA", "AAA"),
                2: CountryMetadata("Beta", "BB", "BBB"),
            },
        )
        result = Resolver(store).resolve_coordinates(10.5, 10.5)
        assert result.iso2 == "AA"
        # 0.98 minus one ambiguity step
        assert result.confidence == pytest.approx(0.93)

    def test_confidence_bounds(self, resolver):
        """Test that matched confidences stay within [0.5, 1.0]."""
        for lat, lon in [(40.0, -100.0), (48.5, 7.98), (25.001, -100.0), (-29.5, 28.2)]:
            result = resolver.resolve_coordinates(lat, lon)
            assert 0.5 <= result.confidence <= 1.0


class TestCandidates:
    """Tests for candidate strategies."""

    def test_primary(self, resolver):
        """Test that an indexed cell uses its own entry."""
        assert resolver.candidates(geohash.encode(40.7128, -74.0060)) == [1]

    def test_neighbors(self):
        """Test fallback to neighboring cells."""
        cell = geohash.encode(10.5, 10.5)
        neighbor = geohash.neighbors(cell)[0]
        store = InMemoryDataStore(
            {neighbor: [1]},
            {1: PolygonGeometry.single(box(10.0, 11.0, 10.0, 11.0))},
            {1: CountryMetadata("Alpha", "AA", "AAA")},
        )
        assert Resolver(store).candidates(cell) == [1]

    def test_extended_neighbors(self):
        """Test fallback to cells two steps away."""
        cell = geohash.encode(10.5, 10.5)
        far = geohash.neighbors(geohash.neighbors(cell)[0])[0]
        assert far != cell
        assert far not in geohash.neighbors(cell)

        store = InMemoryDataStore(
            {far: [1]},
            {1: PolygonGeometry.single(box(10.0, 11.0, 10.0, 11.0))},
            {1: CountryMetadata("Alpha", "AA", "AAA")},
        )
        resolver = Resolver(store)
        assert resolver.candidates(cell) == [1]
        assert resolver.resolve_coordinates(10.5, 10.5).iso2 == "AA"

    def test_all_countries(self):
        """Test the last strategy returning every country."""
        store = InMemoryDataStore(
            {},
            {1: PolygonGeometry.single(box(10.0, 11.0, 10.0, 11.0))},
            {1: CountryMetadata("Alpha", "AA", "AAA")},
        )
        resolver = Resolver(store)
        assert resolver.candidates(geohash.encode(10.5, 10.5)) == [1]
        result = resolver.resolve_coordinates(10.5, 10.5)
        assert result.iso2 == "AA"
        assert result.confidence == pytest.approx(0.98)

    def test_empty_store(self):
        """Test that an empty store yields no match."""
        resolver = Resolver(InMemoryDataStore({}, {}, {}))
        assert not resolver.resolve_coordinates(10.0, 10.0).is_match


class TestFallback:
    """Tests for the exhaustive scan and store consistency."""

    @pytest.fixture
    def stale_store(self):
        """Store whose index points at the wrong country."""
        return InMemoryDataStore(
            {"s": [2]},
            {
                1: PolygonGeometry.single(box(10.0, 11.0, 10.0, 11.0)),
                2: PolygonGeometry.single(box(20.0, 21.0, 20.0, 21.0)),
            },
            {
                1: CountryMetadata("Alpha", "AA", "AAA"),
                2: CountryMetadata("Beta", "BB", "BBB"),
            },
        )

    def test_exhaustive_scan(self, stale_store):
        """Test that the scan finds the country with a discounted score."""
        result = Resolver(stale_store).resolve_coordinates(10.5, 10.5)
        assert result.iso2 == "AA"
        assert result.confidence == pytest.approx(0.98 * 0.95)

    def test_exhaustive_scan_disabled(self, stale_store):
        """Test that disabling the scan returns no match."""
        resolver = Resolver(stale_store, ResolverConfig(exhaustive_fallback=False))
        assert not resolver.resolve_coordinates(10.5, 10.5).is_match

    def test_candidate_without_polygon_skipped(self):
        """Test that an indexed ID with no polygon is ignored."""
        store = InMemoryDataStore(
            {"s": [3, 1]},
            {1: PolygonGeometry.single(box(10.0, 11.0, 10.0, 11.0))},
            {1: CountryMetadata("Alpha", "AA", "AAA")},
        )
        result = Resolver(store).resolve_coordinates(10.5, 10.5)
        assert result.iso2 == "AA"
        # Two candidates were considered
        assert result.confidence == pytest.approx(0.93)

    def test_missing_polygon_in_scan(self):
        """Test that a country without a polygon fails the exhaustive scan."""
        store = InMemoryDataStore(
            {"s": [2]},
            {2: PolygonGeometry.single(box(20.0, 21.0, 20.0, 21.0))},
            {
                1: CountryMetadata("Alpha", "AA", "AAA"),
                2: CountryMetadata("Beta", "BB", "BBB"),
            },
        )
        with pytest.raises(DataConsistencyError):
            Resolver(store).resolve_coordinates(10.5, 10.5)

    def test_missing_metadata(self):
        """Test that a matched country without metadata is an error."""
        store = InMemoryDataStore(
            {"s": [1]},
            {1: PolygonGeometry.single(box(10.0, 11.0, 10.0, 11.0))},
            {},
        )
        with pytest.raises(DataConsistencyError):
            Resolver(store).resolve_coordinates(10.5, 10.5)


class TestResolveCountry:
    """Tests for reverse resolution."""

    @pytest.mark.parametrize("identifier", [
        "United States of America",
        "united states of america",
        "US",
        "us",
        "USA",
        " usa ",
        "United States",
        "united_states",
    ])
    def test_identifiers(self, resolver, identifier):
        """Test that names and codes resolve to the same country."""
        result = resolver.resolve_country(identifier)
        assert result.iso2 == "US"
        assert result.confidence == 1.0

    def test_centroid(self, resolver):
        """Test the representative coordinate of a rectangle."""
        result = resolver.resolve_country("France")
        assert result.latitude == pytest.approx(46.5)
        assert result.longitude == pytest.approx(1.5)
        assert result.name == "France"
        assert result.timezone == "Europe/Paris"

    def test_multipolygon_centroid(self, resolver):
        """Test that island centroids are averaged."""
        result = resolver.resolve_country("FJ")
        assert result.coordinates == pytest.approx((-17.0, 178.5))

    def test_exact_name_beats_containment(self, resolver):
        """Test that 'Niger' is not captured by 'Nigeria'."""
        assert resolver.resolve_country("Niger").iso3 == "NER"
        assert resolver.resolve_country("Nigeria").iso3 == "NGA"

    def test_code_beats_name(self):
        """Test that an ISO2 match wins over a name match elsewhere."""
        store = InMemoryDataStore(
            {},
            {
                1: PolygonGeometry.single(box(0.0, 1.0, 0.0, 1.0)),
                2: PolygonGeometry.single(box(2.0, 3.0, 2.0, 3.0)),
            },
            {
                1: CountryMetadata("CA", "XX", "XXX"),
                2: CountryMetadata("Canada", "CA", "CAN"),
            },
        )
        assert Resolver(store).resolve_country("ca").country_id == 2

    def test_alias(self, resolver):
        """Test that resolve_by_country is an alias of resolve_country."""
        assert resolver.resolve_by_country("DE") == resolver.resolve_country("DE")

    def test_sentinel_never_matches(self):
        """Test that '-99' does not match territories without codes."""
        store = InMemoryDataStore(
            {},
            {1: PolygonGeometry.single(box(0.0, 1.0, 0.0, 1.0))},
            {1: CountryMetadata("Somaliland", "-99", "-99")},
        )
        resolver = Resolver(store)
        with pytest.raises(NotFoundError):
            resolver.resolve_country("-99")
        assert resolver.resolve_country("Somaliland").country_id == 1

    @pytest.mark.parametrize("identifier", ["", "   ", "Atlantis", "ZZ"])
    def test_not_found(self, resolver, identifier):
        """Test that blank and unknown identifiers raise NotFoundError."""
        with pytest.raises(NotFoundError):
            resolver.resolve_country(identifier)

    def test_not_found_is_lookup_error(self, resolver):
        """Test that NotFoundError is a LookupError."""
        with pytest.raises(LookupError):
            resolver.resolve_country("Atlantis")

    def test_missing_polygon(self):
        """Test that a matched country without a polygon is an error."""
        store = InMemoryDataStore({}, {}, {1: CountryMetadata("Alpha", "AA", "AAA")})
        with pytest.raises(DataConsistencyError):
            Resolver(store).resolve_country("AA")

    def test_round_trip(self, resolver):
        """Test that a rectangle's centroid resolves back to the country."""
        for code in ("US", "FR", "DE", "NE", "NG"):
            reverse = resolver.resolve_country(code)
            assert resolver.resolve_coordinates(reverse.latitude, reverse.longitude).iso2 == code
