"""Tests for geofence monitoring."""

import pytest

from geo_intel_offline.geofence import (
    GeofenceConfig,
    GeofenceMonitor,
    GeofenceState,
    check_geofence,
    determine_state,
    from_meters,
    generate_alerts,
    normalize_radius_unit,
    to_meters,
)
from geo_intel_offline.resolver import Resolver

DESTINATION = (40.0, -74.0)


def north_of_destination(degrees):
    """Point due north of the destination (1 degree ~ 111.2 km)."""
    return (DESTINATION[0] + degrees, DESTINATION[1])


class TestUnits:
    """Tests for radius unit conversion."""

    def test_to_meters(self):
        """Test conversion of each unit to meters."""
        assert to_meters(250, "m") == 250
        assert to_meters(1.5, "km") == 1500
        assert to_meters(1, "mile") == pytest.approx(1609.34)

    def test_from_meters(self):
        """Test conversion from meters."""
        assert from_meters(1500, "km") == 1.5
        assert from_meters(1609.34, "miles") == pytest.approx(1.0)

    def test_aliases(self):
        """Test unit name normalization."""
        assert normalize_radius_unit(" Meters ") == "m"
        assert normalize_radius_unit("kilometre") == "km"
        assert normalize_radius_unit("mi") == "mile"

    def test_unknown_unit(self):
        """Test that an unknown unit is rejected."""
        with pytest.raises(ValueError):
            to_meters(1, "furlong")


class TestGeofenceConfig:
    """Tests for geofence configuration."""

    def test_defaults(self):
        """Test the default thresholds."""
        config = GeofenceConfig(radius=500)
        assert config.radius_unit == "m"
        assert config.reached_threshold == 50
        assert config.approaching_threshold_percent == 10.0
        assert config.leaving_threshold_percent == 10.0
        assert config.inside_buffer == 0.0

    def test_thresholds_in_meters(self):
        """Test that thresholds are converted with the radius unit."""
        config = GeofenceConfig(radius=2, radius_unit="KM", inside_buffer=0.5)
        assert config.radius_unit == "km"
        assert config.radius_m == 2000
        assert config.inside_threshold_m == 2500
        assert config.reached_threshold_m == pytest.approx(200)

    @pytest.mark.parametrize("kwargs", [
        {"radius": 0},
        {"radius": -1},
        {"radius": 1, "radius_unit": "yard"},
        {"radius": 1, "reached_threshold": -0.1},
        {"radius": 1, "approaching_threshold_percent": 0},
        {"radius": 1, "leaving_threshold_percent": -5},
        {"radius": 1, "inside_buffer": -1},
    ])
    def test_invalid(self, kwargs):
        """Test that invalid values are rejected."""
        with pytest.raises(ValueError):
            GeofenceConfig(**kwargs)


class TestDetermineState:
    """Tests for state transitions."""

    @pytest.mark.parametrize("distance,expected", [
        (500.0, GeofenceState.INSIDE),
        (1000.0, GeofenceState.INSIDE),
        (1500.0, GeofenceState.OUTSIDE),
    ])
    def test_first_check(self, distance, expected):
        """Test that the first check only looks at position."""
        assert determine_state(distance, 1000.0, None, None) == expected

    @pytest.mark.parametrize("previous_state,previous,distance,expected", [
        (GeofenceState.OUTSIDE, 1500.0, 1200.0, GeofenceState.APPROACHING),
        (GeofenceState.OUTSIDE, 1500.0, 1800.0, GeofenceState.OUTSIDE),
        (GeofenceState.OUTSIDE, 1500.0, 1500.0, GeofenceState.OUTSIDE),
        (GeofenceState.APPROACHING, 1200.0, 800.0, GeofenceState.INSIDE),
        (GeofenceState.INSIDE, 200.0, 100.0, GeofenceState.INSIDE),
        (GeofenceState.INSIDE, 200.0, 200.0, GeofenceState.INSIDE),
        (GeofenceState.INSIDE, 200.0, 600.0, GeofenceState.LEAVING),
        (GeofenceState.LEAVING, 600.0, 1300.0, GeofenceState.OUTSIDE),
        (GeofenceState.INSIDE, 900.0, 1100.0, GeofenceState.OUTSIDE),
    ])
    def test_transitions(self, previous_state, previous, distance, expected):
        """Test transitions from a previous position."""
        assert determine_state(distance, 1000.0, previous_state, previous) == expected


class TestGenerateAlerts:
    """Tests for alert generation."""

    @pytest.fixture
    def config(self):
        """1 km geofence; reached within 100 m."""
        return GeofenceConfig(radius=1, radius_unit="km")

    def test_first_check_has_no_alerts(self, config):
        """Test that nothing is reported without a previous position."""
        assert generate_alerts(GeofenceState.INSIDE, None, 0.05, None, config) == []

    def test_entered(self, config):
        """Test the entered alert and its distance change."""
        alerts = generate_alerts(GeofenceState.INSIDE, GeofenceState.APPROACHING, 0.5, 2.0, config)
        assert [a.alert_type for a in alerts] == ["entered"]
        assert alerts[0].previous_distance == 2.0
        assert alerts[0].distance_change == pytest.approx(1.5)
        assert alerts[0].distance_change_percent == pytest.approx(75.0)

    def test_entered_and_reached(self, config):
        """Test that entering close to the destination also reports reached."""
        alerts = generate_alerts(GeofenceState.INSIDE, GeofenceState.OUTSIDE, 0.05, 2.0, config)
        assert [a.alert_type for a in alerts] == ["entered", "reached"]

    def test_reached_not_repeated(self, config):
        """Test that staying inside does not report reached again."""
        assert generate_alerts(GeofenceState.INSIDE, GeofenceState.INSIDE, 0.02, 0.05, config) == []

    def test_exited(self, config):
        """Test the exited alert with a positive change."""
        alerts = generate_alerts(GeofenceState.OUTSIDE, GeofenceState.LEAVING, 1.5, 0.9, config)
        assert [a.alert_type for a in alerts] == ["exited"]
        assert alerts[0].distance_change == pytest.approx(0.6)
        assert alerts[0].state == GeofenceState.OUTSIDE

    def test_approaching_threshold(self, config):
        """Test that approaching needs the configured decrease."""
        alerts = generate_alerts(GeofenceState.APPROACHING, GeofenceState.OUTSIDE, 4.0, 5.0, config)
        assert [a.alert_type for a in alerts] == ["approaching"]
        assert alerts[0].distance_change_percent == pytest.approx(20.0)

        assert generate_alerts(GeofenceState.APPROACHING, GeofenceState.OUTSIDE, 4.9, 5.0, config) == []

    def test_leaving_threshold(self, config):
        """Test that leaving needs the configured increase."""
        alerts = generate_alerts(GeofenceState.LEAVING, GeofenceState.INSIDE, 0.6, 0.4, config)
        assert [a.alert_type for a in alerts] == ["leaving"]
        assert alerts[0].distance_change == pytest.approx(-0.2)
        assert alerts[0].distance_change_percent == pytest.approx(-50.0)

        assert generate_alerts(GeofenceState.LEAVING, GeofenceState.INSIDE, 0.42, 0.4, config) == []


class TestGeofenceMonitor:
    """Tests for stateful monitoring."""

    def test_trip(self):
        """Test a trip that approaches, enters, leaves and exits a 1 km geofence."""
        monitor = GeofenceMonitor(GeofenceConfig(radius=1, radius_unit="km"))
        trip = [
            (0.05, GeofenceState.OUTSIDE, []),
            (0.03, GeofenceState.APPROACHING, ["approaching"]),
            (0.0005, GeofenceState.INSIDE, ["entered", "reached"]),
            (0.008, GeofenceState.LEAVING, ["leaving"]),
            (0.02, GeofenceState.OUTSIDE, ["exited"]),
        ]
        for degrees, state, alert_types in trip:
            result = monitor.check(north_of_destination(degrees), DESTINATION)
            assert result.state == state
            assert result.alert_types == alert_types
            assert result.is_inside == (state in (GeofenceState.INSIDE, GeofenceState.LEAVING))

    def test_result_fields(self):
        """Test the distance, unit and echoed inputs of a result."""
        monitor = GeofenceMonitor(GeofenceConfig(radius=10, radius_unit="km"))
        current = north_of_destination(0.05)
        result = monitor.check(current, DESTINATION)
        assert result.distance == pytest.approx(5.5597, abs=1e-3)
        assert result.unit == "km"
        assert result.current_location == current
        assert result.destination == DESTINATION
        assert result.radius == 10
        assert result.radius_unit == "km"
        assert result.alerts == ()

    def test_destination_kept_until_reset(self):
        """Test that the first destination is reused until reset."""
        monitor = GeofenceMonitor(GeofenceConfig(radius=1, radius_unit="km"))
        monitor.check(north_of_destination(0.05), DESTINATION)

        result = monitor.check(DESTINATION, (0.0, 0.0))
        assert result.distance == pytest.approx(0.0)

        monitor.reset()
        assert monitor.previous_state is None
        result = monitor.check(DESTINATION, (0.0, 0.0))
        assert result.distance > 1000
        assert result.alerts == ()

    def test_inside_buffer(self):
        """Test that the buffer extends the inside region."""
        current = north_of_destination(0.0108)  # ~1.2 km
        plain = GeofenceMonitor(GeofenceConfig(radius=1000))
        buffered = GeofenceMonitor(GeofenceConfig(radius=1000, inside_buffer=300))
        assert not plain.check(current, DESTINATION).is_inside
        assert buffered.check(current, DESTINATION).is_inside


class TestCheckGeofence:
    """Tests for one-off checks."""

    def test_inside_meters(self):
        """Test a point 55 m from the destination with a 100 m radius."""
        result = check_geofence(north_of_destination(0.0005), DESTINATION, 100)
        assert result.is_inside
        assert result.state == GeofenceState.INSIDE
        assert result.alerts == ()

    def test_mile_radius(self):
        """Test a point 1.5 km away against a one-mile radius."""
        result = check_geofence(north_of_destination(0.0135), DESTINATION, 1, radius_unit="mile")
        assert result.is_inside
        assert result.radius_unit == "mile"

    def test_outside(self):
        """Test a point beyond the radius."""
        result = check_geofence(north_of_destination(0.05), DESTINATION, 5, radius_unit="km")
        assert not result.is_inside
        assert result.state == GeofenceState.OUTSIDE

    def test_options_forwarded(self):
        """Test that extra options reach the configuration."""
        result = check_geofence(north_of_destination(0.0108), DESTINATION, 1000, inside_buffer=300)
        assert result.is_inside

    def test_country_destination(self, world_store):
        """Test a country identifier resolved to its representative point."""
        result = check_geofence((46.5, 1.5), "France", 50, radius_unit="km", resolver=Resolver(world_store))
        assert result.distance == pytest.approx(0.0, abs=1e-6)
        assert result.is_inside
        assert result.destination == "France"

    def test_identifier_without_resolver(self):
        """Test that identifiers need a resolver."""
        with pytest.raises(ValueError):
            check_geofence((46.5, 1.5), "France", 50)
