"""
Geofence monitoring around a destination.

A geofence is a circle of a given radius around a destination. A monitor
tracks successive positions and reports a state for each:

- outside: beyond the radius
- approaching: beyond the radius and closer than the previous position
- inside: within the radius (plus the inside buffer)
- leaving: within the radius and farther than the previous position

State changes and movement produce alerts: "entered", "exited",
"approaching", "leaving" and "reached" (inside and within the reached
threshold of the destination). Distances are great-circle (Haversine)
kilometers; radius and thresholds are given in "m", "km" or "mile".
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

from .distance import Location, distance_km, locate
from .resolver import Resolver

logger = logging.getLogger(__name__)

METERS_PER_UNIT = {
    "m": 1.0,
    "km": 1000.0,
    "mile": 1609.34,
}

_UNIT_ALIASES = {
    "m": "m", "meter": "m", "meters": "m", "metre": "m", "metres": "m",
    "km": "km", "kilometer": "km", "kilometers": "km", "kilometre": "km", "kilometres": "km",
    "mile": "mile", "miles": "mile", "mi": "mile",
}


class GeofenceState(str, Enum):
    """Position relative to a geofence."""
    OUTSIDE = "outside"
    APPROACHING = "approaching"
    INSIDE = "inside"
    LEAVING = "leaving"


def normalize_radius_unit(unit: str) -> str:
    """
    Normalize a radius unit to "m", "km" or "mile".

    Raises:
        ValueError: For an unknown unit
    """
    value = _UNIT_ALIASES.get(unit.strip().lower())
    if value is None:
        raise ValueError(f"Unknown unit: {unit!r}. Supported: 'm', 'km', 'mile'")
    return value


def to_meters(value: float, unit: str) -> float:
    return value * METERS_PER_UNIT[normalize_radius_unit(unit)]


def from_meters(meters: float, unit: str) -> float:
    return meters / METERS_PER_UNIT[normalize_radius_unit(unit)]


@dataclass
class GeofenceConfig:
    """Configuration for a geofence."""

    radius: float
    """Geofence radius, in radius_unit."""

    radius_unit: str = "m"
    """Unit of radius, reached_threshold and inside_buffer."""

    reached_threshold: Optional[float] = None
    """Distance from the destination that counts as reached (default: 10% of radius)."""

    approaching_threshold_percent: float = 10.0
    """Minimum decrease of distance, in percent, for an approaching alert."""

    leaving_threshold_percent: float = 10.0
    """Minimum increase of distance, in percent, for a leaving alert."""

    inside_buffer: float = 0.0
    """Extra distance beyond the radius still counted as inside."""

    def __post_init__(self):
        self.radius_unit = normalize_radius_unit(self.radius_unit)
        if self.radius <= 0:
            raise ValueError("radius must be positive")
        if self.reached_threshold is None:
            self.reached_threshold = self.radius * 0.1
        if self.reached_threshold < 0:
            raise ValueError("reached_threshold cannot be negative")
        if self.approaching_threshold_percent <= 0:
            raise ValueError("approaching_threshold_percent must be positive")
        if self.leaving_threshold_percent <= 0:
            raise ValueError("leaving_threshold_percent must be positive")
        if self.inside_buffer < 0:
            raise ValueError("inside_buffer cannot be negative")

    @property
    def radius_m(self) -> float:
        return to_meters(self.radius, self.radius_unit)

    @property
    def inside_threshold_m(self) -> float:
        """Largest distance in meters that still counts as inside."""
        return to_meters(self.radius + self.inside_buffer, self.radius_unit)

    @property
    def reached_threshold_m(self) -> float:
        return to_meters(self.reached_threshold, self.radius_unit)


@dataclass(frozen=True)
class GeofenceAlert:
    """
    An event raised by a geofence check.

    Distances are in `unit`. `distance_change` is positive when the
    movement matches the alert (closer for entered/approaching/reached,
    farther for exited); for leaving it is the (negative) decrease.
    """
    alert_type: str
    distance: float
    unit: str
    state: GeofenceState
    previous_distance: Optional[float] = None
    distance_change: Optional[float] = None
    distance_change_percent: Optional[float] = None


@dataclass(frozen=True)
class GeofenceResult:
    """Outcome of one geofence check."""
    is_inside: bool
    distance: float
    unit: str
    state: GeofenceState
    alerts: Tuple[GeofenceAlert, ...]
    current_location: Location
    destination: Location
    radius: float
    radius_unit: str

    @property
    def alert_types(self) -> List[str]:
        return [alert.alert_type for alert in self.alerts]


def determine_state(
    distance_m: float,
    inside_threshold_m: float,
    previous_state: Optional[GeofenceState],
    previous_distance_m: Optional[float],
) -> GeofenceState:
    """
    Determine the geofence state from the current and previous positions.

    Args:
        distance_m: Current distance to the destination in meters
        inside_threshold_m: Radius plus inside buffer in meters
        previous_state: State of the previous check, None for the first
        previous_distance_m: Distance of the previous check in meters

    Returns:
        The new GeofenceState
    """
    inside = distance_m <= inside_threshold_m
    if previous_state is None or previous_distance_m is None:
        return GeofenceState.INSIDE if inside else GeofenceState.OUTSIDE

    closer_by = previous_distance_m - distance_m

    if inside:
        if previous_state in (GeofenceState.OUTSIDE, GeofenceState.APPROACHING):
            return GeofenceState.INSIDE
        return GeofenceState.LEAVING if closer_by < 0 else GeofenceState.INSIDE

    if previous_state in (GeofenceState.INSIDE, GeofenceState.LEAVING):
        return GeofenceState.OUTSIDE
    return GeofenceState.APPROACHING if closer_by > 0 else GeofenceState.OUTSIDE


def _change_percent(change: float, previous: float) -> Optional[float]:
    if previous <= 0:
        return None
    return change / previous * 100.0


def generate_alerts(
    state: GeofenceState,
    previous_state: Optional[GeofenceState],
    distance: float,
    previous_distance: Optional[float],
    config: GeofenceConfig,
    unit: str = "km",
) -> List[GeofenceAlert]:
    """
    Generate the alerts for a state transition.

    Args:
        state: Current state
        previous_state: State of the previous check, None for the first
        distance: Current distance in `unit`
        previous_distance: Previous distance in `unit`, None for the first
        config: Geofence configuration (thresholds)
        unit: Unit of both distances

    Returns:
        Alerts in the order entered/exited, approaching, leaving, reached
    """
    alerts: List[GeofenceAlert] = []
    if previous_distance is None:
        return alerts

    closer_by = previous_distance - distance
    closer_percent = _change_percent(closer_by, previous_distance)

    def alert(alert_type: str, change: float, percent: Optional[float]) -> GeofenceAlert:
        return GeofenceAlert(
            alert_type=alert_type,
            distance=distance,
            unit=unit,
            state=state,
            previous_distance=previous_distance,
            distance_change=change,
            distance_change_percent=percent,
        )

    if previous_state is not None and previous_state != state:
        if state == GeofenceState.INSIDE and previous_state in (GeofenceState.OUTSIDE, GeofenceState.APPROACHING):
            alerts.append(alert("entered", closer_by, closer_percent))
        elif state == GeofenceState.OUTSIDE and previous_state in (GeofenceState.INSIDE, GeofenceState.LEAVING):
            farther_percent = _change_percent(-closer_by, previous_distance)
            alerts.append(alert("exited", -closer_by, farther_percent))

    percent = closer_percent if closer_percent is not None else 0.0

    if state == GeofenceState.APPROACHING and percent >= config.approaching_threshold_percent:
        alerts.append(alert("approaching", closer_by, percent))

    if state == GeofenceState.LEAVING and percent <= -config.leaving_threshold_percent:
        alerts.append(alert("leaving", closer_by, percent))

    reached_threshold = from_meters(config.reached_threshold_m, unit)
    if (
        state == GeofenceState.INSIDE
        and distance <= reached_threshold
        and previous_state in (None, GeofenceState.OUTSIDE, GeofenceState.APPROACHING)
    ):
        alerts.append(alert("reached", closer_by, closer_percent))

    return alerts


class GeofenceMonitor:
    """
    Stateful geofence monitor.

    The destination is resolved on the first check and reused until
    `reset()`; each check compares the new position with the previous one.
    """

    def __init__(self, config: GeofenceConfig, resolver: Optional[Resolver] = None):
        """
        Args:
            config: Geofence configuration
            resolver: Resolver used for country identifiers (optional)
        """
        self.config = config
        self.resolver = resolver
        self.previous_state: Optional[GeofenceState] = None
        self.previous_distance_m: Optional[float] = None
        self.destination_coords: Optional[Tuple[float, float]] = None

    def reset(self) -> None:
        """Forget the previous position, state and destination."""
        self.previous_state = None
        self.previous_distance_m = None
        self.destination_coords = None

    def check(self, current_location: Location, destination: Location) -> GeofenceResult:
        """
        Check a position against the geofence.

        Args:
            current_location: (lat, lon) tuple or country identifier
            destination: (lat, lon) tuple or country identifier

        Returns:
            GeofenceResult with the new state and any alerts

        Raises:
            InputRangeError: If coordinates are out of range
            NotFoundError: If a country identifier does not resolve
            ValueError: If an identifier is given without a resolver
        """
        if self.destination_coords is None:
            self.destination_coords, _ = locate(destination, self.resolver)
        current_coords, _ = locate(current_location, self.resolver)

        km = distance_km(*current_coords, *self.destination_coords, method="haversine")
        distance_m = km * 1000.0
        inside_threshold_m = self.config.inside_threshold_m

        state = determine_state(
            distance_m, inside_threshold_m, self.previous_state, self.previous_distance_m
        )
        previous_km = None if self.previous_distance_m is None else self.previous_distance_m / 1000.0
        alerts = generate_alerts(state, self.previous_state, km, previous_km, self.config)

        if state != self.previous_state:
            logger.debug("Geofence state %s -> %s at %.3f km", self.previous_state, state, km)
        for alert in alerts:
            logger.info("Geofence alert %s at %.3f km", alert.alert_type, km)

        self.previous_state = state
        self.previous_distance_m = distance_m

        return GeofenceResult(
            is_inside=distance_m <= inside_threshold_m,
            distance=km,
            unit="km",
            state=state,
            alerts=tuple(alerts),
            current_location=current_location,
            destination=destination,
            radius=self.config.radius,
            radius_unit=self.config.radius_unit,
        )


def check_geofence(
    current_location: Location,
    destination: Location,
    radius: float,
    radius_unit: str = "m",
    resolver: Optional[Resolver] = None,
    **options,
) -> GeofenceResult:
    """
    One-off geofence check without state tracking.

    Args:
        current_location: (lat, lon) tuple or country identifier
        destination: (lat, lon) tuple or country identifier
        radius: Geofence radius
        radius_unit: "m", "km" or "mile"
        resolver: Resolver used for country identifiers
        **options: Further GeofenceConfig fields

    Returns:
        GeofenceResult; the state is inside or outside and there are no
        alerts, as there is no previous position
    """
    config = GeofenceConfig(radius=radius, radius_unit=radius_unit, **options)
    return GeofenceMonitor(config, resolver).check(current_location, destination)
