# path: route-replay-api/app/errors.py

from __future__ import annotations


class RouteReplayError(Exception):
    """Base class for route animation failures."""


class DataError(RouteReplayError, ValueError):
    """Malformed or inconsistent waypoint data."""


class InvalidTimelineError(DataError):
    def __init__(self, leg_index: int, duration_s: float):
        super().__init__(f"leg {leg_index} has negative duration {duration_s:.3f}s (out-of-order timestamps)")
        self.leg_index = leg_index
        self.duration_s = duration_s


class GeometryFetchError(RouteReplayError):
    def __init__(self, leg_index: int, reason: str):
        super().__init__(f"leg {leg_index}: {reason}")
        self.leg_index = leg_index
        self.reason = reason


class DegenerateRouteError(RouteReplayError):
    """Route has fewer than 2 waypoints or zero total duration; it cannot be animated."""
