# path: route-replay-api/app/services/stop_tracker.py

from __future__ import annotations

import math
from typing import Optional, Sequence

from app.models.playback import StopChange
from app.models.route_models import Waypoint


def stop_index_at(elapsed: float, total_duration: float, waypoint_count: int) -> int:
    """0-based index of the current stop: floor(progress * (count - 1))."""
    if waypoint_count < 1:
        raise ValueError("route has no waypoints")
    last = waypoint_count - 1
    if total_duration <= 0 or elapsed >= total_duration:
        return last if total_duration > 0 else 0
    progress = max(0.0, elapsed) / total_duration
    return min(last, max(0, int(math.floor(progress * last))))


class StopTracker:
    """Remembers the last reported stop so changes are announced once."""

    def __init__(self, waypoints: Sequence[Waypoint]):
        self.waypoints = waypoints
        self.last_reported: Optional[int] = None

    @property
    def stop_number(self) -> int:
        return (self.last_reported or 0) + 1

    def reset(self) -> None:
        self.last_reported = None

    def update(self, elapsed: float, total_duration: float) -> Optional[StopChange]:
        idx = stop_index_at(elapsed, total_duration, len(self.waypoints))
        if idx == self.last_reported:
            return None
        previous = self.last_reported
        self.last_reported = idx
        wp = self.waypoints[idx]
        return StopChange(
            previous=previous,
            current=idx,
            stop_number=idx + 1,
            latitude=wp.latitude,
            longitude=wp.longitude,
            timestamp=wp.timestamp,
        )
