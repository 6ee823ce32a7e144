# path: route-replay-api/app/services/progress.py

from __future__ import annotations

import math
from typing import Sequence

from app.models.playback import ProgressInfo, Timeline
from app.models.route_models import Waypoint
from app.utils.geo import haversine_m


def format_clock(seconds: float) -> str:
    seconds = max(0.0, seconds)
    hours = int(seconds // 3600)
    mins = int((seconds % 3600) // 60)
    secs = int(seconds % 60)
    if hours > 0:
        return f"{hours}:{mins:02d}:{secs:02d}"
    return f"{mins}:{secs:02d}"


def route_index_at(elapsed: float, total_duration: float, point_count: int) -> int:
    """Discrete index into the flattened route; seek_to_index is its inverse."""
    if total_duration <= 0 or point_count < 2:
        return 0
    progress = min(1.0, max(0.0, elapsed / total_duration))
    # seek_to_index(i) followed by route_index_at must give i back despite rounding
    return int(math.floor(progress * (point_count - 1) + 1e-9))


def leg_speed_kmh(waypoints: Sequence[Waypoint], timeline: Timeline, stop_number: int) -> float:
    """Average straight-line speed over the leg leaving the current stop."""
    if timeline.leg_count == 0:
        return 0.0
    leg = min(max(stop_number - 1, 0), timeline.leg_count - 1)
    duration = timeline.leg_durations[leg]
    if duration <= 0:
        return 0.0
    distance_m = haversine_m(waypoints[leg].coordinate, waypoints[leg + 1].coordinate)
    return round(distance_m / duration * 3.6, 2)


def build_progress(
    elapsed: float,
    timeline: Timeline,
    waypoints: Sequence[Waypoint],
    stop_number: int,
) -> ProgressInfo:
    total = timeline.total_duration
    percent = (elapsed / total) * 100.0 if total > 0 else 0.0
    stop = waypoints[stop_number - 1] if 0 < stop_number <= len(waypoints) else None
    return ProgressInfo(
        percent=percent,
        clock_text=format_clock(elapsed),
        stop_number=stop_number,
        stop_count=len(waypoints),
        stop_latitude=stop.latitude if stop else None,
        stop_longitude=stop.longitude if stop else None,
        stop_timestamp=stop.timestamp if stop else None,
        leg_speed_kmh=leg_speed_kmh(waypoints, timeline, stop_number),
    )
