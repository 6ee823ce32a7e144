# path: route-replay-api/app/services/timeline.py

from __future__ import annotations

import logging
from typing import List, Sequence

from app.errors import DegenerateRouteError, InvalidTimelineError
from app.models.playback import Timeline
from app.models.route_models import Waypoint

logger = logging.getLogger(__name__)


def leg_durations_s(waypoints: Sequence[Waypoint], strict: bool = False) -> List[float]:
    """
    Seconds between consecutive waypoint timestamps, one entry per leg.

    Out-of-order timestamps raise InvalidTimelineError when ``strict``;
    otherwise the leg is clamped to zero so the rest of the route stays
    animatable. Legs touching a missing timestamp also get zero.
    """
    durations: List[float] = []
    for i in range(len(waypoints) - 1):
        t1 = waypoints[i].timestamp
        t2 = waypoints[i + 1].timestamp
        if t1 is None or t2 is None:
            logger.warning("Leg %d has a missing timestamp; treating its duration as 0", i)
            durations.append(0.0)
            continue
        dur = (t2 - t1).total_seconds()
        if dur < 0:
            if strict:
                raise InvalidTimelineError(i, dur)
            logger.warning("Leg %d has negative duration %.3fs; clamping to 0", i, dur)
            dur = 0.0
        durations.append(float(dur))
    return durations


def build_timeline(waypoints: Sequence[Waypoint], strict: bool = False) -> Timeline:
    durations = leg_durations_s(waypoints, strict=strict)
    # Accumulated leg by leg, the same way locate_leg walks the legs
    total = 0.0
    for dur in durations:
        total += dur
    timeline = Timeline(
        leg_durations=tuple(durations),
        total_duration=float(total),
        waypoint_count=len(waypoints),
    )
    if not timeline.animatable:
        logger.info(
            "Route with %d waypoint(s) and %.3fs total is not animatable",
            len(waypoints),
            total,
        )
    return timeline


def require_animatable(timeline: Timeline) -> None:
    if timeline.waypoint_count < 2:
        raise DegenerateRouteError(f"Route needs at least 2 waypoints, got {timeline.waypoint_count}")
    if timeline.total_duration <= 0:
        raise DegenerateRouteError("Route total duration is zero")
