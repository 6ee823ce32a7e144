# path: route-replay-api/app/services/interpolator.py

from __future__ import annotations

import math
from typing import Sequence, Tuple

from app.models.playback import Coordinate, LegGeometryTable, Pose, Timeline
from app.services.timeline import require_animatable
from app.utils.geo import bearing_deg_true, lerp_coordinate


def locate_leg(elapsed: float, timeline: Timeline) -> Tuple[int, float]:
    """
    Returns (leg_index, leg_start_s) for ``elapsed``.

    Ties go to the earlier leg: a time exactly on a boundary belongs to the
    leg that just ended.
    """
    cum = 0.0
    last = timeline.leg_count - 1
    for i, dur in enumerate(timeline.leg_durations):
        start = cum
        cum += dur
        if elapsed <= cum or i == last:
            return i, start
    raise ValueError("timeline has no legs")


def segment_bearing(coords: Sequence[Coordinate], sub_index: int) -> float:
    return bearing_deg_true(coords[sub_index], coords[sub_index + 1])


def _end_pose(timeline: Timeline, table: LegGeometryTable) -> Pose:
    leg = timeline.leg_count - 1
    coords = table.legs[leg]
    sub = len(coords) - 2
    return Pose(
        coordinate=coords[-1],
        bearing_deg=segment_bearing(coords, sub),
        leg_index=leg,
        sub_index=sub,
        sub_fraction=1.0,
        leg_fraction=1.0,
        at_end=True,
    )


def _start_pose(table: LegGeometryTable) -> Pose:
    coords = table.legs[0]
    return Pose(
        coordinate=coords[0],
        bearing_deg=segment_bearing(coords, 0),
        leg_index=0,
        sub_index=0,
        sub_fraction=0.0,
        leg_fraction=0.0,
        at_start=True,
    )


def interpolate(elapsed: float, timeline: Timeline, table: LegGeometryTable) -> Pose:
    """
    Vehicle pose ``elapsed`` seconds after the route start.

    Raises DegenerateRouteError for routes that cannot be animated. Values
    outside [0, total_duration] are clamped to the route's ends.
    """
    require_animatable(timeline)
    if len(table.legs) != timeline.leg_count:
        raise ValueError("timeline and geometry table describe different routes")
    if math.isnan(elapsed):
        raise ValueError("elapsed must be a number")

    if elapsed >= timeline.total_duration:
        return _end_pose(timeline, table)
    if elapsed <= 0:
        return _start_pose(table)

    leg, leg_start = locate_leg(elapsed, timeline)
    leg_duration = timeline.leg_durations[leg]
    if leg_duration > 0:
        frac = min(1.0, max(0.0, (elapsed - leg_start) / leg_duration))
    else:
        frac = 1.0

    coords = table.legs[leg]
    n = len(coords)
    target = frac * (n - 1)
    if target >= n - 1:
        sub = n - 2
        return Pose(
            coordinate=coords[-1],
            bearing_deg=segment_bearing(coords, sub),
            leg_index=leg,
            sub_index=sub,
            sub_fraction=1.0,
            leg_fraction=frac,
        )

    sub = int(math.floor(target))
    sub_frac = target - sub
    return Pose(
        coordinate=lerp_coordinate(coords[sub], coords[sub + 1], sub_frac),
        bearing_deg=segment_bearing(coords, sub),
        leg_index=leg,
        sub_index=sub,
        sub_fraction=sub_frac,
        leg_fraction=frac,
    )
