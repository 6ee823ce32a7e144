# path: route-replay-api/app/services/leg_geometry.py

from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple

from app.models.playback import Coordinate, LegGeometryTable
from app.models.route_models import Waypoint

logger = logging.getLogger(__name__)


def straight_leg(start: Waypoint, end: Waypoint) -> Tuple[Coordinate, Coordinate]:
    return (start.coordinate, end.coordinate)


def anchor_leg(coords: Sequence[Coordinate], start: Coordinate, end: Coordinate) -> Tuple[Coordinate, ...]:
    # Road-snapped geometry usually starts/ends on the nearest road, not on the fix itself
    out = list(coords)
    if out[0] != start:
        out.insert(0, start)
    if out[-1] != end:
        out.append(end)
    return tuple(out)


def build_leg_geometry_table(
    waypoints: Sequence[Waypoint],
    provided: Optional[Sequence[Optional[Sequence[Coordinate]]]] = None,
) -> LegGeometryTable:
    """
    Per-leg polylines plus the flattened full route.

    ``provided[i]`` is the routing service's polyline for leg i, or None when
    it was unavailable; those legs fall back to the straight line between
    their waypoints. Every leg ends up with at least 2 coordinates.
    """
    leg_count = max(0, len(waypoints) - 1)
    if provided is not None and len(provided) != leg_count:
        raise ValueError(f"Expected {leg_count} leg geometries, got {len(provided)}")

    legs: List[Tuple[Coordinate, ...]] = []
    snapped: List[bool] = []
    for i in range(leg_count):
        start, end = waypoints[i], waypoints[i + 1]
        coords = provided[i] if provided is not None else None
        if coords is not None and len(coords) >= 2:
            legs.append(anchor_leg(coords, start.coordinate, end.coordinate))
            snapped.append(True)
        else:
            if coords is not None:
                logger.warning("Leg %d geometry has %d point(s); using straight line", i, len(coords))
            legs.append(straight_leg(start, end))
            snapped.append(False)

    flattened: List[Coordinate] = []
    offsets = [0]
    for coords in legs:
        flattened.extend(coords)
        offsets.append(len(flattened))

    return LegGeometryTable(
        legs=tuple(legs),
        flattened=tuple(flattened),
        leg_offsets=tuple(offsets),
        snapped=tuple(snapped),
    )
