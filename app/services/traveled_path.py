# path: route-replay-api/app/services/traveled_path.py

from __future__ import annotations

from typing import Tuple

from app.models.playback import Coordinate, LegGeometryTable, Pose


def traveled_index(pose: Pose, table: LegGeometryTable) -> int:
    """Flattened index of the last route point fully passed, -1 before the start."""
    if pose.at_end:
        return table.point_count - 1
    if pose.at_start:
        return -1
    return table.leg_offsets[pose.leg_index] + pose.sub_index


def build_traveled_path(pose: Pose, table: LegGeometryTable) -> Tuple[Coordinate, ...]:
    if pose.at_end:
        return table.flattened
    if pose.at_start:
        return ()
    path = table.flattened[: traveled_index(pose, table) + 1]
    if 0.0 < pose.sub_fraction < 1.0:
        path = path + (pose.coordinate,)
    return path
