# path: route-replay-api/app/models/playback.py

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple


@dataclass(frozen=True)
class Coordinate:
    lat: float
    lon: float


@dataclass(frozen=True)
class Timeline:
    leg_durations: Tuple[float, ...]
    total_duration: float
    waypoint_count: int

    @property
    def leg_count(self) -> int:
        return len(self.leg_durations)

    @property
    def animatable(self) -> bool:
        return self.waypoint_count >= 2 and self.total_duration > 0


@dataclass(frozen=True)
class LegGeometryTable:
    legs: Tuple[Tuple[Coordinate, ...], ...]
    flattened: Tuple[Coordinate, ...]
    leg_offsets: Tuple[int, ...]  # len(legs) + 1 entries, last == len(flattened)
    snapped: Tuple[bool, ...]  # True where the routing service supplied the leg

    @property
    def point_count(self) -> int:
        return len(self.flattened)


@dataclass(frozen=True)
class Pose:
    coordinate: Coordinate
    bearing_deg: float
    leg_index: int
    sub_index: int
    sub_fraction: float
    leg_fraction: float
    at_end: bool = False
    at_start: bool = False


@dataclass(frozen=True)
class StopChange:
    previous: Optional[int]  # 0-based, None when nothing was reported yet
    current: int
    stop_number: int
    latitude: float
    longitude: float
    timestamp: Optional[datetime]


@dataclass(frozen=True)
class ProgressInfo:
    percent: float
    clock_text: str
    stop_number: int
    stop_count: int
    stop_latitude: Optional[float]
    stop_longitude: Optional[float]
    stop_timestamp: Optional[datetime]
    leg_speed_kmh: float


@dataclass(frozen=True)
class FrameUpdate:
    route_version: str
    elapsed_s: float
    total_duration_s: float
    playing: bool
    speed: float
    finished: bool
    pose: Pose
    traveled_path: Tuple[Coordinate, ...]
    stop_number: int
    route_index: int
    progress: ProgressInfo
    stop_change: Optional[StopChange] = None
