# path: route-replay-api/app/models/route_models.py

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from app import config as C
from app.models.playback import Coordinate

logger = logging.getLogger(__name__)


class Waypoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    latitude: float = Field(ge=-90.0, le=90.0)
    longitude: float = Field(ge=-180.0, le=180.0)
    # None means the fix carried an unparseable timestamp; adjacent legs get zero duration
    timestamp: Optional[datetime] = None

    @field_validator("timestamp", mode="before")
    @classmethod
    def parse_timestamp(cls, value: Any):
        if value is None or isinstance(value, datetime):
            return value
        if not isinstance(value, str):
            logger.warning("Ignoring non-string waypoint timestamp %r", value)
            return None
        try:
            return datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            logger.warning("Ignoring malformed waypoint timestamp %r", value)
            return None

    @field_validator("timestamp")
    @classmethod
    def assume_utc(cls, value: Optional[datetime]):
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(lat=self.latitude, lon=self.longitude)


class RouteLoadRequest(BaseModel):
    waypoints: List[Waypoint] = Field(min_length=1)
    snap_to_roads: bool = True


class CoordinateOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    lat: float
    lon: float


class BBoxWGS84(BaseModel):
    min_lat: float
    min_lon: float
    max_lat: float
    max_lon: float


class LegSummary(BaseModel):
    i: int = Field(ge=0)
    duration_s: float = Field(ge=0)
    distance_m: float = Field(ge=0)
    point_count: int = Field(ge=2)
    snapped: bool


class RouteSummary(BaseModel):
    route_id: str
    route_version: str
    animatable: bool
    total_duration_s: float = Field(ge=0)
    stop_count: int = Field(ge=1)
    point_count: int = Field(ge=0)
    legs: List[LegSummary]
    bbox_wgs84: BBoxWGS84
    planned_path: List[CoordinateOut]
    created_at_utc: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @model_validator(mode="after")
    def validate_point_count(self):
        if self.point_count != len(self.planned_path):
            raise ValueError("point_count must equal len(planned_path)")
        for idx, leg in enumerate(self.legs):
            if leg.i != idx:
                raise ValueError("Legs must have contiguous i starting at 0")
        return self


class PoseOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    coordinate: CoordinateOut
    bearing_deg: float = Field(ge=0, lt=360)
    leg_index: int = Field(ge=0)
    sub_index: int = Field(ge=0)
    sub_fraction: float = Field(ge=0, le=1)
    leg_fraction: float = Field(ge=0, le=1)
    at_end: bool


class StopChangeOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    previous: Optional[int] = None
    current: int
    stop_number: int
    latitude: float
    longitude: float
    timestamp: Optional[datetime] = None


class ProgressOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    percent: float
    clock_text: str
    stop_number: int
    stop_count: int
    stop_latitude: Optional[float] = None
    stop_longitude: Optional[float] = None
    stop_timestamp: Optional[datetime] = None
    leg_speed_kmh: float


class FrameOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    route_version: str
    elapsed_s: float
    total_duration_s: float
    playing: bool
    speed: float
    finished: bool
    pose: PoseOut
    traveled_path: List[CoordinateOut]
    stop_number: int = Field(ge=1)
    route_index: int = Field(ge=0)
    progress: ProgressOut
    stop_change: Optional[StopChangeOut] = None


class PoseAtResponse(BaseModel):
    elapsed_s: float
    pose: PoseOut
    traveled_path: List[CoordinateOut]
    stop_number: int


class SpeedRequest(BaseModel):
    multiplier: float = Field(ge=C.SPEED_MIN, le=C.SPEED_MAX)


class SeekRequest(BaseModel):
    elapsed_s: Optional[float] = None
    index: Optional[int] = Field(default=None, ge=0)

    @model_validator(mode="after")
    def exactly_one_target(self):
        if (self.elapsed_s is None) == (self.index is None):
            raise ValueError("Provide exactly one of elapsed_s or index")
        return self
