# path: route-replay-api/app/services/route_player.py

from __future__ import annotations

import hashlib
import json
import logging
import time
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

from app import config as C
from app.models.playback import Coordinate, FrameUpdate, LegGeometryTable, Pose, Timeline
from app.models.route_models import Waypoint
from app.services.animation_clock import AnimationClock
from app.services.frame_scheduler import AsyncioFrameScheduler
from app.services.interpolator import interpolate
from app.services.leg_geometry import build_leg_geometry_table
from app.services.progress import build_progress, route_index_at
from app.services.stop_tracker import StopTracker, stop_index_at
from app.services.timeline import build_timeline
from app.services.traveled_path import build_traveled_path

logger = logging.getLogger(__name__)

RenderSink = Callable[[FrameUpdate], None]


def stable_json_sha256(obj) -> str:
    data = json.dumps(obj, separators=(",", ":"), sort_keys=True).encode("utf-8")
    return "sha256:" + hashlib.sha256(data).hexdigest()


@dataclass(frozen=True)
class RouteSnapshot:
    """Everything derived from one route load. Replaced as a whole, never patched."""

    version: str
    waypoints: Tuple[Waypoint, ...]
    timeline: Timeline
    table: LegGeometryTable

    @property
    def animatable(self) -> bool:
        return self.timeline.animatable


def build_snapshot(
    waypoints: Sequence[Waypoint],
    leg_geometries: Optional[Sequence[Optional[Sequence[Coordinate]]]] = None,
    strict: bool = False,
) -> RouteSnapshot:
    wps = tuple(waypoints)
    table = build_leg_geometry_table(wps, leg_geometries)
    version = stable_json_sha256(
        {
            "waypoints": [w.model_dump(mode="json") for w in wps],
            "legs": [[[c.lat, c.lon] for c in leg] for leg in table.legs],
        }
    )
    return RouteSnapshot(
        version=version,
        waypoints=wps,
        timeline=build_timeline(wps, strict=strict),
        table=table,
    )


class PlaybackSession:
    def __init__(self, snapshot: RouteSnapshot, speed: float = C.DEFAULT_SPEED):
        self.snapshot = snapshot
        self.clock = AnimationClock(snapshot.timeline.total_duration, speed=speed)
        self.stops = StopTracker(snapshot.waypoints)


class RoutePlayer:
    """
    Drives one route: clock commands in, frame updates out.

    Pose, traveled path and stop state are computed first, then handed to the
    subscribed render sinks. Without a scheduler, call ``frame()`` yourself.
    """

    def __init__(
        self,
        snapshot: RouteSnapshot,
        scheduler: Optional[AsyncioFrameScheduler] = None,
        clock_fn: Callable[[], float] = time.monotonic,
    ):
        self.scheduler = scheduler
        self.clock_fn = clock_fn
        self.latest: Optional[FrameUpdate] = None
        self._sinks: List[RenderSink] = []
        self._session = PlaybackSession(snapshot)
        self._emit(self._session)

    # ---------------------- State ----------------------
    @property
    def snapshot(self) -> RouteSnapshot:
        return self._session.snapshot

    @property
    def clock(self) -> AnimationClock:
        return self._session.clock

    @property
    def stops(self) -> StopTracker:
        return self._session.stops

    def subscribe(self, sink: RenderSink) -> Callable[[], None]:
        self._sinks.append(sink)

        def unsubscribe() -> None:
            if sink in self._sinks:
                self._sinks.remove(sink)

        return unsubscribe

    # ---------------------- Commands -------------------
    def load(self, snapshot: RouteSnapshot) -> None:
        self._stop_frames()
        speed = self._session.clock.speed
        # One assignment: frames never see the old timeline with the new geometry
        self._session = PlaybackSession(snapshot, speed=speed)
        logger.info(
            "Loaded route %s: %d stops, %.1fs, animatable=%s",
            snapshot.version[:19],
            len(snapshot.waypoints),
            snapshot.timeline.total_duration,
            snapshot.animatable,
        )
        self.latest = None
        self._emit(self._session)

    def play(self) -> None:
        session = self._session
        session.clock.play()
        logger.info("Play at %.2fs (x%.1f)", session.clock.elapsed, session.clock.speed)
        if self.scheduler is not None:
            self.scheduler.start(self.frame)
        self._emit(session)

    def pause(self) -> None:
        self._stop_frames()
        session = self._session
        session.clock.pause()
        logger.info("Pause at %.2fs", session.clock.elapsed)
        self._emit(session)

    def reset(self) -> None:
        self._stop_frames()
        session = self._session
        session.clock.reset()
        session.stops.reset()
        logger.info("Reset route %s", session.snapshot.version[:19])
        self._emit(session)

    def set_speed(self, multiplier: float) -> Optional[FrameUpdate]:
        session = self._session
        session.clock.set_speed(multiplier)
        return self._emit(session)

    def seek(self, elapsed: float) -> Optional[FrameUpdate]:
        session = self._session
        session.clock.seek(elapsed)
        return self._emit(session)

    def seek_to_index(self, index: int) -> Optional[FrameUpdate]:
        session = self._session
        session.clock.seek_to_index(index, session.snapshot.table.point_count)
        return self._emit(session)

    # ---------------------- Frames ---------------------
    def frame(self, now: Optional[float] = None) -> Optional[FrameUpdate]:
        """Per-frame callback: advance the clock, then publish if anything moved."""
        session = self._session
        if not session.snapshot.animatable:
            return None
        changed = session.clock.tick(self.clock_fn() if now is None else now)
        if not changed and self.latest is not None:
            return self.latest
        return self._emit(session)

    def pose_at(self, elapsed: float) -> Tuple[Pose, Tuple[Coordinate, ...], int]:
        """Pose, traveled path and stop number at an explicit time. No state changes."""
        snap = self._session.snapshot
        pose = interpolate(elapsed, snap.timeline, snap.table)
        stop_number = stop_index_at(elapsed, snap.timeline.total_duration, len(snap.waypoints)) + 1
        return pose, build_traveled_path(pose, snap.table), stop_number

    def _stop_frames(self) -> None:
        if self.scheduler is not None:
            self.scheduler.stop()

    def _emit(self, session: PlaybackSession) -> Optional[FrameUpdate]:
        snap = session.snapshot
        if not snap.animatable:
            return None
        clock = session.clock
        elapsed = clock.elapsed
        total = snap.timeline.total_duration

        pose = interpolate(elapsed, snap.timeline, snap.table)
        change = session.stops.update(elapsed, total)
        stop_number = session.stops.stop_number
        update = FrameUpdate(
            route_version=snap.version,
            elapsed_s=elapsed,
            total_duration_s=total,
            playing=clock.playing,
            speed=clock.speed,
            finished=clock.finished,
            pose=pose,
            traveled_path=build_traveled_path(pose, snap.table),
            stop_number=stop_number,
            route_index=route_index_at(elapsed, total, snap.table.point_count),
            progress=build_progress(elapsed, snap.timeline, snap.waypoints, stop_number),
            stop_change=change,
        )
        self.latest = update
        for sink in list(self._sinks):
            sink(update)
        return update
