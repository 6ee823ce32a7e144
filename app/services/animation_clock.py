# path: route-replay-api/app/services/animation_clock.py

from __future__ import annotations

import logging
from enum import Enum
from typing import Optional

from app import config as C
from app.errors import DegenerateRouteError

logger = logging.getLogger(__name__)


class ClockState(str, Enum):
    STOPPED = "stopped"
    PLAYING = "playing"


class AnimationClock:
    """
    Elapsed route time advanced by wall-clock frame timestamps.

    ``tick(now)`` is called once per display frame while playing. The first
    frame after ``play()`` only records its timestamp, so stale timing state
    never produces a jump. Reaching the end freezes time while the clock stays
    logically playing until paused.
    """

    def __init__(self, total_duration: float, speed: float = C.DEFAULT_SPEED):
        self.total_duration = max(0.0, float(total_duration))
        self.elapsed = 0.0
        self.state = ClockState.STOPPED
        self.speed = 1.0
        self.set_speed(speed)
        self._last_frame_ts: Optional[float] = None

    @property
    def playing(self) -> bool:
        return self.state is ClockState.PLAYING

    @property
    def finished(self) -> bool:
        return self.total_duration > 0 and self.elapsed >= self.total_duration

    def play(self) -> None:
        if self.total_duration <= 0:
            raise DegenerateRouteError("Route total duration is zero")
        self.state = ClockState.PLAYING
        self._last_frame_ts = None

    def pause(self) -> None:
        self.state = ClockState.STOPPED
        self._last_frame_ts = None

    def reset(self) -> None:
        self.state = ClockState.STOPPED
        self.elapsed = 0.0
        self._last_frame_ts = None

    def set_speed(self, multiplier: float) -> None:
        multiplier = float(multiplier)
        if not multiplier > 0:
            raise ValueError(f"speed multiplier must be positive, got {multiplier}")
        self.speed = multiplier

    def seek(self, elapsed: float) -> float:
        self.elapsed = min(max(0.0, float(elapsed)), self.total_duration)
        self._last_frame_ts = None
        return self.elapsed

    def seek_to_index(self, index: int, point_count: int) -> float:
        if point_count < 2:
            return self.seek(0.0)
        return self.seek(index / (point_count - 1) * self.total_duration)

    def tick(self, now: float) -> bool:
        """Advance one frame. Returns True when elapsed changed."""
        if not self.playing:
            return False
        last = self._last_frame_ts
        self._last_frame_ts = now
        if last is None or self.finished:
            return False
        delta = max(0.0, now - last)
        before = self.elapsed
        self.elapsed = min(self.elapsed + delta * self.speed, self.total_duration)
        return self.elapsed != before
