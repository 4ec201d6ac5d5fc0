"""Playback cursor over a recording, driven by host animation frames.

States::

    stopped --play--> playing --pause / end of range--> paused
       ^                 |  ^                              |
       +-----reset-------+  +------------play--------------+

The host calls ``on_frame(timestamp_ms)`` (or ``tick(delta_s)``) from
its frame callback while ``is_playing``. Each tick only moves a scalar
cursor, so the host may stop scheduling at any point. Reaching the end
of the active range pauses there; playback never loops.

Classes
-------
Playback
    Cursor state machine with speed, range and seek controls.
"""

import logging
from typing import Callable, List, Optional

from .dataset import find_sample

logger = logging.getLogger(__name__)

STOPPED = "stopped"
PLAYING = "playing"
PAUSED = "paused"


class Playback:
    """Playback state for one recording.

    Parameters
    ----------
    recording : dict, optional
        Recording to play; see ``load``.
    speed : float
        Playback speed multiplier (default 1.0).
    step : float
        Seconds moved by ``step_forward``/``step_backward`` (default 0.1).
    max_tick_delta : float
        Upper bound on the wall-clock delta of one tick, in seconds
        (default 0.1), so a stalled host does not jump the cursor.
    """

    def __init__(
        self,
        recording: Optional[dict] = None,
        speed: float = 1.0,
        step: float = 0.1,
        max_tick_delta: float = 0.1,
    ):
        if speed <= 0:
            raise ValueError(f"speed must be positive, got {speed}")
        self.speed = float(speed)
        self.step = float(step)
        self.max_tick_delta = float(max_tick_delta)
        self.state = STOPPED
        self.current_time = 0.0
        self.range_start = 0.0
        self.range_end: Optional[float] = None
        self.recording: Optional[dict] = None
        self._last_timestamp: Optional[float] = None
        self._listeners: List[Callable[[float], None]] = []
        if recording is not None:
            self.load(recording)

    # ── state ───────────────────────────────────────────────────────

    @property
    def is_playing(self) -> bool:
        return self.state == PLAYING

    @property
    def max_time(self) -> float:
        """End of the playable range: range end capped at the last sample."""
        if not self.recording or not self.recording.get("samples"):
            return self.range_end if self.range_end is not None else 0.0
        last = self.recording["samples"][-1]["time"]
        return min(self.range_end, last) if self.range_end is not None else last

    def add_listener(self, callback: Callable[[float], None]) -> None:
        """Register *callback(time)* for every cursor change."""
        self._listeners.append(callback)

    def _set_time(self, time: float) -> None:
        self.current_time = float(time)
        for cb in self._listeners:
            cb(self.current_time)

    def load(self, recording: Optional[dict]) -> None:
        """Attach *recording*; the range resets to the full recording."""
        self.recording = recording
        self.state = STOPPED
        self._last_timestamp = None
        self.range_end = None
        samples = (recording or {}).get("samples") or []
        self.range_start = float(samples[0]["time"]) if samples else 0.0
        self._set_time(self.range_start)

    def current_sample(self) -> Optional[dict]:
        return find_sample(self.recording, self.current_time)

    # ── transport ───────────────────────────────────────────────────

    def play(self) -> None:
        """Start or resume; restarts from the range start when at the end."""
        if not self.recording or not self.recording.get("samples"):
            return
        if self.current_time >= self.max_time:
            self._set_time(self.range_start)
        self.state = PLAYING
        self._last_timestamp = None
        logger.debug(f"Playback started at {self.current_time:.3f}s")

    def pause(self) -> None:
        if self.state == PLAYING:
            self.state = PAUSED
            self._last_timestamp = None

    def reset(self) -> None:
        """Stop and rewind to the range start."""
        self.state = STOPPED
        self._last_timestamp = None
        self._set_time(self.range_start)

    def seek(self, time: float, pause: bool = True) -> None:
        """Move the cursor to *time*, clamped to the range.

        A slider drag pauses a playing cursor first (``pause=True``);
        resuming is left to the user. With ``pause=False`` the
        playing/paused status is kept.
        """
        if pause and self.state == PLAYING:
            self.pause()
        target = min(max(float(time), self.range_start), self.max_time)
        if self.state == STOPPED and target != self.range_start:
            self.state = PAUSED
        self._set_time(target)

    def step_forward(self) -> None:
        self._set_time(min(self.max_time, self.current_time + self.step))

    def step_backward(self) -> None:
        self._set_time(max(self.range_start, self.current_time - self.step))

    def set_speed(self, speed: float) -> None:
        if speed <= 0:
            raise ValueError(f"speed must be positive, got {speed}")
        self.speed = float(speed)

    def set_time_range(self, start: float, end: Optional[float] = None) -> None:
        """Restrict playback to ``[start, end]`` and move the cursor to *start*."""
        if end is not None and end < start:
            raise ValueError(f"Range end {end} is before start {start}")
        self.range_start = float(start)
        self.range_end = float(end) if end is not None else None
        self._set_time(self.range_start)

    # ── scheduling ──────────────────────────────────────────────────

    def tick(self, delta_time: float) -> bool:
        """Advance a playing cursor by ``delta_time * speed`` seconds.

        Returns
        -------
        bool
            True while playback should keep being scheduled.
        """
        if self.state != PLAYING:
            return False
        delta = min(max(float(delta_time), 0.0), self.max_tick_delta)
        new_time = self.current_time + delta * self.speed
        end = self.max_time
        if new_time >= end:
            self.state = PAUSED
            self._last_timestamp = None
            self._set_time(end)
            logger.debug(f"Playback reached range end at {end:.3f}s")
            return False
        self._set_time(new_time)
        return True

    def on_frame(self, timestamp_ms: float) -> bool:
        """Animation-frame callback; the first frame after play only primes the clock."""
        if self.state != PLAYING:
            return False
        if self._last_timestamp is None:
            self._last_timestamp = float(timestamp_ms)
            return True
        delta = (float(timestamp_ms) - self._last_timestamp) / 1000.0
        self._last_timestamp = float(timestamp_ms)
        return self.tick(delta)
