import logging
import math
from typing import Callable, Optional

from review_frontend.components.events import ChangeNotifier

logger = logging.getLogger(__name__)

MIN_FPS = 1.0
MAX_FPS = 120.0
DEFAULT_FPS = 30.0

# Absorbs float error in frame / fps * fps for fractional rates
_FRAME_EPSILON = 1e-6


def frame_of(time: float, fps: float) -> int:
    """Convert playback time in seconds to a frame index"""
    return int(math.floor(time * fps + _FRAME_EPSILON))


def time_of(frame: int, fps: float) -> float:
    """Convert a frame index to playback time in seconds"""
    return frame / fps


def format_timestamp(seconds: float) -> str:
    """Render seconds as MM:SS.ss"""
    minutes = int(seconds // 60)
    seconds = seconds % 60
    return f"{minutes:02d}:{seconds:05.2f}"


class PlaybackClock(ChangeNotifier):
    """
    Playback state of the selected video.

    Owns the current time, duration, play/pause flag and fps. The current
    frame is always derived from the time. Seeks are authoritative and get
    echoed to the time sink (the playback source) on ``flush``; ``update``
    is the reverse direction and is not echoed.

    Published events: ``"time"`` (time, frame), ``"playing"`` (playing),
    ``"source"`` (duration, fps).
    """

    def __init__(self, fps: float = DEFAULT_FPS, duration: float = 0.0):
        super().__init__()
        self.current_time = 0.0
        self.duration = max(0.0, duration)
        self.playing = False
        self.fps = DEFAULT_FPS
        self.set_fps(fps)
        self._time_sink: Optional[Callable[[float], None]] = None
        self._pending_seek: Optional[float] = None

    @property
    def current_frame(self) -> int:
        return frame_of(self.current_time, self.fps)

    @property
    def total_frames(self) -> int:
        return frame_of(self.duration, self.fps)

    def set_time_sink(self, sink: Optional[Callable[[float], None]]) -> None:
        self._time_sink = sink

    def set_fps(self, value: float) -> None:
        self.fps = min(MAX_FPS, max(MIN_FPS, float(value)))

    def set_duration(self, duration: float) -> None:
        self.duration = max(0.0, float(duration))

    def _clamp(self, time: float) -> float:
        return min(max(0.0, time), self.duration)

    def seek_to(self, time: float) -> None:
        """Seek to a time in seconds, clamped to [0, duration]"""
        self.current_time = self._clamp(time)
        self._pending_seek = self.current_time
        self.publish("time", time=self.current_time, frame=self.current_frame)

    def seek_to_frame(self, frame: int) -> None:
        self.seek_to(time_of(frame, self.fps))

    def step_frame(self, delta: int) -> None:
        target = min(max(0, self.current_frame + delta), self.total_frames)
        self.seek_to_frame(target)

    def update(self, time: float) -> None:
        """Apply a time reported by the playback source"""
        self.current_time = self._clamp(time)
        self.publish("time", time=self.current_time, frame=self.current_frame)

    def play(self) -> None:
        if not self.playing:
            self.playing = True
            self.publish("playing", playing=True)

    def pause(self) -> None:
        if self.playing:
            self.playing = False
            self.publish("playing", playing=False)

    def toggle_play(self) -> None:
        if self.playing:
            self.pause()
        else:
            self.play()

    def on_source_changed(
        self, duration: Optional[float] = None, fps: Optional[float] = None
    ) -> None:
        """
        Reset for a newly selected video.

        Missing or zero duration/fps keep the previous values.
        """
        self.current_time = 0.0
        self.playing = False
        self._pending_seek = None
        if duration:
            self.set_duration(duration)
        if fps:
            self.set_fps(fps)
        logger.debug(f"Playback source changed: duration={self.duration} fps={self.fps}")
        self.publish("source", duration=self.duration, fps=self.fps)
        self.publish("playing", playing=False)
        self.publish("time", time=self.current_time, frame=self.current_frame)

    def flush(self) -> Optional[float]:
        """
        Deliver the latest pending seek to the time sink.

        Rapid seeks between two flushes coalesce into the last one.

        Returns:
            The delivered time, or None when nothing was pending
        """
        time, self._pending_seek = self._pending_seek, None
        if time is not None and self._time_sink is not None:
            self._time_sink(time)
        return time
