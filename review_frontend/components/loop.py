import logging
from typing import Any, Dict, Optional

from review_frontend.components.timeline import PlaybackClock, time_of
from review_frontend.components.tools import AnnotationRangeBinder

logger = logging.getLogger(__name__)


class LoopController:
    """
    Loops playback over the selected frame range.

    While the clock is playing, a time update at or past the end of the range
    seeks back to its start. Zero-width ranges never loop, and a malformed
    range (end before start) disables looping and is reported through
    ``config_error`` instead of raising.
    """

    def __init__(
        self, clock: PlaybackClock, binder: AnnotationRangeBinder, enabled: bool = True
    ):
        self.clock = clock
        self.binder = binder
        self.enabled = enabled
        self.config_error: Optional[str] = None
        self._wrapping = False
        self._unsubscribe = clock.subscribe(self._on_clock_event)

    @property
    def active(self) -> bool:
        frame_range = self.binder.frame_range
        return (
            self.enabled
            and self.clock.playing
            and frame_range.is_valid
            and frame_range.end_frame > frame_range.start_frame
        )

    def _on_clock_event(self, event: str, payload: Dict[str, Any]) -> None:
        if event == "time" and not self._wrapping:
            self.check(payload["time"])

    def check(self, time: float) -> bool:
        """
        Wrap to the range start when ``time`` reached the range end.

        Returns:
            True when a wrap seek was issued
        """
        frame_range = self.binder.frame_range
        if frame_range.end_frame < frame_range.start_frame:
            message = (
                f"Loop disabled: range end {frame_range.end_frame} is before "
                f"start {frame_range.start_frame}"
            )
            if message != self.config_error:
                logger.error(message)
            self.config_error = message
            return False
        self.config_error = None

        if not self.active:
            return False

        fps = self.clock.fps
        if time < time_of(frame_range.end_frame, fps):
            return False

        self._wrapping = True
        try:
            self.clock.seek_to(time_of(frame_range.start_frame, fps))
        finally:
            self._wrapping = False
        logger.debug(f"Looped back to frame {frame_range.start_frame}")
        return True

    def close(self) -> None:
        self._unsubscribe()
