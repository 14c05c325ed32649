"""
Frame-accurate playback and annotation-range binding.
"""

from .events import ChangeNotifier
from .loop import LoopController
from .timeline import PlaybackClock, format_timestamp, frame_of, time_of
from .tools import AnnotationRangeBinder, resolve_current

__all__ = [
    "AnnotationRangeBinder",
    "ChangeNotifier",
    "LoopController",
    "PlaybackClock",
    "format_timestamp",
    "frame_of",
    "resolve_current",
    "time_of",
]
