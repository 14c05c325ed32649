import logging
from collections import OrderedDict
from typing import Optional

from review_frontend.components.timeline import PlaybackClock
from review_frontend.models import Video
from review_frontend.services.annotation_store import AnnotationStoreError, ReviewApiClient

logger = logging.getLogger(__name__)


class VideoPlayer:
    """
    Playback source for the selected video.

    Frames are pulled from the review API. The player keeps its own playback
    position: ``load`` reports duration and fps to the clock, ``advance``
    reports the position reached while playing, and seeks issued on the
    clock come back through ``seek``.
    """

    def __init__(self, api: ReviewApiClient, clock: PlaybackClock, buffer_size: int = 10):
        """
        Initialize the video player

        Args:
            api: Review API client used for metadata and frames
            clock: Playback clock this player is the source of
            buffer_size: Number of decoded frames kept in memory
        """
        self.api = api
        self.clock = clock
        self.video: Optional[Video] = None
        self.position = 0.0
        self.frame_buffer: "OrderedDict[int, bytes]" = OrderedDict()
        self.buffer_size = buffer_size
        clock.set_time_sink(self.seek)

    def load(self, video: Optional[Video]) -> None:
        """
        Switch to another video and report its duration/fps to the clock

        Args:
            video: Video to play, or None to unload
        """
        self.video = video
        self.position = 0.0
        self.frame_buffer.clear()
        if video is None:
            self.clock.on_source_changed()
            return

        duration, fps = video.duration, video.fps
        if not duration or not fps:
            try:
                metadata = self.api.get_metadata(video.id)
                duration = duration or metadata.get("duration")
                fps = fps or metadata.get("fps")
            except AnnotationStoreError as e:
                logger.warning(f"Metadata unavailable for {video.id}, using defaults: {e}")
        self.clock.on_source_changed(duration, fps)

    def seek(self, time: float) -> None:
        """Authoritative seek coming from the clock"""
        self.position = time

    def advance(self, elapsed: float) -> float:
        """
        Move playback forward by ``elapsed`` seconds and report the new time

        Pending seeks are applied first, and the clock's reaction to the
        reported time (a loop wrap, for instance) is applied right after.
        Reaching the end of the video pauses playback.

        Returns:
            Playback position after the step
        """
        self.clock.flush()
        if not self.clock.playing or self.video is None:
            return self.position

        self.position = min(self.position + elapsed, self.clock.duration)
        self.clock.update(self.position)
        if self.clock.flush() is None and self.position >= self.clock.duration:
            self.clock.pause()
        return self.position

    def get_frame(self, frame_idx: int) -> Optional[bytes]:
        """
        Get a specific frame of the current video as JPEG bytes

        Args:
            frame_idx (int): Frame index

        Returns:
            bytes: Encoded frame, or None when it could not be fetched
        """
        if self.video is None or frame_idx < 0:
            return None

        if frame_idx in self.frame_buffer:
            self.frame_buffer.move_to_end(frame_idx)
            return self.frame_buffer[frame_idx]

        try:
            frame = self.api.get_frame_image(self.video.id, frame_idx)
        except AnnotationStoreError as e:
            logger.warning(f"Could not fetch frame {frame_idx} of {self.video.id}: {e}")
            return None

        self.frame_buffer[frame_idx] = frame
        if len(self.frame_buffer) > self.buffer_size:
            self.frame_buffer.popitem(last=False)
        return frame

    def current_frame_image(self) -> Optional[bytes]:
        return self.get_frame(self.clock.current_frame)
