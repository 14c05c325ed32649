"""
Review session state.

``ReviewSession`` is the single state container of one review session: the
video list, the selected video, its annotations, the last error, and the
playback/annotation core (clock, range binder, loop controller).

Annotation edits go through ``OptimisticAnnotationStore``: updates and
deletes are applied locally right away and persisted in the background; the
last local value wins over late server responses.
"""

import itertools
import logging
from dataclasses import replace
from typing import Any, Callable, Dict, List, Optional

from review_frontend.components.events import ChangeNotifier
from review_frontend.components.loop import LoopController
from review_frontend.components.timeline import DEFAULT_FPS, PlaybackClock
from review_frontend.components.tools import AnnotationRangeBinder
from review_frontend.models import Annotation, Video
from review_frontend.services.annotation_store import (
    AnnotationStore,
    AnnotationStoreError,
    ReviewApiClient,
)
from review_frontend.services.persistence import (
    PersistenceQueue,
    PersistenceTask,
    TaskStatus,
)

logger = logging.getLogger(__name__)


class OptimisticAnnotationStore(AnnotationStore):
    """
    Local view of the selected video's annotations.

    Creates are sent to the remote store and awaited, since later partial
    updates need the id the server assigns. Updates and deletes change the
    local records immediately and go to the remote store through the
    persistence queue.
    """

    def __init__(
        self,
        remote: AnnotationStore,
        persistence: PersistenceQueue,
        on_error: Callable[[str], None],
    ):
        self.remote = remote
        self.persistence = persistence
        self.on_error = on_error
        self.video_id: Optional[str] = None
        self.records: List[Annotation] = []
        # Newest local edit per record id; only that edit's response applies.
        # Revisions come from one counter that reloads never rewind.
        self.revisions: Dict[str, int] = {}
        self._revision_counter = itertools.count(1)

    def reset(self, video_id: Optional[str], records: List[Annotation]) -> None:
        self.video_id = video_id
        self.records = list(records)
        self.revisions = {}

    def _index_of(self, annotation_id: str) -> int:
        for idx, record in enumerate(self.records):
            if record.id == annotation_id:
                return idx
        return -1

    def _replace_or_append(self, annotation: Annotation) -> None:
        idx = self._index_of(annotation.id)
        if idx == -1:
            self.records.append(annotation)
        else:
            self.records[idx] = annotation

    def list(self, video_id: str) -> List[Annotation]:
        if video_id != self.video_id:
            return []
        return list(self.records)

    def create(self, video_id: str, partial: Dict[str, Any]) -> Optional[Annotation]:
        try:
            created = self.remote.create(video_id, partial)
        except AnnotationStoreError as e:
            self.on_error(str(e))
            return None
        if video_id == self.video_id:
            self._replace_or_append(created)
        return created

    def update(
        self, video_id: str, annotation_id: str, partial: Dict[str, Any]
    ) -> Optional[Annotation]:
        idx = self._index_of(annotation_id)
        if video_id != self.video_id or idx == -1:
            return None
        self.records[idx] = replace(self.records[idx], **partial)
        revision = next(self._revision_counter)
        self.revisions[annotation_id] = revision
        self.persistence.submit(
            "update",
            self.remote.update,
            video_id=video_id,
            annotation_id=annotation_id,
            revision=revision,
            partial=dict(partial),
        )
        return self.records[idx]

    def delete(self, video_id: str, annotation_id: str) -> bool:
        if video_id != self.video_id:
            return False
        before = len(self.records)
        self.records = [r for r in self.records if r.id != annotation_id]
        self.revisions.pop(annotation_id, None)
        self.persistence.submit(
            "delete",
            self.remote.delete,
            video_id=video_id,
            annotation_id=annotation_id,
        )
        return len(self.records) != before

    def apply_result(self, task: PersistenceTask) -> bool:
        """
        Fold a finished persistence task into the local records.

        Returns:
            True when the local records changed
        """
        if task.status == TaskStatus.FAILED:
            self.on_error(task.error or f"Failed to {task.kind} annotation")
            return False
        if task.kind != "update" or task.video_id != self.video_id:
            return False
        idx = self._index_of(task.annotation_id)
        if idx == -1:
            # Deleted locally while the call was in flight
            return False
        if task.revision != self.revisions.get(task.annotation_id):
            return False
        self.records[idx] = task.result
        return True


class ReviewSession(ChangeNotifier):
    """
    Published events: ``"videos"``, ``"video"`` (video_id), ``"annotations"``,
    ``"error"`` (error).
    """

    def __init__(
        self,
        api: ReviewApiClient,
        persistence: Optional[PersistenceQueue] = None,
        clock: Optional[PlaybackClock] = None,
    ):
        super().__init__()
        self.api = api
        self.persistence = persistence or PersistenceQueue()
        self.videos: List[Video] = []
        self.selected_video: Optional[Video] = None
        self.loading = False
        self.error: Optional[str] = None

        self.store = OptimisticAnnotationStore(api, self.persistence, self.set_error)
        self.clock = clock or PlaybackClock()
        self.binder = AnnotationRangeBinder(self.store, clock=self.clock)
        self.loop = LoopController(self.clock, self.binder)

    @property
    def annotations(self) -> List[Annotation]:
        return list(self.store.records)

    def set_error(self, message: Optional[str]) -> None:
        self.error = message
        if message:
            logger.warning(f"Session error: {message}")
        self.publish("error", error=message)

    def clear_error(self) -> None:
        self.set_error(None)

    def load_videos(self) -> List[Video]:
        self.loading = True
        self.clear_error()
        try:
            self.videos = self.api.list_videos()
        except AnnotationStoreError as e:
            self.set_error(str(e))
            return self.videos
        finally:
            self.loading = False
        self.publish("videos")
        if self.videos and self.selected_video is None:
            self.select_video(self.videos[0])
        return self.videos

    def select_video(self, video: Optional[Video]) -> None:
        self.selected_video = video
        if video is None:
            self.binder.set_video(None)
            self.store.reset(None, [])
            self.clock.set_duration(0)
            self.clock.set_fps(DEFAULT_FPS)
            self.clock.on_source_changed()
            self.publish("video", video_id=None)
            return

        self.clock.on_source_changed(video.duration, video.fps)
        self.binder.set_video(video.id)
        self.store.reset(video.id, [])
        self.publish("video", video_id=video.id)
        self.load_annotations(video.id)

    def load_annotations(self, video_id: str) -> None:
        try:
            records = self.api.list(video_id)
        except AnnotationStoreError as e:
            self.set_error(str(e))
            return
        if self.selected_video is None or self.selected_video.id != video_id:
            return
        self.store.reset(video_id, records)
        self.publish("annotations")

    def delete_annotation(self, annotation_id: str) -> bool:
        if self.selected_video is None:
            return False
        deleted = self.store.delete(self.selected_video.id, annotation_id)
        self.publish("annotations")
        return deleted

    def poll(self) -> int:
        """
        Apply finished persistence calls; call this from the UI loop.

        Returns:
            Number of results processed
        """
        tasks = self.persistence.poll()
        changed = False
        for task in tasks:
            changed = self.store.apply_result(task) or changed
        if changed:
            self.publish("annotations")
        return len(tasks)

    def close(self) -> None:
        self.loop.close()
        self.persistence.shutdown()
