import logging
from typing import Iterable, List, Optional

from review_frontend.components.events import ChangeNotifier
from review_frontend.components.timeline import PlaybackClock
from review_frontend.models import DEFAULT_RATING, Annotation, FrameRange
from review_frontend.services.annotation_store import AnnotationStore

logger = logging.getLogger(__name__)


def resolve_current(
    frame_range: FrameRange, annotations: Iterable[Annotation]
) -> Optional[Annotation]:
    """
    Find the annotation whose stored range equals ``frame_range``.

    Ranges are not unique keys in the store; the first match in insertion
    order wins.
    """
    for annotation in annotations:
        if (
            annotation.start_frame == frame_range.start_frame
            and annotation.end_frame == frame_range.end_frame
        ):
            return annotation
    return None


class AnnotationRangeBinder(ChangeNotifier):
    """
    Binds the selected frame range to at most one annotation record.

    No record id is kept: every accessor resolves the live range against the
    store again, so changing the range switches (or loses) the bound record
    without any transition step. Field mutators create the record lazily
    on first edit.

    Published events: ``"range"`` (start_frame, end_frame) and
    ``"annotation"`` (video_id) after every store write.
    """

    def __init__(
        self,
        store: AnnotationStore,
        clock: Optional[PlaybackClock] = None,
        frame_range: Optional[FrameRange] = None,
    ):
        super().__init__()
        self.store = store
        self.clock = clock
        self.video_id: Optional[str] = None
        self.frame_range = frame_range or FrameRange()

    def set_video(self, video_id: Optional[str]) -> None:
        self.video_id = video_id

    def set_range(self, start_frame: int, end_frame: int) -> None:
        self.frame_range = FrameRange(int(start_frame), int(end_frame))
        if not self.frame_range.is_valid:
            logger.warning(f"Malformed frame range [{start_frame}, {end_frame}]")
        self.publish(
            "range",
            start_frame=self.frame_range.start_frame,
            end_frame=self.frame_range.end_frame,
        )

    def annotations(self) -> List[Annotation]:
        if self.video_id is None:
            return []
        return self.store.list(self.video_id)

    def current(self) -> Optional[Annotation]:
        return resolve_current(self.frame_range, self.annotations())

    @property
    def is_bound(self) -> bool:
        return self.current() is not None

    def annotations_at(self, frame: int) -> List[Annotation]:
        return [a for a in self.annotations() if a.start_frame <= frame <= a.end_frame]

    # Field reads fall back to the defaults of a fresh record

    @property
    def tags(self) -> List[str]:
        current = self.current()
        return list(current.tags) if current else []

    @property
    def notes(self) -> str:
        current = self.current()
        return current.notes if current else ""

    @property
    def rating(self) -> int:
        current = self.current()
        return current.rating if current else DEFAULT_RATING

    def ensure_exists(self) -> Optional[Annotation]:
        """
        Return the current annotation, creating an empty one when unbound.

        Returns None when there is no video or the range is malformed, or
        when the store did not end up holding a matching record.
        """
        current = self.current()
        if current is not None:
            return current
        if self.video_id is None:
            return None
        if not self.frame_range.is_valid:
            logger.error(
                f"Refusing to annotate malformed range "
                f"[{self.frame_range.start_frame}, {self.frame_range.end_frame}]"
            )
            return None

        self.store.create(
            self.video_id,
            {
                "timestamp": self.clock.current_time if self.clock else 0.0,
                "start_frame": self.frame_range.start_frame,
                "end_frame": self.frame_range.end_frame,
                "tags": [],
                "notes": "",
                "rating": DEFAULT_RATING,
            },
        )
        # A concurrent create may have won; the first match is the record
        current = self.current()
        self.publish("annotation", video_id=self.video_id)
        return current

    def _update(self, **partial) -> Optional[Annotation]:
        current = self.ensure_exists()
        if current is None:
            return None
        updated = self.store.update(self.video_id, current.id, partial)
        self.publish("annotation", video_id=self.video_id)
        return updated

    def set_rating(self, rating: int) -> Optional[Annotation]:
        if not 1 <= rating <= 5:
            raise ValueError(f"Rating must be between 1 and 5, got {rating}")
        return self._update(rating=int(rating))

    def set_notes(self, notes: str) -> Optional[Annotation]:
        return self._update(notes=notes)

    def add_tag(self, tag: str) -> Optional[Annotation]:
        tag = tag.strip()
        if not tag:
            return None
        current = self.current()
        if current is not None and tag in current.tags:
            return None
        current = self.ensure_exists()
        if current is None or tag in current.tags:
            return None
        return self._update(tags=list(current.tags) + [tag])

    def remove_tag(self, tag: str) -> Optional[Annotation]:
        current = self.ensure_exists()
        if current is None:
            return None
        return self._update(tags=[t for t in current.tags if t != tag])

    def clear(self) -> bool:
        """Delete the current annotation, if any"""
        current = self.current()
        if current is None or self.video_id is None:
            return False
        self.store.delete(self.video_id, current.id)
        self.publish("annotation", video_id=self.video_id)
        return True
