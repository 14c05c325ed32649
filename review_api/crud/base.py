"""
Annotation store interface.

The REST layer only talks to ``AnnotationStore``; the concrete backend is
picked from settings at startup so that the in-memory map and the JSON file
store can be swapped without touching the endpoints.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from review_api.schemas.schemas import Annotation, AnnotationCreate, AnnotationUpdate


class AnnotationNotFound(LookupError):
    """Raised when an annotation id does not exist for a video"""

    def __init__(self, video_id: str, annotation_id: str):
        super().__init__(f"Annotation {annotation_id} not found for video {video_id}")
        self.video_id = video_id
        self.annotation_id = annotation_id


class AnnotationStore(ABC):
    """CRUD over annotation records keyed by video id."""

    @abstractmethod
    def list(self, video_id: str) -> List[Annotation]:
        """
        List annotations of a video in insertion order.

        Args:
            video_id: Video identifier

        Returns:
            Stored annotations, oldest first
        """
        pass

    @abstractmethod
    def get(self, video_id: str, annotation_id: str) -> Optional[Annotation]:
        pass

    @abstractmethod
    def create(self, video_id: str, obj_in: AnnotationCreate) -> Annotation:
        """
        Store a new annotation and assign its id.

        Args:
            video_id: Video identifier
            obj_in: Annotation fields supplied by the client

        Returns:
            The stored annotation with ``id`` and ``video_id`` set
        """
        pass

    @abstractmethod
    def update(
        self, video_id: str, annotation_id: str, obj_in: AnnotationUpdate
    ) -> Annotation:
        """
        Apply a partial update.

        Raises:
            AnnotationNotFound: unknown id
            ValueError: the merged record has ``end_frame < start_frame``
        """
        pass

    @abstractmethod
    def remove(self, video_id: str, annotation_id: str) -> None:
        """Delete an annotation, raising ``AnnotationNotFound`` for unknown ids"""
        pass


def merge_update(db_obj: Annotation, obj_in: AnnotationUpdate) -> Annotation:
    update_data = obj_in.model_dump(exclude_unset=True, exclude_none=True)
    merged = db_obj.model_copy(update=update_data)
    if merged.end_frame < merged.start_frame:
        raise ValueError("endFrame must be greater than or equal to startFrame")
    return merged
