"""
Annotation store clients.

The review core talks to annotations only through ``AnnotationStore``:
``list / create / update / delete`` keyed by video id, with partial updates
expressed as dicts of Python attribute names. ``ReviewApiClient`` maps
that onto the review API, ``InMemoryAnnotationStore`` keeps everything
local (tests and offline review).
"""

import logging
import os
import uuid
from abc import ABC, abstractmethod
from dataclasses import replace
from threading import Lock
from typing import Any, Dict, List, Optional

import requests

from review_frontend.models import DEFAULT_RATING, Annotation, Video, to_wire

logger = logging.getLogger(__name__)

DEFAULT_API_URL = os.getenv("REVIEW_API_URL", "http://localhost:8000")
DEFAULT_TIMEOUT = float(os.getenv("REVIEW_API_TIMEOUT", "10"))


class AnnotationStoreError(Exception):
    """Transport or server failure of a store call"""


class AnnotationStore(ABC):
    @abstractmethod
    def list(self, video_id: str) -> List[Annotation]:
        pass

    @abstractmethod
    def create(self, video_id: str, partial: Dict[str, Any]) -> Annotation:
        """
        Create an annotation; the store assigns the id.

        Args:
            video_id: Video identifier
            partial: Annotation fields (attribute names, no ``id``)

        Returns:
            The created annotation
        """
        pass

    @abstractmethod
    def update(
        self, video_id: str, annotation_id: str, partial: Dict[str, Any]
    ) -> Annotation:
        pass

    @abstractmethod
    def delete(self, video_id: str, annotation_id: str) -> bool:
        pass


class InMemoryAnnotationStore(AnnotationStore):
    def __init__(self):
        self.annotations: Dict[str, List[Annotation]] = {}
        self.lock = Lock()

    def list(self, video_id: str) -> List[Annotation]:
        with self.lock:
            return list(self.annotations.get(video_id, []))

    def create(self, video_id: str, partial: Dict[str, Any]) -> Annotation:
        fields = {"tags": [], "notes": "", "rating": DEFAULT_RATING}
        fields.update(partial)
        fields.pop("id", None)
        fields.pop("video_id", None)
        annotation = Annotation(id=str(uuid.uuid4()), video_id=video_id, **fields)
        annotation.tags = list(annotation.tags)
        with self.lock:
            self.annotations.setdefault(video_id, []).append(annotation)
        return annotation

    def update(
        self, video_id: str, annotation_id: str, partial: Dict[str, Any]
    ) -> Annotation:
        with self.lock:
            records = self.annotations.get(video_id, [])
            for idx, annotation in enumerate(records):
                if annotation.id == annotation_id:
                    records[idx] = replace(annotation, **partial)
                    return records[idx]
        raise AnnotationStoreError(f"Annotation {annotation_id} not found")

    def delete(self, video_id: str, annotation_id: str) -> bool:
        with self.lock:
            records = self.annotations.get(video_id, [])
            remaining = [a for a in records if a.id != annotation_id]
            self.annotations[video_id] = remaining
            return len(remaining) != len(records)


class ReviewApiClient(AnnotationStore):
    """Review API client; doubles as the annotation store backed by the server"""

    def __init__(
        self,
        base_url: str = DEFAULT_API_URL,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.http = session or requests.Session()

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        url = f"{self.base_url}/api{path}"
        try:
            response = self.http.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            logger.error(f"{method} {url} failed: {e}")
            raise AnnotationStoreError(f"Request failed: {e}") from e

        if response.status_code >= 400:
            detail = _error_detail(response)
            logger.error(f"{method} {url} returned {response.status_code}: {detail}")
            raise AnnotationStoreError(detail)
        return response

    def list_videos(self) -> List[Video]:
        response = self._request("GET", "/videos")
        return [Video.from_dict(item) for item in response.json()]

    def get_metadata(self, video_id: str) -> Dict[str, Any]:
        response = self._request("GET", f"/videos/{video_id}/metadata")
        return response.json()

    def get_frame_image(self, video_id: str, frame_number: int) -> bytes:
        response = self._request("GET", f"/videos/{video_id}/frames/{frame_number}")
        return response.content

    def list(self, video_id: str) -> List[Annotation]:
        response = self._request("GET", f"/annotations/{video_id}")
        return [Annotation.from_dict(item) for item in response.json()]

    def create(self, video_id: str, partial: Dict[str, Any]) -> Annotation:
        response = self._request(
            "POST", f"/annotations/{video_id}", json=to_wire(partial)
        )
        return Annotation.from_dict(response.json())

    def update(
        self, video_id: str, annotation_id: str, partial: Dict[str, Any]
    ) -> Annotation:
        response = self._request(
            "PUT", f"/annotations/{video_id}/{annotation_id}", json=to_wire(partial)
        )
        return Annotation.from_dict(response.json())

    def delete(self, video_id: str, annotation_id: str) -> bool:
        self._request("DELETE", f"/annotations/{video_id}/{annotation_id}")
        return True


def _error_detail(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return f"HTTP {response.status_code}"
    if isinstance(body, dict):
        detail = body.get("detail") or body.get("message")
        if isinstance(detail, str):
            return detail
    return f"HTTP {response.status_code}"
