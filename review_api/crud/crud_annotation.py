import json
import logging
import os
import tempfile
import uuid
from pathlib import Path
from threading import Lock
from typing import Dict, List, Optional

from pydantic import ValidationError

from review_api.crud.base import AnnotationNotFound, AnnotationStore, merge_update
from review_api.schemas.schemas import Annotation, AnnotationCreate, AnnotationUpdate

logger = logging.getLogger(__name__)


class InMemoryAnnotationStore(AnnotationStore):
    """
    Annotation store backed by a dict of lists.

    Suitable for development and tests. Records are lost on server restart.
    """

    def __init__(self):
        self.annotations: Dict[str, List[Annotation]] = {}
        self.lock = Lock()

    def list(self, video_id: str) -> List[Annotation]:
        with self.lock:
            return list(self.annotations.get(video_id, []))

    def get(self, video_id: str, annotation_id: str) -> Optional[Annotation]:
        with self.lock:
            for ann in self.annotations.get(video_id, []):
                if ann.id == annotation_id:
                    return ann
        return None

    def create(self, video_id: str, obj_in: AnnotationCreate) -> Annotation:
        db_obj = Annotation(
            id=str(uuid.uuid4()), video_id=video_id, **obj_in.model_dump()
        )
        with self.lock:
            self.annotations.setdefault(video_id, []).append(db_obj)
        logger.info(f"Created annotation {db_obj.id} for video {video_id}")
        return db_obj

    def update(
        self, video_id: str, annotation_id: str, obj_in: AnnotationUpdate
    ) -> Annotation:
        with self.lock:
            records = self.annotations.get(video_id, [])
            for idx, ann in enumerate(records):
                if ann.id == annotation_id:
                    records[idx] = merge_update(ann, obj_in)
                    return records[idx]
        raise AnnotationNotFound(video_id, annotation_id)

    def remove(self, video_id: str, annotation_id: str) -> None:
        with self.lock:
            records = self.annotations.get(video_id, [])
            remaining = [a for a in records if a.id != annotation_id]
            if len(remaining) == len(records):
                raise AnnotationNotFound(video_id, annotation_id)
            self.annotations[video_id] = remaining
        logger.info(f"Deleted annotation {annotation_id} for video {video_id}")


class JsonFileAnnotationStore(AnnotationStore):
    """
    Annotation store keeping one ``<video_id>.json`` file per video.

    Every write rewrites the whole file through a temporary file and
    ``os.replace`` so a crash never leaves a truncated document behind.
    """

    def __init__(self, annotation_dir: str):
        self.annotation_dir = Path(annotation_dir)
        self.annotation_dir.mkdir(parents=True, exist_ok=True)
        self.lock = Lock()
        logger.info(f"JsonFileAnnotationStore using {self.annotation_dir.resolve()}")

    def _path(self, video_id: str) -> Path:
        return self.annotation_dir / f"{video_id}.json"

    def _load(self, video_id: str) -> List[Annotation]:
        """Read a video's records; a blank or unreadable file counts as empty"""
        path = self._path(video_id)
        if not path.exists():
            return []
        text = path.read_text(encoding="utf-8")
        if not text.strip():
            return []
        try:
            data = json.loads(text)
            if not isinstance(data, list):
                raise ValueError(f"expected a list, got {type(data).__name__}")
            return [Annotation.model_validate(item) for item in data]
        except (ValueError, ValidationError) as e:
            logger.warning(f"Ignoring unreadable annotation file {path}: {e}")
            return []

    def _save(self, video_id: str, records: List[Annotation]) -> None:
        payload = [ann.model_dump(by_alias=True) for ann in records]
        fd, tmp_path = tempfile.mkstemp(
            dir=self.annotation_dir, prefix=f".{video_id}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2)
            os.replace(tmp_path, self._path(video_id))
        except Exception:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise
        logger.debug(f"Wrote {len(records)} annotations to {self._path(video_id)}")

    def list(self, video_id: str) -> List[Annotation]:
        with self.lock:
            return self._load(video_id)

    def get(self, video_id: str, annotation_id: str) -> Optional[Annotation]:
        for ann in self.list(video_id):
            if ann.id == annotation_id:
                return ann
        return None

    def create(self, video_id: str, obj_in: AnnotationCreate) -> Annotation:
        db_obj = Annotation(
            id=str(uuid.uuid4()), video_id=video_id, **obj_in.model_dump()
        )
        with self.lock:
            records = self._load(video_id)
            records.append(db_obj)
            self._save(video_id, records)
        logger.info(f"Created annotation {db_obj.id} for video {video_id}")
        return db_obj

    def update(
        self, video_id: str, annotation_id: str, obj_in: AnnotationUpdate
    ) -> Annotation:
        with self.lock:
            records = self._load(video_id)
            for idx, ann in enumerate(records):
                if ann.id == annotation_id:
                    records[idx] = merge_update(ann, obj_in)
                    self._save(video_id, records)
                    return records[idx]
        raise AnnotationNotFound(video_id, annotation_id)

    def remove(self, video_id: str, annotation_id: str) -> None:
        with self.lock:
            records = self._load(video_id)
            remaining = [a for a in records if a.id != annotation_id]
            if len(remaining) == len(records):
                raise AnnotationNotFound(video_id, annotation_id)
            self._save(video_id, remaining)
        logger.info(f"Deleted annotation {annotation_id} for video {video_id}")


def create_annotation_store(backend: str, annotation_dir: str) -> AnnotationStore:
    if backend == "memory":
        return InMemoryAnnotationStore()
    if backend == "json":
        return JsonFileAnnotationStore(annotation_dir)
    raise ValueError(f"Unknown storage backend: {backend}")
