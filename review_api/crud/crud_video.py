import logging
import re
from pathlib import Path
from typing import Dict, List, Optional

from review_api.crud.base import AnnotationStore
from review_api.schemas.schemas import Annotation, Video
from review_api.services.metadata_service import process_video_metadata

logger = logging.getLogger(__name__)

_VIDEO_ID_RE = re.compile(r"^[A-Za-z0-9._ -]+$")


def video_stats(annotations: List[Annotation]) -> Dict[str, float]:
    """Annotation count, total tag count and mean rating (one decimal)"""
    count = len(annotations)
    avg_rating = sum(a.rating for a in annotations) / count if count else 0.0
    return {
        "annotation_count": count,
        "tag_count": sum(len(a.tags) for a in annotations),
        "avg_rating": round(avg_rating, 1),
    }


class VideoLibrary:
    """Lists the video files found in a local folder."""

    def __init__(self, video_dir: str, extensions: List[str], api_prefix: str = "/api"):
        self.video_dir = Path(video_dir)
        self.extensions = [ext.lower() for ext in extensions]
        self.api_prefix = api_prefix.rstrip("/")
        self._metadata_cache: Dict[str, tuple] = {}

    def _scan(self) -> List[Path]:
        if not self.video_dir.is_dir():
            logger.warning(f"Video directory {self.video_dir} does not exist")
            return []
        files = [
            p
            for p in self.video_dir.iterdir()
            if p.is_file() and p.suffix.lower() in self.extensions
        ]
        return sorted(files, key=lambda p: p.name.lower())

    def _metadata(self, path: Path):
        # Probe again only when the file changed on disk
        mtime = path.stat().st_mtime
        cached = self._metadata_cache.get(path.stem)
        if cached and cached[0] == mtime:
            return cached[1]
        metadata = process_video_metadata(str(path))
        self._metadata_cache[path.stem] = (mtime, metadata)
        return metadata

    def _to_schema(
        self, path: Path, index: int, store: Optional[AnnotationStore] = None
    ) -> Video:
        metadata = self._metadata(path)
        stats = video_stats(store.list(path.stem)) if store is not None else {}
        return Video(
            id=path.stem,
            name=path.name,
            url=f"{self.api_prefix}/videos/{path.stem}/stream",
            index=index,
            fps=metadata.fps,
            duration=metadata.duration,
            width=metadata.width,
            height=metadata.height,
            **stats,
        )

    def get_multi(self, store: Optional[AnnotationStore] = None) -> List[Video]:
        return [self._to_schema(p, i, store) for i, p in enumerate(self._scan(), start=1)]

    def get_path(self, video_id: str) -> Optional[Path]:
        if not _VIDEO_ID_RE.match(video_id) or video_id.startswith("."):
            return None
        for path in self._scan():
            if path.stem == video_id:
                return path
        return None

    def get(
        self, video_id: str, store: Optional[AnnotationStore] = None
    ) -> Optional[Video]:
        for i, path in enumerate(self._scan(), start=1):
            if path.stem == video_id:
                return self._to_schema(path, i, store)
        return None
