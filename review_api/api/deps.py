from functools import lru_cache

from fastapi import Depends, HTTPException

from review_api.core.config import settings
from review_api.crud.base import AnnotationStore
from review_api.crud.crud_annotation import create_annotation_store
from review_api.crud.crud_video import VideoLibrary


@lru_cache
def get_annotation_store() -> AnnotationStore:
    return create_annotation_store(settings.STORAGE_BACKEND, settings.ANNOTATION_DIR)


@lru_cache
def get_video_library() -> VideoLibrary:
    return VideoLibrary(
        settings.VIDEO_DIR, settings.VIDEO_EXTENSIONS, api_prefix=settings.API_PREFIX
    )


def get_known_video_id(
    video_id: str, library: VideoLibrary = Depends(get_video_library)
) -> str:
    if library.get_path(video_id) is None:
        raise HTTPException(status_code=404, detail="Video not found")
    return video_id
