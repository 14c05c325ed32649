from .schemas import (
    Annotation,
    AnnotationCreate,
    AnnotationUpdate,
    HealthResponse,
    Video,
    VideoMetadata,
)

__all__ = [
    "Annotation",
    "AnnotationCreate",
    "AnnotationUpdate",
    "HealthResponse",
    "Video",
    "VideoMetadata",
]
