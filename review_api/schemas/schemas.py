from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serialized with the camelCase keys the review client uses"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _dedupe_tags(tags: List[str]) -> List[str]:
    seen = []
    for tag in tags:
        tag = tag.strip()
        if tag and tag not in seen:
            seen.append(tag)
    return seen


class VideoMetadata(CamelModel):
    duration: float = 0.0
    fps: float = 30.0
    width: int = 1920
    height: int = 1080


class Video(CamelModel):
    id: str
    name: str
    url: str
    index: int
    fps: Optional[float] = None
    duration: Optional[float] = None
    width: Optional[int] = None
    height: Optional[int] = None
    annotation_count: int = 0
    tag_count: int = 0
    avg_rating: float = 0.0


class AnnotationBase(CamelModel):
    timestamp: float = 0.0
    start_frame: int = Field(0, ge=0)
    end_frame: int = Field(0, ge=0)
    tags: List[str] = []
    notes: str = ""
    rating: int = Field(3, ge=1, le=5)

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: List[str]) -> List[str]:
        return _dedupe_tags(v)


class AnnotationCreate(AnnotationBase):
    @model_validator(mode="after")
    def validate_range(self):
        if self.end_frame < self.start_frame:
            raise ValueError("endFrame must be greater than or equal to startFrame")
        return self


class AnnotationUpdate(CamelModel):
    """Partial update; only the fields present in the request are applied"""

    timestamp: Optional[float] = None
    start_frame: Optional[int] = Field(None, ge=0)
    end_frame: Optional[int] = Field(None, ge=0)
    tags: Optional[List[str]] = None
    notes: Optional[str] = None
    rating: Optional[int] = Field(None, ge=1, le=5)

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        if v is None:
            return v
        return _dedupe_tags(v)


class Annotation(AnnotationBase):
    id: str
    video_id: str


class HealthResponse(BaseModel):
    status: str
    timestamp: float
    storage_backend: str
    video_dir: str
