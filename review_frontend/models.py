from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

# Python attribute -> wire key of the review API
_WIRE_KEYS = {
    "id": "id",
    "video_id": "videoId",
    "timestamp": "timestamp",
    "start_frame": "startFrame",
    "end_frame": "endFrame",
    "tags": "tags",
    "notes": "notes",
    "rating": "rating",
}
_ATTR_KEYS = {v: k for k, v in _WIRE_KEYS.items()}

DEFAULT_RATING = 3


def to_wire(partial: Dict[str, Any]) -> Dict[str, Any]:
    return {_WIRE_KEYS.get(k, k): v for k, v in partial.items()}


def from_wire(data: Dict[str, Any]) -> Dict[str, Any]:
    return {_ATTR_KEYS[k]: v for k, v in data.items() if k in _ATTR_KEYS}


@dataclass(frozen=True)
class FrameRange:
    """Inclusive [start_frame, end_frame] annotation target"""

    start_frame: int = 0
    end_frame: int = 10

    @property
    def is_valid(self) -> bool:
        return 0 <= self.start_frame <= self.end_frame

    @property
    def width(self) -> int:
        return self.end_frame - self.start_frame

    def contains(self, frame: int) -> bool:
        return self.start_frame <= frame <= self.end_frame


@dataclass
class Annotation:
    id: str
    video_id: str
    timestamp: float = 0.0
    start_frame: int = 0
    end_frame: int = 0
    tags: List[str] = field(default_factory=list)
    notes: str = ""
    rating: int = DEFAULT_RATING

    @property
    def frame_range(self) -> FrameRange:
        return FrameRange(self.start_frame, self.end_frame)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Annotation":
        return cls(**from_wire(data))

    def to_dict(self) -> Dict[str, Any]:
        return to_wire(
            {
                "id": self.id,
                "video_id": self.video_id,
                "timestamp": self.timestamp,
                "start_frame": self.start_frame,
                "end_frame": self.end_frame,
                "tags": list(self.tags),
                "notes": self.notes,
                "rating": self.rating,
            }
        )


@dataclass
class Video:
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

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Video":
        return cls(
            id=data["id"],
            name=data["name"],
            url=data["url"],
            index=data["index"],
            fps=data.get("fps"),
            duration=data.get("duration"),
            width=data.get("width"),
            height=data.get("height"),
            annotation_count=data.get("annotationCount", 0),
            tag_count=data.get("tagCount", 0),
            avg_rating=data.get("avgRating", 0.0),
        )
