import json
from typing import Annotated, List, Literal, Union

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode


class Settings(BaseSettings):
    API_PREFIX: str = "/api"

    VIDEO_DIR: str = "./videos"
    VIDEO_EXTENSIONS: Annotated[List[str], NoDecode] = [
        ".mp4",
        ".mov",
        ".webm",
        ".mkv",
        ".avi",
    ]

    STORAGE_BACKEND: Literal["memory", "json"] = "json"
    ANNOTATION_DIR: str = "./annotations"

    BACKEND_CORS_ORIGINS: Annotated[List[str], NoDecode] = [
        "http://localhost:8501",
        "http://localhost:8000",
    ]

    @field_validator("BACKEND_CORS_ORIGINS", "VIDEO_EXTENSIONS", mode="before")
    @classmethod
    def assemble_list(cls, v: Union[str, List[str]]) -> List[str]:
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",") if i.strip()]
        elif isinstance(v, str):
            return json.loads(v)
        elif isinstance(v, list):
            return v
        raise ValueError(v)

    @field_validator("VIDEO_EXTENSIONS")
    @classmethod
    def normalize_extensions(cls, v: List[str]) -> List[str]:
        return [e.lower() if e.startswith(".") else f".{e.lower()}" for e in v]

    PROJECT_NAME: str = "Video Review Tool"
    LOG_LEVEL: str = "INFO"

    model_config = {"env_file": ".env"}


settings = Settings()
