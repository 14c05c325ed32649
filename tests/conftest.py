from pathlib import Path

import cv2
import numpy as np
import pytest
from fastapi.testclient import TestClient

from review_api.api import deps
from review_api.crud.crud_annotation import InMemoryAnnotationStore
from review_api.crud.crud_video import VideoLibrary
from review_api.main import app
from review_frontend.services.annotation_store import ReviewApiClient
from review_frontend.services.persistence import PersistenceQueue


def write_test_video(path: Path, fps: float = 30, frames: int = 60, size=(64, 48)) -> Path:
    """Write a small MJPG clip whose frame i is filled with gray level i"""
    writer = cv2.VideoWriter(str(path), cv2.VideoWriter_fourcc(*"MJPG"), fps, size)
    for i in range(frames):
        writer.write(np.full((size[1], size[0], 3), i % 256, dtype=np.uint8))
    writer.release()
    return path


@pytest.fixture
def video_dir(tmp_path):
    videos = tmp_path / "videos"
    videos.mkdir()
    write_test_video(videos / "clip_a.avi", fps=30, frames=60)
    write_test_video(videos / "clip_b.avi", fps=25, frames=50)
    (videos / "notes.txt").write_text("not a video")
    return videos


@pytest.fixture
def server_store():
    return InMemoryAnnotationStore()


@pytest.fixture
def client(video_dir, server_store):
    library = VideoLibrary(str(video_dir), [".avi", ".mp4"], api_prefix="/api")
    app.dependency_overrides[deps.get_annotation_store] = lambda: server_store
    app.dependency_overrides[deps.get_video_library] = lambda: library
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def api(client):
    """Review API client talking to the app in-process"""
    return ReviewApiClient("http://testserver", session=client)


@pytest.fixture
def persistence():
    queue = PersistenceQueue(max_workers=1)
    yield queue
    queue.shutdown()
