import pytest
from fastapi.testclient import TestClient

from review_api.api import deps
from review_api.crud.crud_annotation import InMemoryAnnotationStore
from review_api.main import app
from review_api.schemas.schemas import AnnotationCreate


class TestHealth:
    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert "version" in response.json()

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert "X-Process-Time" in response.headers


class TestVideoEndpoints:
    """Video library routes"""

    def test_list_videos(self, client):
        response = client.get("/api/videos")
        assert response.status_code == 200
        videos = response.json()
        assert [v["name"] for v in videos] == ["clip_a.avi", "clip_b.avi"]
        assert [v["index"] for v in videos] == [1, 2]
        first = videos[0]
        assert first["id"] == "clip_a"
        assert first["url"] == "/api/videos/clip_a/stream"
        assert first["fps"] == pytest.approx(30)
        assert first["duration"] == pytest.approx(2.0)
        assert first["width"] == 64
        assert first["height"] == 48
        assert (first["annotationCount"], first["tagCount"], first["avgRating"]) == (0, 0, 0)

    def test_list_videos_with_stats(self, client, server_store):
        server_store.create("clip_a", AnnotationCreate(tags=["a", "b"], rating=5))
        server_store.create("clip_a", AnnotationCreate(tags=["c"], rating=4))
        server_store.create("clip_a", AnnotationCreate(rating=4))
        videos = {v["id"]: v for v in client.get("/api/videos").json()}
        assert videos["clip_a"]["annotationCount"] == 3
        assert videos["clip_a"]["tagCount"] == 3
        assert videos["clip_a"]["avgRating"] == 4.3
        assert videos["clip_b"]["annotationCount"] == 0
        assert client.get("/api/videos/clip_a").json()["tagCount"] == 3

    def test_read_video(self, client):
        response = client.get("/api/videos/clip_b")
        assert response.status_code == 200
        assert response.json()["fps"] == pytest.approx(25)

    def test_unknown_video(self, client):
        assert client.get("/api/videos/missing").status_code == 404
        assert client.get("/api/videos/missing/metadata").status_code == 404
        assert client.get("/api/videos/missing/stream").status_code == 404
        assert client.get("/api/videos/missing/frames/0").status_code == 404

    def test_metadata(self, client):
        response = client.get("/api/videos/clip_a/metadata")
        assert response.status_code == 200
        metadata = response.json()
        assert metadata["fps"] == pytest.approx(30)
        assert metadata["duration"] == pytest.approx(2.0)

    def test_stream(self, client, video_dir):
        response = client.get("/api/videos/clip_a/stream")
        assert response.status_code == 200
        assert response.content == (video_dir / "clip_a.avi").read_bytes()

    def test_frame(self, client):
        response = client.get("/api/videos/clip_a/frames/10")
        assert response.status_code == 200
        assert response.headers["content-type"] == "image/jpeg"
        assert response.content[:2] == b"\xff\xd8"

    def test_frame_out_of_range(self, client):
        assert client.get("/api/videos/clip_a/frames/-1").status_code == 400
        assert client.get("/api/videos/clip_a/frames/9999").status_code == 400


class TestAnnotationEndpoints:
    """Annotation CRUD routes"""

    payload = {
        "timestamp": 1.0,
        "startFrame": 30,
        "endFrame": 60,
        "tags": ["jump", "jump", " spin "],
        "notes": "clean landing",
        "rating": 4,
    }

    def test_create_and_list(self, client):
        response = client.post("/api/annotations/clip_a", json=self.payload)
        assert response.status_code == 200
        created = response.json()
        assert created["id"]
        assert created["videoId"] == "clip_a"
        assert created["startFrame"] == 30
        assert created["endFrame"] == 60
        assert created["tags"] == ["jump", "spin"]

        listed = client.get("/api/annotations/clip_a").json()
        assert listed == [created]
        assert client.get("/api/annotations/clip_b").json() == []

    def test_create_defaults(self, client):
        response = client.post(
            "/api/annotations/clip_a", json={"startFrame": 0, "endFrame": 10}
        )
        assert response.status_code == 200
        created = response.json()
        assert created["tags"] == []
        assert created["notes"] == ""
        assert created["rating"] == 3

    @pytest.mark.parametrize(
        "body",
        [
            {"startFrame": 10, "endFrame": 5},
            {"startFrame": -1, "endFrame": 5},
            {"startFrame": 0, "endFrame": 5, "rating": 0},
            {"startFrame": 0, "endFrame": 5, "rating": 6},
        ],
    )
    def test_create_rejects_invalid(self, client, body):
        assert client.post("/api/annotations/clip_a", json=body).status_code == 422

    def test_create_for_unknown_video(self, client):
        response = client.post("/api/annotations/missing", json=self.payload)
        assert response.status_code == 404

    def test_partial_update(self, client):
        created = client.post("/api/annotations/clip_a", json=self.payload).json()
        response = client.put(
            f"/api/annotations/clip_a/{created['id']}", json={"rating": 2}
        )
        assert response.status_code == 200
        updated = response.json()
        assert updated["rating"] == 2
        assert updated["notes"] == "clean landing"
        assert updated["tags"] == ["jump", "spin"]

    def test_update_rejects_inverted_range(self, client):
        created = client.post("/api/annotations/clip_a", json=self.payload).json()
        response = client.put(
            f"/api/annotations/clip_a/{created['id']}", json={"endFrame": 10}
        )
        assert response.status_code == 422

    def test_update_unknown(self, client):
        response = client.put("/api/annotations/clip_a/nope", json={"rating": 2})
        assert response.status_code == 404

    def test_delete(self, client):
        created = client.post("/api/annotations/clip_a", json=self.payload).json()
        response = client.delete(f"/api/annotations/clip_a/{created['id']}")
        assert response.status_code == 200
        assert client.get("/api/annotations/clip_a").json() == []
        assert client.delete(f"/api/annotations/clip_a/{created['id']}").status_code == 404

    def test_duplicate_ranges_are_allowed(self, client, server_store):
        client.post("/api/annotations/clip_a", json=self.payload)
        client.post("/api/annotations/clip_a", json=self.payload)
        assert len(server_store.list("clip_a")) == 2

    def test_store_receives_schema(self, client, server_store):
        client.post("/api/annotations/clip_a", json=self.payload)
        [stored] = server_store.list("clip_a")
        assert stored.start_frame == 30
        assert AnnotationCreate(**self.payload).notes == stored.notes


class BrokenStore(InMemoryAnnotationStore):
    def list(self, video_id):
        raise RuntimeError("disk on fire")


def test_unexpected_error_returns_500(client):
    app.dependency_overrides[deps.get_annotation_store] = BrokenStore
    with TestClient(app, raise_server_exceptions=False) as broken_client:
        response = broken_client.get("/api/annotations/clip_a")
    assert response.status_code == 500
    assert response.json() == {"message": "Internal server error"}
