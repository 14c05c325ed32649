import json

import pytest

from review_api.crud.base import AnnotationNotFound
from review_api.crud.crud_annotation import (
    InMemoryAnnotationStore,
    JsonFileAnnotationStore,
    create_annotation_store,
)
from review_api.schemas.schemas import AnnotationCreate, AnnotationUpdate


@pytest.fixture(params=["memory", "json"])
def store(request, tmp_path):
    return create_annotation_store(request.param, str(tmp_path / "annotations"))


def make(start=0, end=10, **fields):
    return AnnotationCreate(start_frame=start, end_frame=end, **fields)


class TestAnnotationStores:
    """Behaviour shared by both storage backends"""

    def test_create_assigns_ids(self, store):
        a = store.create("v1", make())
        b = store.create("v1", make())
        assert a.id != b.id
        assert a.video_id == "v1"
        assert [x.id for x in store.list("v1")] == [a.id, b.id]

    def test_videos_are_isolated(self, store):
        store.create("v1", make())
        assert store.list("v2") == []

    def test_get(self, store):
        a = store.create("v1", make(notes="hi"))
        assert store.get("v1", a.id).notes == "hi"
        assert store.get("v1", "missing") is None

    def test_partial_update_keeps_other_fields(self, store):
        a = store.create("v1", make(tags=["x"], notes="n", rating=4))
        updated = store.update("v1", a.id, AnnotationUpdate(rating=1))
        assert updated.rating == 1
        assert updated.tags == ["x"]
        assert updated.notes == "n"
        assert store.list("v1")[0].rating == 1

    def test_update_preserves_order(self, store):
        a = store.create("v1", make(0, 10))
        b = store.create("v1", make(10, 20))
        store.update("v1", a.id, AnnotationUpdate(notes="changed"))
        assert [x.id for x in store.list("v1")] == [a.id, b.id]

    def test_update_unknown(self, store):
        with pytest.raises(AnnotationNotFound):
            store.update("v1", "missing", AnnotationUpdate(rating=2))

    def test_update_inverted_range(self, store):
        a = store.create("v1", make(5, 10))
        with pytest.raises(ValueError):
            store.update("v1", a.id, AnnotationUpdate(end_frame=2))
        assert store.get("v1", a.id).end_frame == 10

    def test_remove(self, store):
        a = store.create("v1", make())
        store.remove("v1", a.id)
        assert store.list("v1") == []
        with pytest.raises(AnnotationNotFound):
            store.remove("v1", a.id)


class TestJsonFileAnnotationStore:
    def test_one_file_per_video(self, tmp_path):
        store = JsonFileAnnotationStore(str(tmp_path))
        store.create("v1", make(tags=["a"]))
        store.create("v2", make())
        assert sorted(p.name for p in tmp_path.glob("*.json")) == ["v1.json", "v2.json"]
        data = json.loads((tmp_path / "v1.json").read_text())
        assert data[0]["videoId"] == "v1"
        assert data[0]["startFrame"] == 0
        assert data[0]["tags"] == ["a"]

    def test_survives_restart(self, tmp_path):
        a = JsonFileAnnotationStore(str(tmp_path)).create("v1", make(notes="kept"))
        reopened = JsonFileAnnotationStore(str(tmp_path))
        assert reopened.get("v1", a.id).notes == "kept"

    def test_no_temp_files_left(self, tmp_path):
        store = JsonFileAnnotationStore(str(tmp_path))
        a = store.create("v1", make())
        store.update("v1", a.id, AnnotationUpdate(notes="x"))
        store.remove("v1", a.id)
        assert [p.name for p in tmp_path.iterdir()] == ["v1.json"]

    @pytest.mark.parametrize(
        "content", ["", "  \n", "{not json", '{"id": "a"}', '[{"startFrame": "x"}]']
    )
    def test_unreadable_file_is_empty(self, tmp_path, content):
        (tmp_path / "v1.json").write_text(content)
        store = JsonFileAnnotationStore(str(tmp_path))
        assert store.list("v1") == []

        created = store.create("v1", make(notes="fresh"))
        assert [a.id for a in store.list("v1")] == [created.id]


def test_unknown_backend(tmp_path):
    with pytest.raises(ValueError):
        create_annotation_store("redis", str(tmp_path))


def test_memory_store_type(tmp_path):
    assert isinstance(create_annotation_store("memory", str(tmp_path)), InMemoryAnnotationStore)
