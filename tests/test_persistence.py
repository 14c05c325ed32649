import threading

from review_frontend.services.annotation_store import InMemoryAnnotationStore
from review_frontend.services.persistence import PersistenceQueue, TaskStatus


class TestPersistenceQueue:
    """Background store calls and the result channel"""

    def test_completed_task_is_reported(self, persistence):
        persistence.submit(
            "update",
            lambda video_id, annotation_id, value: f"{video_id}/{annotation_id}/{value * 2}",
            video_id="v",
            annotation_id="a",
            revision=3,
            value=21,
        )
        assert persistence.wait(timeout=5)
        results = persistence.poll()
        assert len(results) == 1
        task = results[0]
        assert task.status == TaskStatus.COMPLETED
        assert task.result == "v/a/42"
        assert task.revision == 3
        assert task.annotation_id == "a"
        assert task.completed_at is not None

    def test_failed_task_is_reported(self, persistence):
        def boom(video_id, annotation_id):
            raise RuntimeError("server down")

        persistence.submit("delete", boom, video_id="v", annotation_id="a")
        assert persistence.wait(timeout=5)
        [task] = persistence.poll()
        assert task.status == TaskStatus.FAILED
        assert task.error == "server down"

    def test_poll_does_not_block(self, persistence):
        release = threading.Event()
        persistence.submit(
            "update", lambda **ids: release.wait(), video_id="v", annotation_id="a"
        )
        assert persistence.poll() == []
        assert persistence.pending_count == 1
        release.set()
        assert persistence.wait(timeout=5)
        assert len(persistence.poll()) == 1
        assert persistence.pending_count == 0

    def test_single_worker_keeps_submission_order(self, persistence):
        seen = []
        for i in range(10):
            persistence.submit(
                "update",
                lambda x, **ids: seen.append(x),
                video_id="v",
                annotation_id="a",
                x=i,
            )
        assert persistence.wait(timeout=5)
        assert seen == list(range(10))
        assert [t.params["x"] for t in persistence.poll()] == list(range(10))

    def test_shutdown_waits_for_tasks(self):
        queue = PersistenceQueue(max_workers=2)
        done = []
        queue.submit("update", lambda **ids: done.append(1), video_id="v", annotation_id="a")
        queue.shutdown()
        assert done == [1]


class TestStoreCalls:
    """Store methods submitted the way the session submits them"""

    def test_update_reaches_store(self, persistence):
        store = InMemoryAnnotationStore()
        record = store.create("v", {"start_frame": 0, "end_frame": 10})
        persistence.submit(
            "update",
            store.update,
            video_id="v",
            annotation_id=record.id,
            revision=1,
            partial={"notes": "saved", "rating": 5},
        )
        assert persistence.wait(timeout=5)
        [task] = persistence.poll()
        assert task.status == TaskStatus.COMPLETED
        assert task.result.notes == "saved"
        [stored] = store.list("v")
        assert (stored.notes, stored.rating) == ("saved", 5)

    def test_delete_reaches_store(self, persistence):
        store = InMemoryAnnotationStore()
        record = store.create("v", {"start_frame": 0, "end_frame": 10})
        persistence.submit("delete", store.delete, video_id="v", annotation_id=record.id)
        assert persistence.wait(timeout=5)
        [task] = persistence.poll()
        assert task.result is True
        assert store.list("v") == []

    def test_unknown_record_fails_task(self, persistence):
        store = InMemoryAnnotationStore()
        persistence.submit(
            "update", store.update, video_id="v", annotation_id="nope", partial={"notes": "x"}
        )
        assert persistence.wait(timeout=5)
        [task] = persistence.poll()
        assert task.status == TaskStatus.FAILED
        assert "nope" in task.error
