"""
Background persistence for annotation edits.

Store calls run on a small thread pool so local interaction never waits on
the network. Finished calls are not applied from the worker threads: they
land on a result channel that the UI thread drains with ``poll()``, which
keeps every mutation of the session state on one thread.
"""

import logging
import os
import queue
import uuid
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from threading import Lock
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

DEFAULT_WORKERS = int(os.getenv("PERSISTENCE_WORKERS", "1"))


class TaskStatus(str, Enum):
    """Persistence task status"""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class PersistenceTask:
    """A store call submitted for background execution"""

    task_id: str
    kind: str
    video_id: str
    annotation_id: str
    revision: int
    status: TaskStatus
    created_at: datetime
    completed_at: Optional[datetime] = None
    result: Any = None
    error: Optional[str] = None
    params: Dict[str, Any] = field(default_factory=dict)


class PersistenceQueue:
    """
    Runs store calls in the background and reports their outcome.

    With the default single worker, calls reach the server in submission
    order. Larger pools give no ordering guarantee; the session copes with
    that by comparing revisions when results come back.
    """

    def __init__(self, max_workers: int = DEFAULT_WORKERS):
        self.executor = ThreadPoolExecutor(
            max_workers=max(1, max_workers), thread_name_prefix="persist-worker"
        )
        self.results: "queue.Queue[PersistenceTask]" = queue.Queue()
        self.futures: Dict[str, Future] = {}
        self.lock = Lock()

    def submit(
        self,
        kind: str,
        task_func: Callable[..., Any],
        *,
        video_id: str,
        annotation_id: str,
        revision: int = 0,
        **params: Any,
    ) -> str:
        """
        Submit a store call.

        Args:
            kind: Call type, e.g. "update" or "delete"
            task_func: Store method to run; called with ``video_id``,
                ``annotation_id`` and ``params`` as keyword arguments
            video_id: Video the call belongs to
            annotation_id: Annotation the call targets
            revision: Local revision of the record at submission time
            params: Remaining keyword arguments for ``task_func``

        Returns:
            task_id: Identifier echoed in the result
        """
        task = PersistenceTask(
            task_id=str(uuid.uuid4()),
            kind=kind,
            video_id=video_id,
            annotation_id=annotation_id,
            revision=revision,
            status=TaskStatus.PENDING,
            created_at=datetime.now(),
            params=params,
        )
        # Workers take the lock before dropping their future, so it is always
        # registered first
        with self.lock:
            self.futures[task.task_id] = self.executor.submit(
                self._execute, task, task_func
            )
        logger.debug(f"Task {task.task_id} ({kind} {annotation_id}) submitted")
        return task.task_id

    def _execute(self, task: PersistenceTask, task_func: Callable[..., Any]) -> None:
        task.status = TaskStatus.RUNNING
        try:
            task.result = task_func(
                video_id=task.video_id, annotation_id=task.annotation_id, **task.params
            )
            task.status = TaskStatus.COMPLETED
            logger.debug(f"Task {task.task_id} completed")
        except Exception as e:
            logger.error(f"Task {task.task_id} ({task.kind}) failed: {e}")
            task.status = TaskStatus.FAILED
            task.error = str(e)
        finally:
            task.completed_at = datetime.now()
            with self.lock:
                self.futures.pop(task.task_id, None)
            self.results.put(task)

    def poll(self) -> List[PersistenceTask]:
        """Drain finished tasks without blocking"""
        finished = []
        while True:
            try:
                finished.append(self.results.get_nowait())
            except queue.Empty:
                return finished

    @property
    def pending_count(self) -> int:
        with self.lock:
            return len(self.futures)

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until every submitted task finished; True if none is left"""
        with self.lock:
            futures = list(self.futures.values())
        done, not_done = wait(futures, timeout=timeout)
        return not not_done

    def shutdown(self) -> None:
        logger.info("Shutting down PersistenceQueue")
        self.executor.shutdown(wait=True)
