"""In-process mutual exclusion keyed by project id."""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from uuid import UUID


class ProjectLockRegistry:
    """
    One lock per project, created on demand and dropped when unused.

    Serializes workflow operations on the same project inside one process.
    Across processes the row lock (``SELECT ... FOR UPDATE``) and the
    project ``version`` column do the same job.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[UUID, threading.Lock] = {}
        self._holders: dict[UUID, int] = {}

    @contextmanager
    def hold(self, project_id: UUID) -> Iterator[None]:
        with self._guard:
            lock = self._locks.setdefault(project_id, threading.Lock())
            self._holders[project_id] = self._holders.get(project_id, 0) + 1
        try:
            with lock:
                yield
        finally:
            with self._guard:
                self._holders[project_id] -= 1
                if self._holders[project_id] == 0:
                    del self._holders[project_id]
                    del self._locks[project_id]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)
