"""
restoration_services.unit_of_work -- Transaction boundary for workflow operations.

Responsibility:
    Open a session, hold the per-project lock for the whole transaction,
    commit on success and roll back on any exception.  Kernel services only
    flush; this is the one place that commits.

Failure modes:
    - ``StaleDataError`` (the project's ``version`` moved under us) is
      re-raised as ``StatusConflictError`` so the engine can retry it.
    - Every other exception is re-raised unchanged after rollback.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager, nullcontext
from uuid import UUID

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from restoration_kernel.exceptions import StatusConflictError
from restoration_kernel.logging_config import get_logger
from restoration_services.project_locks import ProjectLockRegistry

logger = get_logger("services.unit_of_work")


class UnitOfWork:
    """Session-per-operation transaction scope."""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        locks: ProjectLockRegistry | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._locks = locks or ProjectLockRegistry()

    @property
    def locks(self) -> ProjectLockRegistry:
        return self._locks

    @contextmanager
    def begin(self, project_id: UUID | None = None) -> Iterator[Session]:
        """Yield a session whose work commits when the block exits cleanly."""
        guard = self._locks.hold(project_id) if project_id is not None else nullcontext()
        with guard:
            session = self._session_factory()
            try:
                yield session
                session.commit()
            except StaleDataError as exc:
                session.rollback()
                logger.warning(
                    "unit_of_work_rolled_back",
                    extra={"project_id": str(project_id), "error_type": "StaleDataError"},
                )
                raise StatusConflictError(str(project_id), str(exc)) from exc
            except Exception as exc:
                session.rollback()
                logger.warning(
                    "unit_of_work_rolled_back",
                    extra={
                        "project_id": str(project_id) if project_id else None,
                        "error_type": type(exc).__name__,
                        "error_code": getattr(exc, "code", None),
                    },
                )
                raise
            finally:
                session.close()

    @contextmanager
    def read(self) -> Iterator[Session]:
        """Yield a session for queries; nothing it does is committed."""
        session = self._session_factory()
        try:
            yield session
        finally:
            session.rollback()
            session.close()
