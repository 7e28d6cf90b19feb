"""
BaseService -- abstract base for all kernel services.

Responsibility:
    Common constructor and session contract for every write-side service in
    the kernel.  Services receive a ``Session`` and an injected ``Clock`` and
    persist with ``session.flush()`` -- never ``session.commit()``.

Architecture position:
    Kernel > Services.  The unit of work in restoration_services owns
    commit/rollback so a status change, its timeline entry and any estimate
    row land in one transaction.

Failure modes:
    - A subclass calling ``session.commit()`` breaks the single-transaction
      guarantee of workflow operations.
"""

from abc import ABC
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from restoration_kernel.domain.clock import Clock, SystemClock
from restoration_kernel.exceptions import ProjectNotFoundError


class BaseService(ABC):
    """
    Abstract base class for kernel services.

    Contract:
        Accepts a SQLAlchemy ``Session`` from the caller and flushes within
        the caller's transaction.

    Guarantees:
        - Never calls ``session.commit()`` or ``session.rollback()``.

    Non-goals:
        - Read-only queries belong in ``restoration_kernel/selectors/``.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self.session = session
        self.clock = clock or SystemClock()

    def _get_project_for_update(self, project_id: UUID):
        """
        Load a project and take its row lock (``SELECT ... FOR UPDATE``).

        Raises:
            ProjectNotFoundError: no such project.
        """
        from restoration_kernel.models.project import ProjectModel

        project = self.session.execute(
            select(ProjectModel)
            .where(ProjectModel.id == project_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if project is None:
            raise ProjectNotFoundError(str(project_id))
        return project
