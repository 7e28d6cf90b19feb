"""
SequenceService -- monotonic sequence allocation via locked counter rows.

Responsibility:
    Hands out strictly increasing integers per named sequence: the
    per-project timeline ``seq`` and invoice numbers.  A dedicated counter
    row is locked with ``SELECT ... FOR UPDATE`` for each allocation.

Architecture position:
    Kernel > Services.  Called by TimelineLedger and InvoiceService.

Invariants enforced:
    - Values for one sequence name are strictly increasing.
    - The increment is transactional: it becomes visible when the caller
      commits; a rollback returns the value.

Failure modes:
    - IntegrityError on concurrent first use of a sequence name is handled
      with a savepoint and a re-read of the row the other writer created.
"""

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from restoration_kernel.logging_config import get_logger
from restoration_kernel.models.sequence import SequenceCounter

logger = get_logger("services.sequence")


class SequenceService:
    """
    Service for generating transactional sequence numbers.

    Guarantees:
        - Strictly monotonic values per sequence via the locked counter row.
        - Gap-free under normal operation; a rolled back transaction returns
          its value.

    Non-goals:
        - Does NOT call ``session.commit()`` -- caller controls boundaries.
    """

    INVOICE = "invoice"

    def __init__(self, session: Session):
        self._session = session

    @staticmethod
    def timeline_sequence(project_id) -> str:
        return f"timeline:{project_id}"

    def _locked_counter(self, sequence_name: str) -> SequenceCounter | None:
        return self._session.execute(
            select(SequenceCounter)
            .where(SequenceCounter.name == sequence_name)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def next_value(self, sequence_name: str) -> int:
        """
        Get the next value for a named sequence.

        Postconditions:
            - Returns an integer > 0, greater than any value previously
              returned for ``sequence_name``.
            - The counter row stays locked until the transaction ends.
        """
        counter = self._locked_counter(sequence_name)

        if counter is None:
            # First use.  Another writer may be creating the same row; the
            # savepoint keeps the rest of the caller's transaction intact.
            savepoint = self._session.begin_nested()
            try:
                counter = SequenceCounter(name=sequence_name, current_value=1)
                self._session.add(counter)
                self._session.flush()
                savepoint.commit()
                logger.debug(
                    "sequence_allocated",
                    extra={"sequence_name": sequence_name, "value": 1},
                )
                return 1
            except IntegrityError:
                logger.debug(
                    "sequence_counter_race_retry",
                    extra={"sequence_name": sequence_name},
                )
                savepoint.rollback()
                counter = self._locked_counter(sequence_name)
                if counter is None:
                    raise

        counter.current_value += 1
        self._session.flush()
        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": sequence_name, "value": counter.current_value},
        )
        return counter.current_value
