"""SequenceCounter -- one locked counter row per named sequence."""

from sqlalchemy import BigInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from restoration_kernel.db.base import Base


class SequenceCounter(Base):
    """
    Sequence counter table.

    Each row represents a named sequence with its current value.
    Row-level locking ensures monotonicity under concurrency.
    """

    __tablename__ = "sequence_counters"

    # e.g. "invoice", "timeline:<project uuid>"
    name: Mapped[str] = mapped_column(String(80), nullable=False, unique=True)

    current_value: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
