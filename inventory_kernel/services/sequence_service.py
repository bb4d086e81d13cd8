"""
SequenceService -- monotonic sequence allocation via locked counter rows.

Responsibility:
    Provides strictly increasing integers for named sequences: the global
    audit sequence and one counter per numbering scope (``supply:2026``,
    ``distribution:2026:<unit id>``).  Uses a dedicated counter table with
    row-level locking (``SELECT ... FOR UPDATE``) so that two concurrent
    creations in the same scope can never observe the same last value.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.  Called by
    NumberAllocator and AuditTrailRecorder.

Invariants enforced:
    - Monotonicity: the locked counter row is the sole source of truth.
      The aggregate max-plus-one pattern is FORBIDDEN.
    - Transactional: an increment is only visible after the caller's
      transaction commits.  A rollback returns the value.

Failure modes:
    - IntegrityError: concurrent counter creation race (handled via
      savepoint rollback and re-read).
    - On SQLite the unit already holds the database write lock
      (BEGIN IMMEDIATE), so the race cannot occur there.

Audit relevance:
    Allocation is logged at DEBUG level with sequence_name and value.
"""

from sqlalchemy import BigInteger, String, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Mapped, Session, mapped_column

from inventory_kernel.db.base import Base
from inventory_kernel.logging_config import get_logger

logger = get_logger("services.sequence")


class SequenceCounter(Base):
    """
    Sequence counter table.

    Each row is a named sequence with its current value.  Row-level locking
    keeps allocation monotonic under concurrency.
    """

    __tablename__ = "sequence_counters"

    name: Mapped[str] = mapped_column(
        String(150),
        nullable=False,
        unique=True,
    )

    current_value: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
    )


class SequenceService:
    """
    Service for generating transactional sequence numbers.

    Contract:
        Accepts a sequence name and returns the next strictly-increasing
        integer value for it.

    Guarantees:
        - ``SELECT ... FOR UPDATE`` serializes concurrent allocations for
          the same sequence.
        - No value is ever returned twice for the same name.

    Non-goals:
        - Does NOT call ``session.commit()`` -- caller controls boundaries.
    """

    AUDIT_ENTRY = "audit_entry"

    def __init__(self, session: Session):
        self._session = session

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

        Preconditions:
            - ``sequence_name`` is a non-empty string.
            - The caller is within an active database transaction.

        Postconditions:
            - Returns an integer > 0, strictly greater than any value
              previously returned for this name.
            - The counter row stays locked until the transaction ends.
        """
        counter = self._locked_counter(sequence_name)

        if counter is None:
            # First use of this sequence.  Another transaction may be
            # creating the same row, so insert inside a savepoint.
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

    def current_value(self, sequence_name: str) -> int | None:
        """Current value of a sequence without incrementing, or None."""
        counter = self._session.execute(
            select(SequenceCounter).where(SequenceCounter.name == sequence_name)
        ).scalar_one_or_none()
        return counter.current_value if counter else None
