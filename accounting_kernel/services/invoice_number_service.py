"""
InvoiceNumberService -- unique, sequential invoice numbers.

Responsibility:
    Allocates the human-readable invoice number
    ``{prefix}-{year}-{sequence}`` (e.g. ``SAT-2024-000001``) per branch,
    prefix and year.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.
    Called by InvoiceService before any invoice row is written.

Invariants enforced:
    - Uniqueness: a locked counter row (``SELECT ... FOR UPDATE``) per
      (branch, prefix, year) serializes concurrent allocations.  The
      aggregate-max-plus-one pattern over invoice numbers is NEVER used.
    - Transactional: the increment is only visible after the caller's
      transaction commits; a rollback returns the number.
    - The year comes from the injected Clock.

Failure modes:
    - IntegrityError: concurrent first-use counter creation (handled via
      savepoint rollback and retry).
"""

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from accounting_config import EngineConfig, get_active_config
from accounting_kernel.domain.clock import Clock, SystemClock
from accounting_kernel.domain.enums import InvoiceType
from accounting_kernel.logging_config import get_logger
from accounting_kernel.models.sequence import InvoiceNumberCounter
from accounting_kernel.services.base import BaseService

logger = get_logger("services.invoice_number")


class InvoiceNumberService(BaseService):
    """
    Invoice number allocator.

    Usage:
        number = service.generate_next(branch_id, service.prefix_for(InvoiceType.SALES))
        # -> "SAT-2024-000001"
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: EngineConfig | None = None,
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._config = config or get_active_config()

    def prefix_for(self, invoice_type: InvoiceType | None) -> str:
        return self._config.prefix_for(invoice_type)

    def generate_next(self, branch_id: int, prefix: str) -> str:
        """
        Allocate the next invoice number for a branch and prefix.

        Postconditions:
            - The sequence part is strictly greater than any previously
              issued for (branch_id, prefix, current year).
            - The counter row stays locked until the transaction completes.
        """
        year = self._clock.now_utc().year
        value = self._next_value(branch_id, prefix, year)
        number = f"{prefix}-{year}-{value:0{self._config.sequence_width}d}"
        logger.debug(
            "invoice_number_allocated",
            extra={"branch_id": branch_id, "prefix": prefix, "invoice_number": number},
        )
        return number

    def _lock_counter(self, branch_id: int, prefix: str, year: int):
        return self.session.execute(
            select(InvoiceNumberCounter)
            .where(
                InvoiceNumberCounter.branch_id == branch_id,
                InvoiceNumberCounter.prefix == prefix,
                InvoiceNumberCounter.year == year,
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def _next_value(self, branch_id: int, prefix: str, year: int) -> int:
        counter = self._lock_counter(branch_id, prefix, year)

        if counter is None:
            # First number of the year: another transaction may create the
            # same counter concurrently, so insert inside a savepoint.
            savepoint = self.session.begin_nested()
            try:
                counter = InvoiceNumberCounter(
                    branch_id=branch_id, prefix=prefix, year=year, current_value=1
                )
                self.session.add(counter)
                self.session.flush()
                savepoint.commit()
                return 1
            except IntegrityError:
                logger.debug(
                    "invoice_counter_race_retry",
                    extra={"branch_id": branch_id, "prefix": prefix, "year": year},
                )
                savepoint.rollback()
                counter = self._lock_counter(branch_id, prefix, year)
                if counter is None:
                    raise

        counter.current_value += 1
        self.session.flush()
        return counter.current_value
