"""
BaseService -- abstract base for all kernel services.

Responsibility:
    Provides the common constructor and session-handling contract for
    every write-side service.  Services use ``session.flush()`` and never
    ``session.commit()``.  The orchestrators wrap each public operation in
    unit_of_work(), which owns commit/rollback and the operation log.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.

Invariants enforced:
    - Transaction boundaries: services flush within the caller's
      transaction and never commit or rollback themselves.  The
      orchestrators (InvoiceService, PaymentService) or the caller own
      commit/rollback.
    - Any exception raised inside a unit of work rolls back the whole
      operation (when the orchestrator owns the transaction) and is
      re-raised unmodified.

Failure modes:
    - A subclass that commits on its own breaks the atomicity of the
      invoice + lines + stock movements unit of work.
"""

import time
from abc import ABC
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from sqlalchemy.orm import Session

from accounting_kernel.logging_config import get_logger

logger = get_logger("services.unit_of_work")


class BaseService(ABC):
    """
    Abstract base class for all kernel services.

    Guarantees:
        - The service never calls ``session.commit()`` or
          ``session.rollback()``.
    """

    def __init__(self, session: Session):
        self.session = session


@contextmanager
def unit_of_work(
    session: Session,
    operation: str,
    auto_commit: bool = True,
    **fields: Any,
) -> Iterator[dict[str, Any]]:
    """
    Run one orchestrated operation as a single transaction.

    Emits ``<operation>_started``, then ``<operation>_completed`` (with
    ``duration_ms`` plus whatever the body put into the yielded dict) or
    ``<operation>_failed`` (with ``duration_ms`` and the error code).

    Postconditions:
        - auto_commit=True: committed on success, rolled back on failure.
        - auto_commit=False: the caller owns commit/rollback.
    """
    logger.info(f"{operation}_started", extra=fields)
    t0 = time.monotonic()
    outcome: dict[str, Any] = {}

    try:
        yield outcome
        if auto_commit:
            session.commit()
    except Exception as exc:
        duration_ms = round((time.monotonic() - t0) * 1000, 2)
        if auto_commit:
            session.rollback()
        logger.error(
            f"{operation}_failed",
            extra={
                "duration_ms": duration_ms,
                "error_code": getattr(exc, "code", type(exc).__name__),
            },
            exc_info=True,
        )
        raise

    duration_ms = round((time.monotonic() - t0) * 1000, 2)
    logger.info(
        f"{operation}_completed",
        extra={"duration_ms": duration_ms, **outcome},
    )
