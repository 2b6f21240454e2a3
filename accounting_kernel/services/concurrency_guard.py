"""
ConcurrencyGuard -- optimistic-concurrency token enforcement.

Responsibility:
    Compares the caller's concurrency token with the stored row version
    before any mutation, and translates the store's own lost-update signal
    (``StaleDataError`` raised at flush) into the same typed error.

Architecture position:
    Kernel > Services -- stateless helper, no session of its own.

Invariants enforced:
    - A stale token fails with ConcurrencyConflictError and nothing is
      mutated (the check runs before the aggregate is touched).
    - Conflicts detected by the store surface as ConcurrencyConflictError,
      never as a generic database error.

Failure modes:
    - ValidationError: the token is not a valid base64 row version.
    - ConcurrencyConflictError: token mismatch or stale flush.
"""

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.orm.exc import StaleDataError

from accounting_kernel.domain.dtos import decode_token
from accounting_kernel.exceptions import ConcurrencyConflictError
from accounting_kernel.logging_config import get_logger

logger = get_logger("services.concurrency")


class ConcurrencyGuard:
    """Token comparison and stale-write translation for versioned rows."""

    def check(
        self,
        entity_type: str,
        entity_id: int,
        stored_version: int,
        token: str | None,
    ) -> None:
        """
        Assert the caller saw the current version of the row.

        Raises:
            ValidationError: token is missing or malformed.
            ConcurrencyConflictError: token does not match stored_version.
        """
        expected = decode_token(token)
        if expected != stored_version:
            logger.warning(
                "concurrency_conflict",
                extra={
                    "entity_type": entity_type,
                    "entity_id": entity_id,
                    "stored_version": stored_version,
                    "supplied_version": expected,
                    "detected_by": "token",
                },
            )
            raise ConcurrencyConflictError(entity_type, entity_id)

    @contextmanager
    def translate_conflicts(self, entity_type: str, entity_id: int | None) -> Iterator[None]:
        """Re-raise StaleDataError from the enclosed flush as a conflict."""
        try:
            yield
        except StaleDataError as exc:
            logger.warning(
                "concurrency_conflict",
                extra={
                    "entity_type": entity_type,
                    "entity_id": entity_id,
                    "detected_by": "store",
                },
            )
            raise ConcurrencyConflictError(entity_type, entity_id) from exc
