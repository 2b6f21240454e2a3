"""
Caller context -- who is acting, and in which branch.

The engine never resolves identity itself.  Hosts pass a BranchContext to
the orchestrators; every branch-scoped operation starts with
require_branch(), which fails before any database access when no branch
is bound.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from accounting_kernel.exceptions import UnauthorizedError


class BranchContext(Protocol):
    """Contract for the current-user/branch provider."""

    @property
    def branch_id(self) -> int | None: ...

    @property
    def user_id(self) -> int | None: ...


@dataclass(frozen=True)
class StaticBranchContext:
    """Fixed context for batch jobs, scripts and tests."""

    branch_id: int | None
    user_id: int | None = None


def require_branch(context: BranchContext | None) -> int:
    if context is None or context.branch_id is None:
        raise UnauthorizedError()
    return context.branch_id
