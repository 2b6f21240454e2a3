"""
Module: accounting_kernel.models.branch
Responsibility: ORM persistence for branches (the tenant scope of every
    invoice, contact and stock movement) and their warehouses.
Architecture position: Kernel > Models.  May import from db/ and
    domain/enums.py only.

Invariants enforced:
    - Branch code is unique.
    - Warehouse code is unique within its branch.
    - At most one default warehouse per branch is expected; when several
      are flagged the resolver picks the lowest id.
"""

from sqlalchemy import Boolean, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from accounting_kernel.db.base import SoftDeleteMixin, TrackedBase


class Branch(TrackedBase):
    """Organizational unit.  Every branch-scoped query filters on its id."""

    __tablename__ = "branches"

    __table_args__ = (UniqueConstraint("code", name="uq_branch_code"),)

    code: Mapped[str] = mapped_column(String(50), nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)


class Warehouse(TrackedBase, SoftDeleteMixin):
    """
    Physical stock location belonging to one branch.

    Stock movements generated by invoices post to the branch's default
    warehouse, or to its first live warehouse when none is flagged default.
    """

    __tablename__ = "warehouses"

    __table_args__ = (
        UniqueConstraint("branch_id", "code", name="uq_warehouse_branch_code"),
        Index("idx_warehouse_branch", "branch_id"),
    )

    branch_id: Mapped[int] = mapped_column(
        ForeignKey("branches.id"),
        nullable=False,
    )

    code: Mapped[str] = mapped_column(String(50), nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    is_default: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )
