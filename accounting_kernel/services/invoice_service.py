"""
InvoiceService -- atomic invoice create, update and delete.

Responsibility:
    Orchestrates one invoice operation end to end in a single transaction:
    input validation, the stock-availability guard, number allocation,
    aggregate construction (InvoiceAggregateBuilder), stock-movement
    synchronization and the balance recalculators.  Commits on success,
    rolls back on any failure.

Architecture position:
    Kernel > Services -- the write-side entry point hosts call.  All
    collaborators are injectable; defaults are built on the same session.

Invariants enforced:
    - Ordering on create: stock availability is validated before a number
      is allocated, and both happen before any invoice row is written.
    - Atomicity: header, lines and stock movements commit together or not
      at all.  A missing warehouse or any other failure after the first
      write rolls back the whole unit of work.
    - Optimistic concurrency: update/delete compare the caller's token with
      the stored row version before touching the aggregate; a conflicting
      write detected by the store at flush surfaces as the same
      ConcurrencyConflictError.
    - Update returns a fresh read of what was committed, never the
      in-memory aggregate.
    - Branch scope: an invoice of another branch is reported as not found.

Failure modes:
    - UnauthorizedError: no branch in the caller context (before any I/O).
    - ValidationError / NotFoundError / BusinessRuleError subclasses /
      ConcurrencyConflictError: propagated unmodified after rollback.

Audit relevance:
    Every operation logs ``<operation>_started`` / ``_completed`` /
    ``_failed`` under one correlation id.
"""

from collections import defaultdict
from collections.abc import Sequence
from decimal import Decimal
from uuid import uuid4

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from accounting_config import EngineConfig, get_active_config
from accounting_kernel.domain.clock import Clock, SystemClock
from accounting_kernel.domain.context import BranchContext, require_branch
from accounting_kernel.domain.dtos import (
    CreateInvoiceCommand,
    CreateInvoiceResult,
    InvoiceDetail,
    InvoiceLineInput,
    UpdateInvoiceCommand,
)
from accounting_kernel.domain.rounding import round_quantity
from accounting_kernel.domain.stock_rules import requires_availability_check
from accounting_kernel.exceptions import NotFoundError
from accounting_kernel.logging_config import LogContext
from accounting_kernel.models.invoice import Invoice
from accounting_kernel.selectors.invoice_selector import InvoiceSelector
from accounting_kernel.services.balance_service import (
    ContactBalanceRecalculator,
    ContactBalanceService,
    InvoiceBalanceRecalculator,
    InvoiceBalanceService,
)
from accounting_kernel.services.base import unit_of_work
from accounting_kernel.services.concurrency_guard import ConcurrencyGuard
from accounting_kernel.services.invoice_builder import InvoiceAggregateBuilder
from accounting_kernel.services.invoice_number_service import InvoiceNumberService
from accounting_kernel.services.stock_availability_service import (
    StockAvailabilityService,
)
from accounting_kernel.services.stock_movement_sync import StockMovementSynchronizer
from accounting_kernel.services.warehouse_resolver import WarehouseResolver


def aggregate_requirements(lines: Sequence[InvoiceLineInput]) -> dict[int, Decimal]:
    """Sum the absolute requested quantity per item id, each rounded to 3 places."""
    requirements: dict[int, Decimal] = defaultdict(Decimal)
    for line in lines:
        if line.item_id is not None:
            requirements[line.item_id] += round_quantity(abs(line.quantity))
    return dict(requirements)


class InvoiceService:
    """
    Invoice persistence orchestrator.

    Usage:
        service = InvoiceService(session, clock=clock)
        result = service.create_invoice(context, command)
        detail = service.update_invoice(context, update_command)
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: EngineConfig | None = None,
        number_service: InvoiceNumberService | None = None,
        stock_guard: StockAvailabilityService | None = None,
        warehouse_resolver: WarehouseResolver | None = None,
        stock_sync: StockMovementSynchronizer | None = None,
        invoice_balance: InvoiceBalanceRecalculator | None = None,
        contact_balance: ContactBalanceRecalculator | None = None,
        auto_commit: bool = True,
    ):
        self.session = session
        self._clock = clock or SystemClock()
        self._config = config or get_active_config()
        self._auto_commit = auto_commit

        self._builder = InvoiceAggregateBuilder(session, self._clock, self._config)
        self._guard = ConcurrencyGuard()
        self._numbers = number_service or InvoiceNumberService(
            session, self._clock, self._config
        )
        self._stock_guard = stock_guard or StockAvailabilityService(session)
        self._stock_sync = stock_sync or StockMovementSynchronizer(
            session,
            self._clock,
            warehouse_resolver or WarehouseResolver(session),
        )
        self._invoice_balance = invoice_balance or InvoiceBalanceService(session)
        self._contact_balance = contact_balance or ContactBalanceService(session)
        self._selector = InvoiceSelector(session)

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create_invoice(
        self,
        context: BranchContext,
        command: CreateInvoiceCommand,
    ) -> CreateInvoiceResult:
        """
        Create an invoice with its lines and stock movements.

        Preconditions:
            - ``context`` carries a branch id.

        Postconditions:
            - Header totals equal the rounded sums of the lines.
            - One live stock movement per INVENTORY line when the invoice
              type moves stock.
            - Invoice and contact balances are recalculated.

        Raises:
            InsufficientStockError: a SALES invoice needs more than is
                available; nothing has been written.
            WarehouseNotConfiguredError: stock must move but the branch has
                no warehouse; the invoice is rolled back.
        """
        branch_id = require_branch(context)

        with LogContext.bind(
            correlation_id=str(uuid4()),
            branch_id=branch_id,
            actor_id=context.user_id,
            operation="create_invoice",
        ):
            with unit_of_work(
                self.session,
                "create_invoice",
                self._auto_commit,
                invoice_type=command.invoice_type,
                line_count=len(command.lines),
            ) as outcome:
                result = self._do_create(branch_id, command)
                outcome.update(
                    invoice_id=result.id,
                    invoice_number=result.invoice_number,
                    total_gross=result.total_gross,
                )
            return result

    def _do_create(
        self, branch_id: int, command: CreateInvoiceCommand
    ) -> CreateInvoiceResult:
        self._builder.validate_lines(command.lines)
        currency = self._builder.normalize_currency(command.currency)
        self._builder.require_contact(branch_id, command.contact_id)

        if requires_availability_check(command.invoice_type):
            self._stock_guard.validate_batch_availability(
                branch_id, aggregate_requirements(command.lines)
            )

        snapshots = self._builder.load_item_snapshots(
            line.item_id for line in command.lines
        )

        prefix = self._numbers.prefix_for(command.invoice_type)
        invoice_number = self._numbers.generate_next(branch_id, prefix)

        invoice = self._builder.build(
            branch_id, command, currency, invoice_number, snapshots
        )
        self.session.add(invoice)
        self.session.flush()

        self._stock_sync.create_for_invoice(invoice)
        self._invoice_balance.recalculate(invoice.id)
        self._contact_balance.recalculate(invoice.contact_id)

        return CreateInvoiceResult(
            id=invoice.id,
            invoice_number=invoice.invoice_number,
            total_net=invoice.total_net,
            total_vat=invoice.total_vat,
            total_gross=invoice.total_gross,
            rounding_policy=self._config.rounding_policy,
        )

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------

    def update_invoice(
        self,
        context: BranchContext,
        command: UpdateInvoiceCommand,
    ) -> InvoiceDetail:
        """
        Overwrite an invoice header and reconcile its lines.

        Lines absent from the command are soft-deleted, lines with a known
        id are recalculated in place and lines without an id are appended.
        Stock movements are reset and regenerated from the active lines.

        Returns:
            The committed invoice, re-read from the database, carrying the
            new concurrency token.

        Raises:
            NotFoundError: no live invoice with this id in the branch.
            ConcurrencyConflictError: the token is stale, or another
                transaction committed first; nothing is changed.
        """
        branch_id = require_branch(context)

        with LogContext.bind(
            correlation_id=str(uuid4()),
            branch_id=branch_id,
            actor_id=context.user_id,
            invoice_id=command.invoice_id,
            operation="update_invoice",
        ):
            with unit_of_work(
                self.session,
                "update_invoice",
                self._auto_commit,
                line_count=len(command.lines),
            ) as outcome:
                invoice_id = self._do_update(branch_id, command)
                outcome.update(invoice_id=invoice_id)

            return self._selector.get_detail(branch_id, invoice_id)

    def _do_update(self, branch_id: int, command: UpdateInvoiceCommand) -> int:
        invoice = self._load_for_write(branch_id, command.invoice_id)
        self._guard.check(
            "Invoice", invoice.id, invoice.row_version, command.concurrency_token
        )

        # Every lookup runs before the aggregate is touched, so no pending
        # change is autoflushed ahead of the guarded flush below.
        self._builder.validate_lines(command.lines)
        currency = self._builder.normalize_currency(command.currency)
        self._builder.require_contact(branch_id, command.contact_id)
        snapshots = self._builder.load_item_snapshots(
            line.item_id for line in command.lines
        )
        previous_contact_id = invoice.contact_id

        self._builder.apply_update(invoice, command, currency, snapshots)

        with self._guard.translate_conflicts("Invoice", invoice.id):
            self._invoice_balance.recalculate(invoice.id)
            self.session.flush()

        self._stock_sync.reset_for_invoice(invoice)

        self._contact_balance.recalculate(invoice.contact_id)
        if previous_contact_id != invoice.contact_id:
            self._contact_balance.recalculate(previous_contact_id)

        return invoice.id

    # ------------------------------------------------------------------
    # Delete / read
    # ------------------------------------------------------------------

    def delete_invoice(
        self,
        context: BranchContext,
        invoice_id: int,
        concurrency_token: str,
    ) -> None:
        """
        Soft-delete an invoice, its lines and its stock movements.

        Raises:
            NotFoundError: no live invoice with this id in the branch.
            ConcurrencyConflictError: stale token.
        """
        branch_id = require_branch(context)

        with LogContext.bind(
            correlation_id=str(uuid4()),
            branch_id=branch_id,
            actor_id=context.user_id,
            invoice_id=invoice_id,
            operation="delete_invoice",
        ):
            with unit_of_work(
                self.session, "delete_invoice", self._auto_commit
            ) as outcome:
                invoice = self._load_for_write(branch_id, invoice_id)
                self._guard.check(
                    "Invoice", invoice.id, invoice.row_version, concurrency_token
                )

                now = self._clock.now_utc()
                for line in invoice.active_lines:
                    line.soft_delete(now)
                    line.updated_at_utc = now
                invoice.soft_delete(now)
                invoice.updated_at_utc = now

                with self._guard.translate_conflicts("Invoice", invoice.id):
                    self.session.flush()

                outcome["movements_removed"] = self._stock_sync.soft_delete_for_invoice(
                    invoice.id
                )
                self._contact_balance.recalculate(invoice.contact_id)

    def get_invoice(
        self,
        context: BranchContext,
        invoice_id: int,
        include_deleted_lines: bool = False,
    ) -> InvoiceDetail:
        branch_id = require_branch(context)
        return self._selector.get_detail(branch_id, invoice_id, include_deleted_lines)

    def _load_for_write(self, branch_id: int, invoice_id: int) -> Invoice:
        invoice = self.session.execute(
            select(Invoice)
            .where(
                Invoice.id == invoice_id,
                Invoice.branch_id == branch_id,
                Invoice.is_deleted.is_(False),
            )
            .options(selectinload(Invoice.lines))
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if invoice is None:
            raise NotFoundError("Invoice", invoice_id)
        return invoice
