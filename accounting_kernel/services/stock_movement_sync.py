"""
StockMovementSynchronizer -- invoice-driven stock movements.

Responsibility:
    Writes exactly one StockMovement per qualifying invoice line on create,
    and on update soft-deletes every movement tied to the invoice before
    regenerating them from the current active lines (reset-and-recreate).

Architecture position:
    Kernel > Services.  Called by InvoiceService inside the invoice's
    transaction; flushes only.

Invariants enforced:
    - A line qualifies when the invoice type maps to a movement type, the
      line has an item, the item is INVENTORY, and the quantity is
      non-zero.
    - Movement quantity is the line's absolute quantity; the type encodes
      direction.
    - Every generated movement carries invoice_id, and its transaction date
      equals the invoice date.
    - Movements are only written once a warehouse resolves; a missing
      warehouse aborts the unit of work before commit.

Non-goals:
    - Movement identities are not stable across invoice edits.
"""

from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from accounting_kernel.domain.clock import Clock, SystemClock
from accounting_kernel.domain.enums import ItemType
from accounting_kernel.domain.rounding import round_quantity
from accounting_kernel.domain.stock_rules import participates_in_stock, resolve_movement_type
from accounting_kernel.logging_config import get_logger
from accounting_kernel.models.invoice import Invoice, InvoiceLine
from accounting_kernel.models.item import Item
from accounting_kernel.models.stock import StockMovement
from accounting_kernel.services.base import BaseService
from accounting_kernel.services.warehouse_resolver import WarehouseResolver

logger = get_logger("services.stock_sync")


class StockMovementSynchronizer(BaseService):
    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        warehouse_resolver: WarehouseResolver | None = None,
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._warehouses = warehouse_resolver or WarehouseResolver(session)

    def create_for_invoice(self, invoice: Invoice) -> list[StockMovement]:
        """
        Generate movements for a freshly persisted invoice.

        Preconditions:
            - ``invoice`` has been flushed (its id is assigned).
        """
        movement_type = resolve_movement_type(invoice.invoice_type)
        if movement_type is None:
            return []

        lines = self._qualifying_lines(invoice.active_lines)
        if not lines:
            return []

        warehouse_id = self._warehouses.resolve(invoice.branch_id)
        now = self._clock.now_utc()
        movements = []
        for line in lines:
            movement = StockMovement(
                branch_id=invoice.branch_id,
                warehouse_id=warehouse_id,
                item_id=line.item_id,
                movement_type=movement_type,
                quantity=round_quantity(abs(line.quantity)),
                transaction_date_utc=invoice.date_utc,
                invoice_id=invoice.id,
                created_at_utc=now,
            )
            self.session.add(movement)
            movements.append(movement)

        self.session.flush()
        logger.info(
            "stock_movements_created",
            extra={
                "invoice_id": invoice.id,
                "movement_type": movement_type,
                "warehouse_id": warehouse_id,
                "count": len(movements),
            },
        )
        return movements

    def reset_for_invoice(self, invoice: Invoice) -> list[StockMovement]:
        """Soft-delete every movement tied to ``invoice`` and regenerate."""
        removed = self.soft_delete_for_invoice(invoice.id)
        movements = self.create_for_invoice(invoice)
        logger.info(
            "stock_movements_reset",
            extra={
                "invoice_id": invoice.id,
                "movements_removed": removed,
                "movements_created": len(movements),
            },
        )
        return movements

    def soft_delete_for_invoice(self, invoice_id: int) -> int:
        """Soft-delete the live movements tied to ``invoice_id``; return the count."""
        movements = self.session.execute(
            select(StockMovement).where(
                StockMovement.invoice_id == invoice_id,
                StockMovement.is_deleted.is_(False),
            )
        ).scalars().all()

        now = self._clock.now_utc()
        for movement in movements:
            movement.soft_delete(now)
            movement.updated_at_utc = now
        self.session.flush()
        return len(movements)

    def _qualifying_lines(self, lines: Iterable[InvoiceLine]) -> list[InvoiceLine]:
        candidates = [
            line for line in lines if line.item_id is not None and line.quantity != 0
        ]
        if not candidates:
            return []

        item_types: dict[int, ItemType] = dict(
            self.session.execute(
                select(Item.id, Item.item_type).where(
                    Item.id.in_(sorted({line.item_id for line in candidates}))
                )
            ).all()
        )
        return [
            line
            for line in candidates
            if participates_in_stock(item_types.get(line.item_id, ItemType.SERVICE))
        ]
