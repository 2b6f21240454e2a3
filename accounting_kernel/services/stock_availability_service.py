"""
StockAvailabilityService -- batch stock sufficiency check.

Responsibility:
    Computes available quantity per item from the live stock movements of
    a branch, and validates a whole requirement map at once before a
    stock-consuming invoice is written.

Architecture position:
    Kernel > Services.  Read-only; called by InvoiceService before number
    allocation and before any write.

Invariants enforced:
    - Available = sum(inbound live movements) - sum(outbound live movements).
      Stock levels are never cached.
    - Only INVENTORY items are checked; other item types always pass.
    - Every shortage is collected before failing (one error, all items).

Failure modes:
    - InsufficientStockError listing every short item.
"""

from collections.abc import Iterable, Mapping
from decimal import Decimal

from sqlalchemy import case, func, select

from accounting_kernel.domain.enums import ItemType
from accounting_kernel.domain.rounding import round_quantity
from accounting_kernel.domain.stock_rules import INBOUND_MOVEMENT_TYPES
from accounting_kernel.exceptions import InsufficientStockError, StockShortage
from accounting_kernel.logging_config import get_logger
from accounting_kernel.models.item import Item
from accounting_kernel.models.stock import StockMovement
from accounting_kernel.services.base import BaseService

logger = get_logger("services.stock_availability")


class StockAvailabilityService(BaseService):
    def available_quantity(
        self, branch_id: int, item_ids: Iterable[int]
    ) -> dict[int, Decimal]:
        """
        Available quantity per item in ``branch_id``.

        Items without movements report zero.
        """
        ids = sorted(set(item_ids))
        if not ids:
            return {}

        signed = case(
            (
                StockMovement.movement_type.in_(sorted(INBOUND_MOVEMENT_TYPES)),
                StockMovement.quantity,
            ),
            else_=-StockMovement.quantity,
        )
        rows = self.session.execute(
            select(StockMovement.item_id, func.coalesce(func.sum(signed), 0))
            .where(
                StockMovement.branch_id == branch_id,
                StockMovement.item_id.in_(ids),
                StockMovement.is_deleted.is_(False),
            )
            .group_by(StockMovement.item_id)
        ).all()

        available = {item_id: round_quantity(0) for item_id in ids}
        for item_id, total in rows:
            available[item_id] = round_quantity(Decimal(str(total)))
        return available

    def validate_batch_availability(
        self, branch_id: int, requirements: Mapping[int, Decimal]
    ) -> None:
        """
        Validate that every INVENTORY item in ``requirements`` has enough
        stock.

        Raises:
            InsufficientStockError: one or more items are short; the error
                lists all of them.
        """
        if not requirements:
            return

        inventory_ids = set(
            self.session.execute(
                select(Item.id).where(
                    Item.id.in_(list(requirements)),
                    Item.is_deleted.is_(False),
                    Item.item_type == ItemType.INVENTORY,
                )
            ).scalars()
        )
        if not inventory_ids:
            return

        available = self.available_quantity(branch_id, inventory_ids)
        shortages = [
            StockShortage(
                item_id=item_id,
                required=round_quantity(requirements[item_id]),
                available=available[item_id],
            )
            for item_id in sorted(inventory_ids)
            if available[item_id] < requirements[item_id]
        ]
        if shortages:
            logger.warning(
                "stock_insufficient",
                extra={
                    "branch_id": branch_id,
                    "shortages": [
                        {
                            "item_id": s.item_id,
                            "required": s.required,
                            "available": s.available,
                        }
                        for s in shortages
                    ],
                },
            )
            raise InsufficientStockError(shortages)
