"""
Module: accounting_kernel.selectors.stock_selector
Responsibility: Read access to stock movements.
Architecture position: Kernel > Selectors.
"""

from sqlalchemy import select

from accounting_kernel.domain.dtos import StockMovementDetail, encode_token
from accounting_kernel.models.stock import StockMovement
from accounting_kernel.selectors.base import BaseSelector


def _movement_detail(movement: StockMovement) -> StockMovementDetail:
    return StockMovementDetail(
        id=movement.id,
        branch_id=movement.branch_id,
        warehouse_id=movement.warehouse_id,
        item_id=movement.item_id,
        movement_type=movement.movement_type,
        quantity=movement.quantity,
        transaction_date_utc=movement.transaction_date_utc,
        note=movement.note,
        invoice_id=movement.invoice_id,
        is_deleted=movement.is_deleted,
        concurrency_token=encode_token(movement.row_version),
    )


class StockSelector(BaseSelector):
    def movements_for_invoice(
        self,
        invoice_id: int,
        include_deleted: bool = False,
    ) -> list[StockMovementDetail]:
        """Movements tied to ``invoice_id``, ordered by id."""
        query = select(StockMovement).where(StockMovement.invoice_id == invoice_id)
        if not include_deleted:
            query = query.where(StockMovement.is_deleted.is_(False))
        movements = self.session.execute(
            query.order_by(StockMovement.id).execution_options(populate_existing=True)
        ).scalars()
        return [_movement_detail(movement) for movement in movements]
