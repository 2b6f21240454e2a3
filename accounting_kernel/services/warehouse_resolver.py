"""
WarehouseResolver -- pick the warehouse invoice stock movements post to.

Resolution order: the branch's live default warehouse, else its first live
warehouse by id.  A branch with no live warehouse fails with
WarehouseNotConfiguredError, which aborts the enclosing invoice
transaction before it commits.
"""

from sqlalchemy import select

from accounting_kernel.exceptions import WarehouseNotConfiguredError
from accounting_kernel.logging_config import get_logger
from accounting_kernel.models.branch import Warehouse
from accounting_kernel.services.base import BaseService

logger = get_logger("services.warehouse")


class WarehouseResolver(BaseService):
    def resolve(self, branch_id: int) -> int:
        """Return the id of the warehouse to post to for ``branch_id``."""
        live = (Warehouse.branch_id == branch_id, Warehouse.is_deleted.is_(False))

        warehouse_id = self.session.execute(
            select(Warehouse.id)
            .where(*live, Warehouse.is_default.is_(True))
            .order_by(Warehouse.id)
            .limit(1)
        ).scalar_one_or_none()

        if warehouse_id is None:
            warehouse_id = self.session.execute(
                select(Warehouse.id).where(*live).order_by(Warehouse.id).limit(1)
            ).scalar_one_or_none()
            if warehouse_id is not None:
                logger.debug(
                    "warehouse_fallback_used",
                    extra={"branch_id": branch_id, "warehouse_id": warehouse_id},
                )

        if warehouse_id is None:
            logger.warning("warehouse_not_configured", extra={"branch_id": branch_id})
            raise WarehouseNotConfiguredError(branch_id)

        return warehouse_id
