from __future__ import annotations

import logging

from app.wms.core.deps import Actor
from app.wms.core.error_catalog import AppError, ErrorCatalog
from app.wms.core.logging import log_event
from app.wms.db.models import InboundReceipt, PutawayTask, ReceiptStatus, utcnow
from app.wms.repos.inbound_receipts import InboundReceiptRepository
from app.wms.repos.inventory import InventoryRepository, PutawayTaskFilters
from app.wms.repos.reference import ReferenceRepository

logger = logging.getLogger(__name__)

PUTAWAY_PENDING = "PENDING"
PUTAWAY_COMPLETED = "COMPLETED"


class PutawayService:
    """Downstream step that moves confirmed stock into storage locations."""

    def __init__(self, db):
        self.db = db
        self.inventory = InventoryRepository(db)
        self.receipts = InboundReceiptRepository(db)
        self.reference = ReferenceRepository(db)

    def list_tasks(self, filters: PutawayTaskFilters) -> list[PutawayTask]:
        return self.inventory.list_putaway_tasks(filters)

    def complete_task(self, org_id: str, actor: Actor, task_id, *, qty: int, location_id) -> PutawayTask:
        task = self.inventory.get_putaway_task(task_id, org_id, for_update=True)
        if task is None:
            raise AppError(ErrorCatalog.RESOURCE_NOT_FOUND, details={"task_id": str(task_id)})
        if task.status != PUTAWAY_PENDING:
            raise AppError(
                ErrorCatalog.PUTAWAY_TASK_NOT_PENDING,
                details={"task_id": str(task_id), "status": task.status},
            )
        if qty < 1 or qty > task.qty_expected:
            raise AppError(
                ErrorCatalog.VALIDATION_ERROR,
                details={"message": "qty must be between 1 and the task's expected quantity", "qty_expected": task.qty_expected},
            )
        if self.reference.get_active_location(location_id, task.warehouse_id) is None:
            raise AppError(
                ErrorCatalog.VALIDATION_ERROR,
                details={"message": "location is not an active location of the task's warehouse"},
            )

        task.status = PUTAWAY_COMPLETED
        task.qty_processed = qty
        task.to_location_id = location_id
        task.processed_by = actor.user_id
        task.completed_at = utcnow()
        self.inventory.add_to_balance(
            org_id=task.org_id,
            warehouse_id=task.warehouse_id,
            location_id=location_id,
            product_id=task.product_id,
            qty=qty,
        )
        self.inventory.add_ledger_entry(
            org_id=task.org_id,
            warehouse_id=task.warehouse_id,
            product_id=task.product_id,
            location_id=location_id,
            transaction_type="PUTAWAY",
            qty_change=qty,
            reference_type="PUTAWAY_TASK",
            reference_id=task.id,
            created_by=actor.user_id,
        )
        self.db.commit()
        log_event(
            logger,
            "putaway.task.completed",
            org_id=org_id,
            task_id=str(task_id),
            qty=qty,
            location_id=str(location_id),
            trace_id=actor.trace_id,
        )
        return task

    def mark_putaway_ready(self, org_id: str, actor: Actor, receipt_id) -> InboundReceipt:
        receipt = self.receipts.get_receipt(receipt_id, org_id, for_update=True)
        if receipt is None:
            raise AppError(ErrorCatalog.RESOURCE_NOT_FOUND, details={"receipt_id": str(receipt_id)})
        current_status = receipt.status
        if not self.receipts.transition_status(receipt, {ReceiptStatus.CONFIRMED}, ReceiptStatus.PUTAWAY_READY):
            self.db.rollback()
            raise AppError(
                ErrorCatalog.INVALID_RECEIPT_STATE,
                details={"receipt_id": str(receipt_id), "status": current_status},
            )
        self.db.commit()
        log_event(logger, "putaway.receipt.ready", org_id=org_id, receipt_id=str(receipt_id), trace_id=actor.trace_id)
        return receipt
