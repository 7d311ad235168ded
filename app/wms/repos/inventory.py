from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import func, select

from app.wms.db.models import InventoryBalance, InventoryLedgerEntry, PutawayTask, utcnow


@dataclass(frozen=True)
class PutawayTaskFilters:
    org_id: str
    warehouse_id: str | None = None
    status: str | None = None
    receipt_id: str | None = None


class InventoryRepository:
    def __init__(self, db):
        self.db = db

    def add_ledger_entry(self, **values) -> InventoryLedgerEntry:
        entry = InventoryLedgerEntry(**values)
        self.db.add(entry)
        return entry

    def ledger_for_reference(self, reference_type: str, reference_id: str) -> list[InventoryLedgerEntry]:
        return (
            self.db.execute(
                select(InventoryLedgerEntry)
                .where(
                    InventoryLedgerEntry.reference_type == reference_type,
                    InventoryLedgerEntry.reference_id == reference_id,
                )
                .order_by(InventoryLedgerEntry.created_at)
            )
            .scalars()
            .all()
        )

    def add_putaway_task(self, **values) -> PutawayTask:
        task = PutawayTask(**values)
        self.db.add(task)
        return task

    def list_putaway_tasks(self, filters: PutawayTaskFilters) -> list[PutawayTask]:
        query = select(PutawayTask).where(PutawayTask.org_id == filters.org_id)
        if filters.warehouse_id:
            query = query.where(PutawayTask.warehouse_id == filters.warehouse_id)
        if filters.status:
            query = query.where(PutawayTask.status == filters.status)
        if filters.receipt_id:
            query = query.where(PutawayTask.receipt_id == filters.receipt_id)
        return self.db.execute(query.order_by(PutawayTask.created_at, PutawayTask.id)).scalars().all()

    def get_putaway_task(self, task_id: str, org_id: str, *, for_update: bool = False) -> PutawayTask | None:
        query = select(PutawayTask).where(PutawayTask.id == task_id, PutawayTask.org_id == org_id)
        if for_update:
            query = query.with_for_update()
        return self.db.execute(query).scalars().first()

    def add_to_balance(self, *, org_id, warehouse_id, location_id, product_id, qty: int) -> InventoryBalance:
        balance = (
            self.db.execute(
                select(InventoryBalance)
                .where(
                    InventoryBalance.warehouse_id == warehouse_id,
                    InventoryBalance.location_id == location_id,
                    InventoryBalance.product_id == product_id,
                )
                .with_for_update()
            )
            .scalars()
            .first()
        )
        if balance is None:
            balance = InventoryBalance(
                org_id=org_id,
                warehouse_id=warehouse_id,
                location_id=location_id,
                product_id=product_id,
                qty_on_hand=0,
                qty_allocated=0,
            )
            self.db.add(balance)
        balance.qty_on_hand = (balance.qty_on_hand or 0) + qty
        balance.updated_at = utcnow()
        return balance

    def on_hand(self, warehouse_id: str, product_id: str) -> int:
        total = self.db.execute(
            select(func.coalesce(func.sum(InventoryBalance.qty_on_hand), 0)).where(
                InventoryBalance.warehouse_id == warehouse_id,
                InventoryBalance.product_id == product_id,
            )
        ).scalar_one()
        return int(total or 0)
