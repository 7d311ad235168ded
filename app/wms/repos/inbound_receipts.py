from __future__ import annotations

import logging
import uuid
import weakref
from dataclasses import dataclass

from sqlalchemy import and_, delete, func, insert, inspect, select, update
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.orm import undefer

from app.wms.core.config import settings
from app.wms.core.logging import log_event
from app.wms.db.models import (
    FINALIZED_RECEIPT_STATUSES,
    InboundPhoto,
    InboundPhotoSlot,
    InboundPlan,
    InboundPlanLine,
    InboundReceipt,
    InboundReceiptLine,
    utcnow,
)

logger = logging.getLogger(__name__)

LOCATION_COLUMN = "location_id"


@dataclass(frozen=True)
class PhotoSlotProgress:
    slot_id: uuid.UUID
    slot_key: str
    title: str
    is_required: bool
    min_photos: int
    sort_order: int
    photo_count: int

    @property
    def slot_ok(self) -> bool:
        return (not self.is_required) or self.photo_count >= self.min_photos


class LocationColumnSupport:
    """Tracks whether `inbound_receipt_lines.location_id` exists, per engine.

    The column ships in a later migration than the rest of the table, so a
    deployment may run this code against a schema that lacks it.
    """

    def __init__(self) -> None:
        self._by_engine: weakref.WeakKeyDictionary = weakref.WeakKeyDictionary()

    def is_enabled(self, db) -> bool:
        mode = settings.RECEIPT_LINE_LOCATION_MODE
        if mode == "disabled":
            return False
        engine = db.get_bind()
        cached = self._by_engine.get(engine)
        if cached is not None:
            return cached
        if mode == "enabled":
            supported = True
        else:
            columns = inspect(engine).get_columns(InboundReceiptLine.__tablename__)
            supported = any(column["name"] == LOCATION_COLUMN for column in columns)
        self._by_engine[engine] = supported
        return supported

    def disable(self, db) -> None:
        self._by_engine[db.get_bind()] = False


location_support = LocationColumnSupport()


def is_location_column_error(exc: Exception) -> bool:
    if not isinstance(exc, DBAPIError):
        return False
    return LOCATION_COLUMN in str(exc.orig if exc.orig is not None else exc).lower()


class InboundReceiptRepository:
    def __init__(self, db):
        self.db = db

    def get_receipt(self, receipt_id: str, org_id: str, *, for_update: bool = False) -> InboundReceipt | None:
        query = select(InboundReceipt).where(InboundReceipt.id == receipt_id, InboundReceipt.org_id == org_id)
        if for_update:
            query = query.with_for_update()
        return self.db.execute(query).scalars().first()

    def get_receipt_for_plan(self, plan_id: str) -> InboundReceipt | None:
        return self.db.execute(select(InboundReceipt).where(InboundReceipt.plan_id == plan_id)).scalars().first()

    def receipts_for_plans(self, plan_ids) -> dict[str, InboundReceipt]:
        ids = list(plan_ids)
        if not ids:
            return {}
        rows = self.db.execute(select(InboundReceipt).where(InboundReceipt.plan_id.in_(ids))).scalars().all()
        return {str(receipt.plan_id): receipt for receipt in rows}

    def transition_status(self, receipt: InboundReceipt, from_statuses, to_status: str, **values) -> bool:
        """Moves the receipt (and its plan) to `to_status` only if it is still in `from_statuses`."""
        now = utcnow()
        plan_id = receipt.plan_id
        result = self.db.execute(
            update(InboundReceipt)
            .where(InboundReceipt.id == receipt.id, InboundReceipt.status.in_(tuple(from_statuses)))
            .values(status=to_status, updated_at=now, **values)
            .execution_options(synchronize_session=False)
        )
        self.db.expire(receipt)
        if result.rowcount != 1:
            return False
        self.db.execute(
            update(InboundPlan)
            .where(InboundPlan.id == plan_id)
            .values(status=to_status, updated_at=now)
            .execution_options(synchronize_session="evaluate")
        )
        return True

    def hold_open(self, receipt_id) -> bool:
        """Touches the receipt unless it is finalized.

        The row stays locked until the caller's transaction ends, so a confirm
        either sees everything written under the hold or refuses it afterwards.
        """
        result = self.db.execute(
            update(InboundReceipt)
            .where(
                InboundReceipt.id == receipt_id,
                InboundReceipt.status.not_in(tuple(FINALIZED_RECEIPT_STATUSES)),
            )
            .values(updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def delete_receipt_tree(self, receipt: InboundReceipt) -> None:
        for model in (InboundPhoto, InboundReceiptLine, InboundPhotoSlot):
            self.db.execute(
                delete(model).where(model.receipt_id == receipt.id).execution_options(synchronize_session=False)
            )
        self.db.execute(
            delete(InboundReceipt).where(InboundReceipt.id == receipt.id).execution_options(synchronize_session=False)
        )

    def delete_plan_tree(self, plan: InboundPlan) -> None:
        self.db.execute(
            delete(InboundPlanLine)
            .where(InboundPlanLine.plan_id == plan.id)
            .execution_options(synchronize_session=False)
        )
        self.db.execute(
            delete(InboundPlan).where(InboundPlan.id == plan.id).execution_options(synchronize_session=False)
        )

    # photo slots and photos

    def create_slots(self, receipt: InboundReceipt, catalog) -> list[InboundPhotoSlot]:
        slots = [
            InboundPhotoSlot(
                org_id=receipt.org_id,
                receipt_id=receipt.id,
                slot_key=spec.slot_key,
                title=spec.title,
                is_required=spec.is_required,
                min_photos=spec.min_photos,
                sort_order=index,
            )
            for index, spec in enumerate(catalog)
        ]
        self.db.add_all(slots)
        self.db.flush()
        return slots

    def get_slot(self, slot_id: str, receipt_id: str) -> InboundPhotoSlot | None:
        return (
            self.db.execute(
                select(InboundPhotoSlot).where(
                    InboundPhotoSlot.id == slot_id,
                    InboundPhotoSlot.receipt_id == receipt_id,
                )
            )
            .scalars()
            .first()
        )

    def slot_progress(self, receipt_id: str) -> list[PhotoSlotProgress]:
        photo_count = func.count(InboundPhoto.id)
        query = (
            select(
                InboundPhotoSlot.id,
                InboundPhotoSlot.slot_key,
                InboundPhotoSlot.title,
                InboundPhotoSlot.is_required,
                InboundPhotoSlot.min_photos,
                InboundPhotoSlot.sort_order,
                photo_count,
            )
            .select_from(InboundPhotoSlot)
            .outerjoin(
                InboundPhoto,
                and_(InboundPhoto.slot_id == InboundPhotoSlot.id, InboundPhoto.is_deleted.is_(False)),
            )
            .where(InboundPhotoSlot.receipt_id == receipt_id)
            .group_by(
                InboundPhotoSlot.id,
                InboundPhotoSlot.slot_key,
                InboundPhotoSlot.title,
                InboundPhotoSlot.is_required,
                InboundPhotoSlot.min_photos,
                InboundPhotoSlot.sort_order,
            )
            .order_by(InboundPhotoSlot.sort_order)
        )
        return [
            PhotoSlotProgress(
                slot_id=row[0],
                slot_key=row[1],
                title=row[2],
                is_required=bool(row[3]),
                min_photos=int(row[4]),
                sort_order=int(row[5]),
                photo_count=int(row[6] or 0),
            )
            for row in self.db.execute(query).all()
        ]

    def add_photo(self, receipt: InboundReceipt, slot: InboundPhotoSlot, **values) -> InboundPhoto:
        photo = InboundPhoto(org_id=receipt.org_id, receipt_id=receipt.id, slot_id=slot.id, **values)
        self.db.add(photo)
        self.db.flush()
        return photo

    def list_photos(self, slot_id: str) -> list[InboundPhoto]:
        return (
            self.db.execute(
                select(InboundPhoto)
                .where(InboundPhoto.slot_id == slot_id, InboundPhoto.is_deleted.is_(False))
                .order_by(InboundPhoto.uploaded_at.desc())
            )
            .scalars()
            .all()
        )

    def get_photo(self, photo_id: str, receipt_id: str) -> InboundPhoto | None:
        return (
            self.db.execute(
                select(InboundPhoto).where(InboundPhoto.id == photo_id, InboundPhoto.receipt_id == receipt_id)
            )
            .scalars()
            .first()
        )

    # receipt lines

    def location_enabled(self) -> bool:
        return location_support.is_enabled(self.db)

    def check_location_column(self) -> bool:
        """Resolves the location capability with a read, before any write of the transaction.

        A failing read rolls the session back, so callers that are about to
        write must settle the capability first.
        """
        if not self.location_enabled():
            return False
        try:
            self.db.execute(select(InboundReceiptLine.location_id).limit(1)).all()
        except DBAPIError as exc:
            if not is_location_column_error(exc):
                raise
            self._disable_location(exc)
            return False
        return True

    def _disable_location(self, exc: DBAPIError) -> None:
        self.db.rollback()
        location_support.disable(self.db)
        log_event(logger, "inbound.receipt_line.location_unsupported", error_class=exc.__class__.__name__)

    def list_lines(self, receipt_id: str) -> list[InboundReceiptLine]:
        query = (
            select(InboundReceiptLine)
            .where(InboundReceiptLine.receipt_id == receipt_id)
            .order_by(InboundReceiptLine.created_at, InboundReceiptLine.id)
        )
        if not self.location_enabled():
            return self.db.execute(query).scalars().all()
        try:
            return self.db.execute(query.options(undefer(InboundReceiptLine.location_id))).scalars().all()
        except DBAPIError as exc:
            if not is_location_column_error(exc):
                raise
            self._disable_location(exc)
        return self.db.execute(query).scalars().all()

    def find_line(
        self,
        receipt_id: str,
        *,
        line_id: str | None = None,
        plan_line_id: str | None = None,
        product_id: str | None = None,
    ) -> InboundReceiptLine | None:
        query = select(InboundReceiptLine).where(InboundReceiptLine.receipt_id == receipt_id)
        if line_id is not None:
            query = query.where(InboundReceiptLine.id == line_id)
        elif plan_line_id is not None:
            query = query.where(InboundReceiptLine.plan_line_id == plan_line_id)
        else:
            query = query.where(
                InboundReceiptLine.plan_line_id.is_(None),
                InboundReceiptLine.product_id == product_id,
            )
        return self.db.execute(query).scalars().first()

    def write_line(self, values: dict, *, line_id=None) -> uuid.UUID | None:
        """Inserts or updates one receipt line and returns its id.

        Returns None when the receipt was finalized in the meantime; nothing is
        written then. `location_id` is dropped when the column is known to be
        absent; a write that still fails on that column is retried once without it.
        """
        payload = dict(values)
        if not self.location_enabled():
            payload.pop(LOCATION_COLUMN, None)
        try:
            return self._upsert_line(payload, line_id)
        except DBAPIError as exc:
            if LOCATION_COLUMN not in payload or not is_location_column_error(exc):
                raise
            self._disable_location(exc)
            payload.pop(LOCATION_COLUMN)
            return self._upsert_line(payload, line_id)

    def _upsert_line(self, payload: dict, line_id) -> uuid.UUID | None:
        try:
            return self._execute_line_write(payload, line_id)
        except IntegrityError:
            # Another writer inserted the line for this plan line first.
            if line_id is not None or payload.get("plan_line_id") is None:
                raise
            self.db.rollback()
            existing = self.find_line(payload["receipt_id"], plan_line_id=payload["plan_line_id"])
            if existing is None:
                raise
            return self._execute_line_write(payload, existing.id)

    def _execute_line_write(self, payload: dict, line_id) -> uuid.UUID | None:
        if not self.hold_open(payload["receipt_id"]):
            return None
        now = utcnow()
        if line_id is None:
            line_id = uuid.uuid4()
            self.db.execute(insert(InboundReceiptLine).values(id=line_id, created_at=now, updated_at=now, **payload))
            return line_id
        self.db.execute(
            update(InboundReceiptLine)
            .where(InboundReceiptLine.id == line_id)
            .values(updated_at=now, **payload)
            .execution_options(synchronize_session=False)
        )
        return line_id

    def rebind_lines(self, receipt_id: str, previous_lines, plan_lines: list[InboundPlanLine]) -> int:
        """Points receipt lines at the plan's replacement lines.

        `previous_lines` are the (plan_line_id, product_id) pairs of the replaced
        plan lines, in plan order. A receipt line keeps its position among the
        plan lines of its product; lines that lose their slot take the next free
        plan line of the product, or become unplanned.
        """
        by_product: dict[str, list[InboundPlanLine]] = {}
        for plan_line in plan_lines:
            by_product.setdefault(str(plan_line.product_id), []).append(plan_line)
        positions: dict[str, int] = {}
        seen: dict[str, int] = {}
        for plan_line_id, product_id in previous_lines:
            product_key = str(product_id)
            positions[str(plan_line_id)] = seen.get(product_key, 0)
            seen[product_key] = positions[str(plan_line_id)] + 1

        lines = (
            self.db.execute(
                select(InboundReceiptLine)
                .where(InboundReceiptLine.receipt_id == receipt_id)
                .order_by(InboundReceiptLine.created_at, InboundReceiptLine.id)
            )
            .scalars()
            .all()
        )
        matches: dict[uuid.UUID, InboundPlanLine | None] = {}
        taken: set[uuid.UUID] = set()
        for line in lines:
            candidates = by_product.get(str(line.product_id), [])
            position = positions.get(str(line.plan_line_id)) if line.plan_line_id is not None else None
            if position is not None and position < len(candidates):
                matches[line.id] = candidates[position]
                taken.add(candidates[position].id)
        for line in lines:
            if line.id in matches:
                continue
            free = next(
                (candidate for candidate in by_product.get(str(line.product_id), []) if candidate.id not in taken),
                None,
            )
            if free is not None:
                taken.add(free.id)
            matches[line.id] = free

        now = utcnow()
        for line in lines:
            match = matches[line.id]
            line.plan_line_id = match.id if match is not None else None
            line.expected_qty = match.expected_qty if match is not None else 0
            line.updated_at = now
        self.db.flush()
        return len(lines)
