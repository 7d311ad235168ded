from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from app.wms.core.config import settings
from app.wms.core.deps import Actor
from app.wms.core.error_catalog import AppError, ErrorCatalog
from app.wms.core.logging import log_event
from app.wms.core.metrics import metrics
from app.wms.db.models import (
    FINALIZED_RECEIPT_STATUSES,
    LOCKED_RECEIPT_STATUSES,
    InboundEvent,
    InboundEventType,
    InboundPhoto,
    InboundPhotoSlot,
    InboundPlan,
    InboundPlanLine,
    InboundReceipt,
    InboundReceiptLine,
    Location,
    ReceiptStatus,
    utcnow,
)
from app.wms.repos.inbound_events import InboundEventRepository
from app.wms.repos.inbound_plans import InboundPlanRepository
from app.wms.repos.inbound_receipts import InboundReceiptRepository, PhotoSlotProgress
from app.wms.repos.inventory import InventoryRepository
from app.wms.repos.reference import ReferenceRepository
from app.wms.schemas.inbound import (
    InboundPlanCreateRequest,
    InboundPlanUpdateRequest,
    PhotoUploadRequest,
    ReceiptLineInput,
)
from app.wms.services.audit import AuditEventPayload
from app.wms.services.document_numbers import generate_document_numbers
from app.wms.services.reconciliation import PHOTO_SLOT_CATALOG, find_discrepancies, missing_slot_titles
from app.wms.services.side_channel import SideChannel

logger = logging.getLogger(__name__)

# Statuses from which confirm may still move the receipt.
CONFIRMABLE_STATUSES = frozenset(
    {
        ReceiptStatus.ARRIVED,
        ReceiptStatus.PHOTO_REQUIRED,
        ReceiptStatus.COUNTING,
        ReceiptStatus.DISCREPANCY,
    }
)
COUNTING_ENTRY_STATUSES = frozenset({ReceiptStatus.ARRIVED, ReceiptStatus.PHOTO_REQUIRED})


class ReceiptLineRejected(Exception):
    """One line of a batch save failed validation; the rest of the batch proceeds."""


@dataclass(frozen=True)
class CreatedPlan:
    plan_id: str
    plan_no: str
    receipt_id: str
    receipt_no: str


@dataclass
class PlanView:
    plan: InboundPlan
    lines: list[InboundPlanLine]
    receipt: InboundReceipt | None


@dataclass
class ReceiptWorkspace:
    plan_view: PlanView
    receipt: InboundReceipt
    progress: list[PhotoSlotProgress]
    receipt_lines: list[InboundReceiptLine]
    location_enabled: bool
    locations: list[Location]

    @property
    def missing_slots(self) -> list[str]:
        return missing_slot_titles(self.progress)


@dataclass
class LineSaveResult:
    receipt: InboundReceipt
    saved_ids: list = field(default_factory=list)
    receipt_lines: list[InboundReceiptLine] = field(default_factory=list)
    location_enabled: bool = False


@dataclass
class ConfirmResult:
    receipt_id: str
    discrepancy: bool
    status: str
    details: list[dict] = field(default_factory=list)
    ledger_entries: int = 0
    putaway_tasks: int = 0


class InboundService:
    """Reconciliation engine for inbound plans and their receipts.

    The session is owned by the caller. Event-log and audit writes are only
    emitted on `channel`; they are delivered after the primary work settles.
    Read-only callers may leave it out.
    """

    def __init__(self, db, channel: SideChannel | None = None):
        self.db = db
        self.channel = channel
        self.plans = InboundPlanRepository(db)
        self.receipts = InboundReceiptRepository(db)
        self.reference = ReferenceRepository(db)
        self.inventory = InventoryRepository(db)

    # reads

    def list_plans(self, org_id: str, *, limit: int = 50, offset: int = 0) -> list[PlanView]:
        plans = self.plans.list_plans(org_id, limit=limit, offset=offset)
        receipts = self.receipts.receipts_for_plans([plan.id for plan in plans])
        return [PlanView(plan=plan, lines=list(plan.lines), receipt=receipts.get(str(plan.id))) for plan in plans]

    def get_plan(self, org_id: str, plan_id) -> PlanView:
        plan = self._require_plan(plan_id, org_id)
        return PlanView(
            plan=plan,
            lines=self.plans.get_lines(plan.id),
            receipt=self.receipts.get_receipt_for_plan(plan.id),
        )

    def get_workspace(self, org_id: str, plan_id) -> ReceiptWorkspace:
        view = self.get_plan(org_id, plan_id)
        if view.receipt is None:
            raise AppError(ErrorCatalog.RESOURCE_NOT_FOUND, details={"plan_id": str(plan_id), "resource": "receipt"})
        receipt = view.receipt
        return ReceiptWorkspace(
            plan_view=view,
            receipt=receipt,
            progress=self.receipts.slot_progress(receipt.id),
            receipt_lines=self.receipts.list_lines(receipt.id),
            location_enabled=self.receipts.location_enabled(),
            locations=self.reference.list_active_locations(receipt.warehouse_id),
        )

    def list_events(self, org_id: str, receipt_id) -> list[InboundEvent]:
        return InboundEventRepository(self.db).list_for_receipt(receipt_id, org_id)

    def list_slot_photos(self, org_id: str, receipt_id, slot_id) -> list[InboundPhoto]:
        receipt = self._require_receipt(receipt_id, org_id)
        slot = self._require_slot(slot_id, receipt)
        return self.receipts.list_photos(slot.id)

    # plan lifecycle

    def create_plan(self, org_id: str, actor: Actor, payload: InboundPlanCreateRequest) -> CreatedPlan:
        self._validate_references(
            org_id,
            warehouse_id=payload.warehouse_id,
            client_id=payload.client_id,
            product_ids=[line.product_id for line in payload.lines],
        )
        max_attempts = max(1, settings.DOCUMENT_NUMBER_MAX_ATTEMPTS)
        created = None
        for _ in range(max_attempts):
            plan_no, receipt_no = generate_document_numbers()
            if self.plans.document_numbers_taken(org_id, plan_no, receipt_no):
                continue
            try:
                created = self._insert_plan_pair(org_id, actor, payload, plan_no, receipt_no)
            except IntegrityError:
                self.db.rollback()
                if self.plans.document_numbers_taken(org_id, plan_no, receipt_no):
                    continue
                raise
            break
        if created is None:
            raise AppError(ErrorCatalog.DOCUMENT_NUMBER_EXHAUSTED, details={"attempts": max_attempts})

        self.channel.emit_event(
            org_id=org_id,
            receipt_id=created.receipt_id,
            event_type=InboundEventType.CREATED,
            actor_id=actor.user_id,
            payload={"plan_id": created.plan_id, "plan_no": created.plan_no, "receipt_no": created.receipt_no},
        )
        self._audit(
            actor,
            org_id,
            "CREATE",
            created.plan_id,
            {"plan_no": created.plan_no, "receipt_id": created.receipt_id, "lines": len(payload.lines)},
        )
        log_event(
            logger,
            "inbound.plan.created",
            org_id=org_id,
            plan_id=created.plan_id,
            plan_no=created.plan_no,
            trace_id=actor.trace_id,
        )
        return created

    def _insert_plan_pair(
        self,
        org_id: str,
        actor: Actor,
        payload: InboundPlanCreateRequest,
        plan_no: str,
        receipt_no: str,
    ) -> CreatedPlan:
        plan = InboundPlan(
            org_id=org_id,
            warehouse_id=payload.warehouse_id,
            client_id=payload.client_id,
            plan_no=plan_no,
            planned_date=payload.planned_date,
            inbound_manager=payload.inbound_manager,
            notes=payload.notes,
            status=ReceiptStatus.ARRIVED,
            created_by=actor.user_id,
        )
        self.db.add(plan)
        self.db.flush()
        self.plans.add_lines(plan, [line.model_dump() for line in payload.lines])
        receipt = InboundReceipt(
            org_id=org_id,
            warehouse_id=payload.warehouse_id,
            client_id=payload.client_id,
            plan_id=plan.id,
            receipt_no=receipt_no,
            status=ReceiptStatus.ARRIVED,
            created_by=actor.user_id,
        )
        self.db.add(receipt)
        self.db.flush()
        self.receipts.create_slots(receipt, PHOTO_SLOT_CATALOG)
        created = CreatedPlan(
            plan_id=str(plan.id),
            plan_no=plan_no,
            receipt_id=str(receipt.id),
            receipt_no=receipt_no,
        )
        self.db.commit()
        return created

    def update_plan(self, org_id: str, actor: Actor, plan_id, payload: InboundPlanUpdateRequest) -> PlanView:
        plan = self._require_plan(plan_id, org_id)
        receipt = self.receipts.get_receipt_for_plan(plan.id)
        self._guard_locked(receipt, actor)

        fields = payload.model_dump(exclude_unset=True, exclude={"org_id", "lines"})
        # Required columns cannot be cleared.
        for key in ("warehouse_id", "client_id", "planned_date"):
            if fields.get(key, ...) is None:
                fields.pop(key)
        self._validate_references(
            org_id,
            warehouse_id=fields.get("warehouse_id"),
            client_id=fields.get("client_id"),
            product_ids=[line.product_id for line in payload.lines or []],
        )

        for key, value in fields.items():
            setattr(plan, key, value)
        plan.updated_at = utcnow()
        new_lines = None
        previous_lines = []
        if payload.lines is not None:
            previous_lines = [(line.id, line.product_id) for line in self.plans.get_lines(plan.id)]
            new_lines = self.plans.replace_lines(plan, [line.model_dump() for line in payload.lines])
        rebound = 0
        if receipt is not None:
            receipt.warehouse_id = plan.warehouse_id
            receipt.client_id = plan.client_id
            receipt.updated_at = utcnow()
            if new_lines is not None:
                rebound = self.receipts.rebind_lines(receipt.id, previous_lines, new_lines)
        plan_pk = str(plan.id)
        receipt_pk = str(receipt.id) if receipt is not None else None
        self.db.commit()

        changes = {
            "fields": sorted(fields),
            "lines_replaced": new_lines is not None,
            "receipt_lines_rebound": rebound,
        }
        if receipt_pk is not None:
            self.channel.emit_event(
                org_id=org_id,
                receipt_id=receipt_pk,
                event_type=InboundEventType.UPDATED,
                actor_id=actor.user_id,
                payload=changes,
            )
        self._audit(actor, org_id, "UPDATE", plan_pk, changes)
        log_event(logger, "inbound.plan.updated", org_id=org_id, plan_id=plan_pk, trace_id=actor.trace_id)
        return self.get_plan(org_id, plan_pk)

    def delete_plan(self, org_id: str, actor: Actor, plan_id) -> None:
        plan = self._require_plan(plan_id, org_id)
        receipt = self.receipts.get_receipt_for_plan(plan.id)
        self._guard_locked(receipt, actor)

        plan_pk, plan_no = str(plan.id), plan.plan_no
        receipt_pk = str(receipt.id) if receipt is not None else None
        receipt_no = receipt.receipt_no if receipt is not None else None
        try:
            if receipt is not None:
                self.receipts.delete_receipt_tree(receipt)
            self.receipts.delete_plan_tree(plan)
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            cause = str(getattr(exc, "orig", None) or exc)
            log_event(logger, "inbound.plan.delete_failed", org_id=org_id, plan_id=plan_pk, cause=cause)
            raise AppError(ErrorCatalog.INBOUND_DELETE_FAILED, details={"plan_id": plan_pk, "cause": cause}) from exc
        self.db.expunge_all()

        if receipt_pk is not None:
            self.channel.emit_event(
                org_id=org_id,
                receipt_id=receipt_pk,
                event_type=InboundEventType.DELETED,
                actor_id=actor.user_id,
                payload={"plan_id": plan_pk, "plan_no": plan_no, "receipt_no": receipt_no},
            )
        self._audit(actor, org_id, "DELETE", plan_pk, {"plan_no": plan_no, "receipt_id": receipt_pk})
        log_event(logger, "inbound.plan.deleted", org_id=org_id, plan_id=plan_pk, trace_id=actor.trace_id)

    # photo evidence

    def record_photo(self, org_id: str, actor: Actor, receipt_id, payload: PhotoUploadRequest) -> InboundPhoto:
        receipt = self._require_receipt(receipt_id, org_id)
        self._guard_not_finalized(receipt)
        slot = self._require_slot(payload.slot_id, receipt)
        self._hold_open(receipt)
        photo = self.receipts.add_photo(
            receipt,
            slot,
            storage_bucket=payload.storage_bucket,
            storage_path=payload.storage_path,
            mime_type=payload.mime_type,
            file_size=payload.file_size,
            uploaded_by=actor.user_id,
        )
        receipt_pk, photo_pk, slot_key = str(receipt.id), str(photo.id), slot.slot_key
        self.receipts.transition_status(receipt, {ReceiptStatus.ARRIVED}, ReceiptStatus.PHOTO_REQUIRED)
        self.db.commit()
        self.channel.emit_event(
            org_id=org_id,
            receipt_id=receipt_pk,
            event_type=InboundEventType.PHOTO_UPLOADED,
            actor_id=actor.user_id,
            payload={"photo_id": photo_pk, "slot_key": slot_key, "storage_path": payload.storage_path},
        )
        return photo

    def delete_photo(self, org_id: str, actor: Actor, receipt_id, photo_id) -> None:
        receipt = self._require_receipt(receipt_id, org_id)
        self._guard_not_finalized(receipt)
        photo = self.receipts.get_photo(photo_id, receipt.id)
        if photo is None or photo.is_deleted:
            raise AppError(ErrorCatalog.RESOURCE_NOT_FOUND, details={"photo_id": str(photo_id)})
        self._hold_open(receipt)
        photo.is_deleted = True
        self.db.commit()
        log_event(
            logger,
            "inbound.photo.deleted",
            org_id=org_id,
            receipt_id=str(receipt_id),
            photo_id=str(photo_id),
            user_id=actor.user_id,
        )

    # quantities

    def save_receipt_lines(
        self,
        org_id: str,
        actor: Actor,
        receipt_id,
        lines: list[ReceiptLineInput],
    ) -> LineSaveResult:
        """Upserts each submitted line in its own transaction.

        Failures are collected per line; lines written before or after a failed
        one stay written. The aggregated failure is raised at the end.
        """
        receipt = self._require_receipt(receipt_id, org_id)
        self._guard_not_finalized(receipt)
        receipt_pk, warehouse_id = receipt.id, receipt.warehouse_id
        plan_lines = self.plans.get_lines(receipt.plan_id)
        plan_lines_by_id = {str(line.id): line for line in plan_lines}
        plan_lines_by_product: dict[str, InboundPlanLine] = {}
        for line in plan_lines:
            plan_lines_by_product.setdefault(str(line.product_id), line)

        saved_ids = []
        errors: list[str] = []
        for index, item in enumerate(lines, start=1):
            try:
                saved_ids.append(
                    self._save_line(
                        org_id,
                        actor,
                        receipt_pk,
                        warehouse_id,
                        item,
                        plan_lines_by_id=plan_lines_by_id,
                        plan_lines_by_product=plan_lines_by_product,
                    )
                )
                self.db.commit()
            except ReceiptLineRejected as exc:
                self.db.rollback()
                errors.append(f"line {index}: {exc}")
            except SQLAlchemyError as exc:
                self.db.rollback()
                logger.warning("Receipt line write failed", exc_info=True, extra={"receipt_id": str(receipt_pk)})
                errors.append(f"line {index}: {exc.__class__.__name__}: {getattr(exc, 'orig', None) or exc}")

        receipt = self._require_receipt(receipt_pk, org_id)
        if saved_ids:
            self.receipts.transition_status(receipt, COUNTING_ENTRY_STATUSES, ReceiptStatus.COUNTING)
            self.db.commit()
            summary = {"lines_count": len(lines), "saved_count": len(saved_ids), "failed_count": len(errors)}
            self.channel.emit_event(
                org_id=org_id,
                receipt_id=str(receipt_pk),
                event_type=InboundEventType.QTY_UPDATED,
                actor_id=actor.user_id,
                payload=summary,
            )
            self._audit(actor, org_id, "UPDATE", str(receipt_pk), summary)
        log_event(
            logger,
            "inbound.receipt_lines.saved",
            org_id=org_id,
            receipt_id=str(receipt_pk),
            saved_count=len(saved_ids),
            failed_count=len(errors),
            trace_id=actor.trace_id,
        )
        if errors:
            raise AppError(
                ErrorCatalog.RECEIPT_LINES_SAVE_FAILED,
                details={"errors": errors, "message": " | ".join(errors), "saved_count": len(saved_ids)},
            )
        return LineSaveResult(
            receipt=receipt,
            saved_ids=saved_ids,
            receipt_lines=self.receipts.list_lines(receipt_pk),
            location_enabled=self.receipts.location_enabled(),
        )

    def _save_line(
        self,
        org_id: str,
        actor: Actor,
        receipt_pk,
        warehouse_id,
        item: ReceiptLineInput,
        *,
        plan_lines_by_id: dict[str, InboundPlanLine],
        plan_lines_by_product: dict[str, InboundPlanLine],
    ):
        product_key = str(item.product_id)
        if item.plan_line_id is not None:
            plan_line = plan_lines_by_id.get(str(item.plan_line_id))
            if plan_line is None:
                raise ReceiptLineRejected("plan line does not belong to this receipt's plan")
            if str(plan_line.product_id) != product_key:
                raise ReceiptLineRejected("product does not match the plan line")
        else:
            plan_line = plan_lines_by_product.get(product_key)
            if plan_line is None and not self.reference.existing_product_ids(org_id, [product_key]):
                raise ReceiptLineRejected("product not found")

        existing = None
        if item.receipt_line_id is not None:
            existing = self.receipts.find_line(receipt_pk, line_id=item.receipt_line_id)
            if existing is None:
                raise ReceiptLineRejected("receipt line not found")
            if str(existing.product_id) != product_key:
                raise ReceiptLineRejected("product does not match the receipt line")
        elif plan_line is not None:
            existing = self.receipts.find_line(receipt_pk, plan_line_id=plan_line.id)
        else:
            existing = self.receipts.find_line(receipt_pk, product_id=product_key)

        if item.location_id is not None and self.reference.get_active_location(item.location_id, warehouse_id) is None:
            raise ReceiptLineRejected("location is not an active location of the receipt's warehouse")

        values = {
            "org_id": org_id,
            "receipt_id": receipt_pk,
            "plan_line_id": plan_line.id if plan_line is not None else None,
            "product_id": item.product_id,
            "expected_qty": plan_line.expected_qty if plan_line is not None else 0,
            "accepted_qty": item.accepted_qty,
            "damaged_qty": item.damaged_qty,
            "missing_qty": item.missing_qty,
            "other_qty": item.other_qty,
            "location_id": item.location_id,
            "inspected_by": actor.user_id,
            "inspected_at": utcnow(),
        }
        line_id = self.receipts.write_line(values, line_id=existing.id if existing is not None else None)
        if line_id is None:
            raise ReceiptLineRejected("receipt is already finalized")
        return line_id

    # confirm

    def confirm_receipt(self, org_id: str, actor: Actor, receipt_id) -> ConfirmResult:
        """Reconciles and confirms the receipt.

        The receipt is claimed with a guarded status update first; the photo gate,
        the lines and the ledger postings are then read and written under that
        claim, so a concurrent line save lands either before the read or not at all.
        """
        receipt = self._require_receipt(receipt_id, org_id)
        receipt_pk, receipt_no, warehouse_id = receipt.id, receipt.receipt_no, receipt.warehouse_id
        if receipt.status in FINALIZED_RECEIPT_STATUSES:
            self.db.rollback()
            return self._confirm_conflict(receipt_pk, receipt.status)

        with_location = self.receipts.check_location_column()
        if not self.receipts.transition_status(
            receipt,
            CONFIRMABLE_STATUSES,
            ReceiptStatus.CONFIRMED,
            confirmed_by=actor.user_id,
            confirmed_at=utcnow(),
        ):
            self.db.rollback()
            return self._confirm_conflict(receipt_pk, receipt.status)

        missing = missing_slot_titles(self.receipts.slot_progress(receipt_pk))
        if missing:
            self.db.rollback()
            metrics.increment_confirm_outcome("missing_photos")
            raise AppError(ErrorCatalog.MISSING_REQUIRED_PHOTOS, details={"missing_slots": missing})

        plan_lines = self.plans.get_lines(receipt.plan_id)
        receipt_lines = self.receipts.list_lines(receipt_pk)
        discrepancies = find_discrepancies(plan_lines, receipt_lines)
        if discrepancies:
            details = [item.as_dict() for item in discrepancies]
            self.receipts.transition_status(
                receipt,
                {ReceiptStatus.CONFIRMED},
                ReceiptStatus.DISCREPANCY,
                confirmed_by=None,
                confirmed_at=None,
            )
            self.db.commit()
            self.channel.emit_event(
                org_id=org_id,
                receipt_id=str(receipt_pk),
                event_type=InboundEventType.DISCREPANCY_FOUND,
                actor_id=actor.user_id,
                payload={"details": details},
            )
            metrics.increment_confirm_outcome("discrepancy")
            log_event(
                logger,
                "inbound.receipt.discrepancy",
                org_id=org_id,
                receipt_id=str(receipt_pk),
                mismatched_lines=len(details),
                trace_id=actor.trace_id,
            )
            return ConfirmResult(
                receipt_id=str(receipt_pk),
                discrepancy=True,
                status=ReceiptStatus.DISCREPANCY,
                details=details,
            )

        posted = 0
        for line in receipt_lines:
            if line.accepted_qty <= 0:
                continue
            self.inventory.add_ledger_entry(
                org_id=org_id,
                warehouse_id=warehouse_id,
                product_id=line.product_id,
                location_id=None,
                transaction_type="INBOUND",
                qty_change=line.accepted_qty,
                reference_type="INBOUND_RECEIPT",
                reference_id=receipt_pk,
                notes=receipt_no,
                created_by=actor.user_id,
            )
            self.inventory.add_putaway_task(
                org_id=org_id,
                warehouse_id=warehouse_id,
                receipt_id=receipt_pk,
                receipt_line_id=line.id,
                product_id=line.product_id,
                qty_expected=line.accepted_qty,
                to_location_id=line.location_id if with_location else None,
                status="PENDING",
            )
            posted += 1
        self.db.commit()

        self.channel.emit_event(
            org_id=org_id,
            receipt_id=str(receipt_pk),
            event_type=InboundEventType.CONFIRMED,
            actor_id=actor.user_id,
            payload={
                "next_status": ReceiptStatus.PUTAWAY_READY,
                "ledger_entries": posted,
                "putaway_tasks": posted,
            },
        )
        self._audit(actor, org_id, "APPROVE", str(receipt_pk), {"receipt_no": receipt_no, "ledger_entries": posted})
        metrics.increment_confirm_outcome("confirmed")
        log_event(
            logger,
            "inbound.receipt.confirmed",
            org_id=org_id,
            receipt_id=str(receipt_pk),
            ledger_entries=posted,
            trace_id=actor.trace_id,
        )
        return ConfirmResult(
            receipt_id=str(receipt_pk),
            discrepancy=False,
            status=ReceiptStatus.CONFIRMED,
            ledger_entries=posted,
            putaway_tasks=posted,
        )

    @staticmethod
    def _confirm_conflict(receipt_pk, status: str | None):
        metrics.increment_confirm_outcome("conflict")
        raise AppError(
            ErrorCatalog.RECEIPT_ALREADY_CONFIRMED,
            details={"receipt_id": str(receipt_pk), "status": status},
        )

    # helpers

    def _audit(self, actor: Actor, org_id: str, action: str, resource_id: str, payload: dict | None = None) -> None:
        self.channel.emit_audit(
            AuditEventPayload(
                org_id=org_id,
                user_id=actor.user_id,
                trace_id=actor.trace_id,
                actor=actor.username,
                action=action,
                resource_id=resource_id,
                payload=payload,
            )
        )

    def _require_plan(self, plan_id, org_id: str) -> InboundPlan:
        plan = self.plans.get_plan(plan_id, org_id)
        if plan is None:
            raise AppError(ErrorCatalog.RESOURCE_NOT_FOUND, details={"plan_id": str(plan_id)})
        return plan

    def _require_receipt(self, receipt_id, org_id: str) -> InboundReceipt:
        receipt = self.receipts.get_receipt(receipt_id, org_id)
        if receipt is None:
            raise AppError(ErrorCatalog.RESOURCE_NOT_FOUND, details={"receipt_id": str(receipt_id)})
        return receipt

    def _require_slot(self, slot_id, receipt: InboundReceipt) -> InboundPhotoSlot:
        slot = self.receipts.get_slot(slot_id, receipt.id)
        if slot is None:
            raise AppError(ErrorCatalog.RESOURCE_NOT_FOUND, details={"slot_id": str(slot_id)})
        return slot

    @staticmethod
    def _guard_locked(receipt: InboundReceipt | None, actor: Actor) -> None:
        if receipt is None or actor.is_elevated:
            return
        if receipt.status in LOCKED_RECEIPT_STATUSES:
            raise AppError(
                ErrorCatalog.INBOUND_ALREADY_PROCESSED,
                details={"receipt_id": str(receipt.id), "status": receipt.status},
            )

    def _hold_open(self, receipt: InboundReceipt) -> None:
        receipt_pk = receipt.id
        if not self.receipts.hold_open(receipt_pk):
            self.db.rollback()
            raise AppError(
                ErrorCatalog.RECEIPT_FINALIZED,
                details={"receipt_id": str(receipt_pk), "status": receipt.status},
            )

    @staticmethod
    def _guard_not_finalized(receipt: InboundReceipt) -> None:
        if receipt.status in FINALIZED_RECEIPT_STATUSES:
            raise AppError(
                ErrorCatalog.RECEIPT_FINALIZED,
                details={"receipt_id": str(receipt.id), "status": receipt.status},
            )

    def _validate_references(self, org_id: str, *, warehouse_id=None, client_id=None, product_ids=()) -> None:
        errors = []
        if warehouse_id is not None and self.reference.get_warehouse(warehouse_id, org_id) is None:
            errors.append({"field": "warehouse_id", "message": "Warehouse not found in organization"})
        if client_id is not None and self.reference.get_client(client_id, org_id) is None:
            errors.append({"field": "client_id", "message": "Client not found in organization"})
        wanted = {str(product_id) for product_id in product_ids}
        unknown = sorted(wanted - self.reference.existing_product_ids(org_id, wanted))
        for product_id in unknown:
            errors.append({"field": "lines.product_id", "message": f"Product {product_id} not found in organization"})
        if errors:
            raise AppError(ErrorCatalog.VALIDATION_ERROR, details={"errors": errors})
