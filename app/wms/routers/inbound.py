from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response

from app.wms.core.deps import Actor, get_actor, resolve_org_id
from app.wms.db.session import get_db
from app.wms.schemas.errors import (
    ApiErrorResponse,
    ApiValidationErrorResponse,
    DeleteFailedResponse,
    MissingPhotosResponse,
    ReceiptLinesSaveFailedResponse,
)
from app.wms.schemas.inbound import (
    ConfirmResponse,
    DiscrepancyItem,
    InboundEventListResponse,
    InboundEventResponse,
    InboundPlanCreateRequest,
    InboundPlanCreateResponse,
    InboundPlanLineResponse,
    InboundPlanListResponse,
    InboundPlanResponse,
    InboundPlanUpdateRequest,
    LocationOption,
    PhotoListResponse,
    PhotoResponse,
    PhotoSlotResponse,
    PhotoUploadRequest,
    ReceiptLineResponse,
    ReceiptLinesSaveRequest,
    ReceiptLinesSaveResponse,
    ReceiptResponse,
    ReceiptWorkspaceResponse,
)
from app.wms.services.inbound import InboundService, PlanView
from app.wms.services.reconciliation import received_total
from app.wms.services.side_channel import side_channel


router = APIRouter()

_CONFLICT = {"description": "Receipt is locked or already confirmed", "model": ApiErrorResponse}
_NOT_FOUND = {"description": "Plan, receipt, slot or photo not found in the organization", "model": ApiErrorResponse}
_INVALID = {"description": "Validation error", "model": ApiValidationErrorResponse}


def _str_or_none(value) -> str | None:
    return str(value) if value is not None else None


def _plan_response(view: PlanView) -> InboundPlanResponse:
    plan, receipt = view.plan, view.receipt
    return InboundPlanResponse(
        id=str(plan.id),
        org_id=str(plan.org_id),
        warehouse_id=str(plan.warehouse_id),
        client_id=str(plan.client_id),
        plan_no=plan.plan_no,
        planned_date=plan.planned_date,
        inbound_manager=plan.inbound_manager,
        notes=plan.notes,
        status=plan.status,
        receipt_id=_str_or_none(receipt.id) if receipt is not None else None,
        receipt_no=receipt.receipt_no if receipt is not None else None,
        receipt_status=receipt.status if receipt is not None else None,
        created_by=_str_or_none(plan.created_by),
        created_at=plan.created_at,
        updated_at=plan.updated_at,
        lines=[
            InboundPlanLineResponse(
                id=str(line.id),
                product_id=str(line.product_id),
                expected_qty=line.expected_qty,
                box_count=line.box_count,
                pallet_text=line.pallet_text,
                mfg_date=line.mfg_date,
                expiry_date=line.expiry_date,
                line_notes=line.line_notes,
                notes=line.notes,
            )
            for line in view.lines
        ],
    )


def _receipt_response(receipt) -> ReceiptResponse:
    return ReceiptResponse(
        id=str(receipt.id),
        receipt_no=receipt.receipt_no,
        plan_id=str(receipt.plan_id),
        warehouse_id=str(receipt.warehouse_id),
        client_id=str(receipt.client_id),
        status=receipt.status,
        created_by=_str_or_none(receipt.created_by),
        confirmed_by=_str_or_none(receipt.confirmed_by),
        confirmed_at=receipt.confirmed_at,
        created_at=receipt.created_at,
        updated_at=receipt.updated_at,
    )


def _receipt_line_response(line, *, with_location: bool) -> ReceiptLineResponse:
    # location_id is deferred; only touch it when the column is known to exist.
    return ReceiptLineResponse(
        id=str(line.id),
        plan_line_id=_str_or_none(line.plan_line_id),
        product_id=str(line.product_id),
        expected_qty=line.expected_qty,
        accepted_qty=line.accepted_qty,
        damaged_qty=line.damaged_qty,
        missing_qty=line.missing_qty,
        other_qty=line.other_qty,
        received_total=received_total(line.accepted_qty, line.damaged_qty, line.missing_qty, line.other_qty),
        location_id=_str_or_none(line.location_id) if with_location else None,
        inspected_by=_str_or_none(line.inspected_by),
        inspected_at=line.inspected_at,
    )


def _photo_response(photo) -> PhotoResponse:
    return PhotoResponse(
        id=str(photo.id),
        receipt_id=str(photo.receipt_id),
        slot_id=str(photo.slot_id),
        storage_bucket=photo.storage_bucket,
        storage_path=photo.storage_path,
        mime_type=photo.mime_type,
        file_size=photo.file_size,
        uploaded_by=_str_or_none(photo.uploaded_by),
        uploaded_at=photo.uploaded_at,
    )


@router.get("/wms/inbound/plans", response_model=InboundPlanListResponse)
def list_plans(
    org_id: UUID | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    actor: Actor = Depends(get_actor),
    db=Depends(get_db),
):
    scoped_org_id = resolve_org_id(actor, org_id)
    views = InboundService(db).list_plans(scoped_org_id, limit=limit, offset=offset)
    return InboundPlanListResponse(rows=[_plan_response(view) for view in views])


@router.post(
    "/wms/inbound/plans",
    response_model=InboundPlanCreateResponse,
    status_code=201,
    responses={
        422: _INVALID,
        503: {"description": "No unique document number could be allocated", "model": ApiErrorResponse},
    },
)
def create_plan(
    payload: InboundPlanCreateRequest,
    actor: Actor = Depends(get_actor),
    db=Depends(get_db),
):
    scoped_org_id = resolve_org_id(actor, payload.org_id)
    with side_channel(db) as channel:
        created = InboundService(db, channel).create_plan(scoped_org_id, actor, payload)
    return InboundPlanCreateResponse(
        plan_id=created.plan_id,
        plan_no=created.plan_no,
        receipt_id=created.receipt_id,
        receipt_no=created.receipt_no,
    )


@router.get("/wms/inbound/plans/{plan_id}", response_model=InboundPlanResponse)
def get_plan(
    plan_id: UUID,
    org_id: UUID | None = Query(default=None),
    actor: Actor = Depends(get_actor),
    db=Depends(get_db),
):
    scoped_org_id = resolve_org_id(actor, org_id)
    return _plan_response(InboundService(db).get_plan(scoped_org_id, plan_id))


@router.patch(
    "/wms/inbound/plans/{plan_id}",
    response_model=InboundPlanResponse,
    responses={404: _NOT_FOUND, 409: _CONFLICT, 422: _INVALID},
)
def update_plan(
    plan_id: UUID,
    payload: InboundPlanUpdateRequest,
    actor: Actor = Depends(get_actor),
    db=Depends(get_db),
):
    scoped_org_id = resolve_org_id(actor, payload.org_id)
    with side_channel(db) as channel:
        view = InboundService(db, channel).update_plan(scoped_org_id, actor, plan_id, payload)
        return _plan_response(view)


@router.delete(
    "/wms/inbound/plans/{plan_id}",
    status_code=204,
    responses={
        404: _NOT_FOUND,
        409: _CONFLICT,
        500: {"description": "Plan and receipt were left untouched", "model": DeleteFailedResponse},
    },
)
def delete_plan(
    plan_id: UUID,
    org_id: UUID | None = Query(default=None),
    actor: Actor = Depends(get_actor),
    db=Depends(get_db),
):
    scoped_org_id = resolve_org_id(actor, org_id)
    with side_channel(db) as channel:
        InboundService(db, channel).delete_plan(scoped_org_id, actor, plan_id)
    return Response(status_code=204)


@router.get("/wms/inbound/plans/{plan_id}/workspace", response_model=ReceiptWorkspaceResponse)
def get_workspace(
    plan_id: UUID,
    org_id: UUID | None = Query(default=None),
    actor: Actor = Depends(get_actor),
    db=Depends(get_db),
):
    scoped_org_id = resolve_org_id(actor, org_id)
    workspace = InboundService(db).get_workspace(scoped_org_id, plan_id)
    return ReceiptWorkspaceResponse(
        plan=_plan_response(workspace.plan_view),
        receipt=_receipt_response(workspace.receipt),
        slots=[
            PhotoSlotResponse(
                slot_id=str(slot.slot_id),
                slot_key=slot.slot_key,
                title=slot.title,
                is_required=slot.is_required,
                min_photos=slot.min_photos,
                sort_order=slot.sort_order,
                photo_count=slot.photo_count,
                slot_ok=slot.slot_ok,
            )
            for slot in workspace.progress
        ],
        photos_complete=not workspace.missing_slots,
        missing_slots=workspace.missing_slots,
        receipt_lines=[
            _receipt_line_response(line, with_location=workspace.location_enabled)
            for line in workspace.receipt_lines
        ],
        locations=[
            LocationOption(id=str(location.id), code=location.code, zone=location.zone)
            for location in workspace.locations
        ],
    )


@router.get("/wms/inbound/receipts/{receipt_id}/events", response_model=InboundEventListResponse)
def list_receipt_events(
    receipt_id: UUID,
    org_id: UUID | None = Query(default=None),
    actor: Actor = Depends(get_actor),
    db=Depends(get_db),
):
    scoped_org_id = resolve_org_id(actor, org_id)
    events = InboundService(db).list_events(scoped_org_id, receipt_id)
    return InboundEventListResponse(
        rows=[
            InboundEventResponse(
                id=str(event.id),
                receipt_id=str(event.receipt_id),
                event_type=event.event_type,
                payload=event.payload,
                actor_id=_str_or_none(event.actor_id),
                created_at=event.created_at,
            )
            for event in events
        ]
    )


@router.post(
    "/wms/inbound/receipts/{receipt_id}/photos",
    response_model=PhotoResponse,
    status_code=201,
    responses={404: _NOT_FOUND, 409: _CONFLICT},
)
def upload_photo(
    receipt_id: UUID,
    payload: PhotoUploadRequest,
    org_id: UUID | None = Query(default=None),
    actor: Actor = Depends(get_actor),
    db=Depends(get_db),
):
    scoped_org_id = resolve_org_id(actor, org_id)
    with side_channel(db) as channel:
        photo = InboundService(db, channel).record_photo(scoped_org_id, actor, receipt_id, payload)
        return _photo_response(photo)


@router.get("/wms/inbound/receipts/{receipt_id}/slots/{slot_id}/photos", response_model=PhotoListResponse)
def list_slot_photos(
    receipt_id: UUID,
    slot_id: UUID,
    org_id: UUID | None = Query(default=None),
    actor: Actor = Depends(get_actor),
    db=Depends(get_db),
):
    scoped_org_id = resolve_org_id(actor, org_id)
    photos = InboundService(db).list_slot_photos(scoped_org_id, receipt_id, slot_id)
    return PhotoListResponse(rows=[_photo_response(photo) for photo in photos])


@router.delete("/wms/inbound/receipts/{receipt_id}/photos/{photo_id}", status_code=204)
def delete_photo(
    receipt_id: UUID,
    photo_id: UUID,
    org_id: UUID | None = Query(default=None),
    actor: Actor = Depends(get_actor),
    db=Depends(get_db),
):
    scoped_org_id = resolve_org_id(actor, org_id)
    with side_channel(db) as channel:
        InboundService(db, channel).delete_photo(scoped_org_id, actor, receipt_id, photo_id)
    return Response(status_code=204)


@router.put(
    "/wms/inbound/receipts/{receipt_id}/lines",
    response_model=ReceiptLinesSaveResponse,
    responses={
        404: _NOT_FOUND,
        409: _CONFLICT,
        422: {"description": "One or more lines failed; the rest were saved", "model": ReceiptLinesSaveFailedResponse},
    },
)
def save_receipt_lines(
    receipt_id: UUID,
    payload: ReceiptLinesSaveRequest,
    org_id: UUID | None = Query(default=None),
    actor: Actor = Depends(get_actor),
    db=Depends(get_db),
):
    scoped_org_id = resolve_org_id(actor, org_id)
    with side_channel(db) as channel:
        result = InboundService(db, channel).save_receipt_lines(scoped_org_id, actor, receipt_id, payload.lines)
        return ReceiptLinesSaveResponse(
            receipt_id=str(receipt_id),
            status=result.receipt.status,
            saved_count=len(result.saved_ids),
            lines=[
                _receipt_line_response(line, with_location=result.location_enabled) for line in result.receipt_lines
            ],
        )


@router.post(
    "/wms/inbound/receipts/{receipt_id}/confirm",
    response_model=ConfirmResponse,
    responses={
        404: _NOT_FOUND,
        409: _CONFLICT,
        422: {"description": "Required photo slots are not filled", "model": MissingPhotosResponse},
    },
)
def confirm_receipt(
    receipt_id: UUID,
    org_id: UUID | None = Query(default=None),
    actor: Actor = Depends(get_actor),
    db=Depends(get_db),
):
    scoped_org_id = resolve_org_id(actor, org_id)
    with side_channel(db) as channel:
        result = InboundService(db, channel).confirm_receipt(scoped_org_id, actor, receipt_id)
    return ConfirmResponse(
        receipt_id=result.receipt_id,
        discrepancy=result.discrepancy,
        status=result.status,
        details=[DiscrepancyItem(**item) for item in result.details],
        ledger_entries=result.ledger_entries,
        putaway_tasks=result.putaway_tasks,
    )
