from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query

from app.wms.core.deps import Actor, get_actor, resolve_org_id
from app.wms.db.session import get_db
from app.wms.repos.inventory import PutawayTaskFilters
from app.wms.schemas.putaway import (
    PutawayCompleteRequest,
    PutawayReadyResponse,
    PutawayTaskFilterParams,
    PutawayTaskListResponse,
    PutawayTaskResponse,
)
from app.wms.services.putaway import PutawayService

router = APIRouter()


def _task_response(task) -> PutawayTaskResponse:
    return PutawayTaskResponse(
        id=str(task.id),
        warehouse_id=str(task.warehouse_id),
        receipt_id=str(task.receipt_id),
        receipt_line_id=str(task.receipt_line_id),
        product_id=str(task.product_id),
        qty_expected=task.qty_expected,
        qty_processed=task.qty_processed,
        to_location_id=str(task.to_location_id) if task.to_location_id else None,
        status=task.status,
        processed_by=str(task.processed_by) if task.processed_by else None,
        completed_at=task.completed_at,
        created_at=task.created_at,
    )


@router.get("/wms/putaway/tasks", response_model=PutawayTaskListResponse)
def list_putaway_tasks(
    org_id: UUID | None = Query(default=None),
    params: PutawayTaskFilterParams = Depends(),
    actor: Actor = Depends(get_actor),
    db=Depends(get_db),
):
    scoped_org_id = resolve_org_id(actor, org_id)
    filters = PutawayTaskFilters(
        org_id=scoped_org_id,
        warehouse_id=str(params.warehouse_id) if params.warehouse_id else None,
        status=params.status,
        receipt_id=str(params.receipt_id) if params.receipt_id else None,
    )
    tasks = PutawayService(db).list_tasks(filters)
    return PutawayTaskListResponse(rows=[_task_response(task) for task in tasks])


@router.post("/wms/putaway/tasks/{task_id}/complete", response_model=PutawayTaskResponse)
def complete_putaway_task(
    task_id: UUID,
    payload: PutawayCompleteRequest,
    org_id: UUID | None = Query(default=None),
    actor: Actor = Depends(get_actor),
    db=Depends(get_db),
):
    scoped_org_id = resolve_org_id(actor, org_id)
    task = PutawayService(db).complete_task(
        scoped_org_id,
        actor,
        task_id,
        qty=payload.qty,
        location_id=payload.location_id,
    )
    return _task_response(task)


@router.post("/wms/putaway/receipts/{receipt_id}/ready", response_model=PutawayReadyResponse)
def mark_receipt_putaway_ready(
    receipt_id: UUID,
    org_id: UUID | None = Query(default=None),
    actor: Actor = Depends(get_actor),
    db=Depends(get_db),
):
    scoped_org_id = resolve_org_id(actor, org_id)
    receipt = PutawayService(db).mark_putaway_ready(scoped_org_id, actor, receipt_id)
    return PutawayReadyResponse(receipt_id=str(receipt.id), status=receipt.status)
