from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field


class PutawayTaskResponse(BaseModel):
    id: str
    warehouse_id: str
    receipt_id: str
    receipt_line_id: str
    product_id: str
    qty_expected: int
    qty_processed: int | None
    to_location_id: str | None
    status: str
    processed_by: str | None
    completed_at: datetime | None
    created_at: datetime


class PutawayTaskListResponse(BaseModel):
    rows: list[PutawayTaskResponse]


class PutawayTaskFilterParams(BaseModel):
    warehouse_id: UUID | None = None
    status: Literal["PENDING", "COMPLETED"] | None = None
    receipt_id: UUID | None = None


class PutawayCompleteRequest(BaseModel):
    qty: int = Field(ge=1)
    location_id: UUID


class PutawayReadyResponse(BaseModel):
    receipt_id: str
    status: str
