from __future__ import annotations

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, Field, model_validator


_PLAN_CREATE_EXAMPLE = {
    "warehouse_id": "5b0d8e5e-7f52-4d0a-9d8e-2f3f0c1b6a11",
    "client_id": "0c8e4a39-3a7c-4d3e-9b0a-6d2f1a7e9c22",
    "planned_date": "2026-03-02",
    "inbound_manager": "Dock team A",
    "notes": "Two pallets, tail lift required",
    "lines": [
        {
            "product_id": "9f1c2b7a-1d2e-4f3a-8b9c-0d1e2f3a4b33",
            "expected_qty": 10,
            "box_count": 2,
            "pallet_text": "PLT-01",
        }
    ],
}


class InboundPlanLineInput(BaseModel):
    product_id: UUID
    expected_qty: int = Field(ge=0)
    box_count: int | None = Field(default=None, ge=0)
    pallet_text: str | None = Field(default=None, max_length=100)
    mfg_date: date | None = None
    expiry_date: date | None = None
    line_notes: str | None = None
    notes: str | None = None


class InboundPlanCreateRequest(BaseModel):
    org_id: UUID | None = None
    warehouse_id: UUID
    client_id: UUID
    planned_date: date
    inbound_manager: str | None = Field(default=None, max_length=150)
    notes: str | None = None
    lines: list[InboundPlanLineInput] = Field(min_length=1)

    model_config = {"json_schema_extra": {"example": _PLAN_CREATE_EXAMPLE}}


class InboundPlanUpdateRequest(BaseModel):
    org_id: UUID | None = None
    warehouse_id: UUID | None = None
    client_id: UUID | None = None
    planned_date: date | None = None
    inbound_manager: str | None = Field(default=None, max_length=150)
    notes: str | None = None
    lines: list[InboundPlanLineInput] | None = None

    @model_validator(mode="after")
    def _lines_not_empty(self):
        if self.lines is not None and not self.lines:
            raise ValueError("lines must not be empty when provided")
        return self


class InboundPlanCreateResponse(BaseModel):
    plan_id: str
    plan_no: str
    receipt_id: str
    receipt_no: str


class InboundPlanLineResponse(BaseModel):
    id: str
    product_id: str
    expected_qty: int
    box_count: int | None
    pallet_text: str | None
    mfg_date: date | None
    expiry_date: date | None
    line_notes: str | None
    notes: str | None


class InboundPlanResponse(BaseModel):
    id: str
    org_id: str
    warehouse_id: str
    client_id: str
    plan_no: str
    planned_date: date
    inbound_manager: str | None
    notes: str | None
    status: str
    receipt_id: str | None
    receipt_no: str | None
    receipt_status: str | None
    created_by: str | None
    created_at: datetime
    updated_at: datetime
    lines: list[InboundPlanLineResponse]


class InboundPlanListResponse(BaseModel):
    rows: list[InboundPlanResponse]


class PhotoSlotResponse(BaseModel):
    slot_id: str
    slot_key: str
    title: str
    is_required: bool
    min_photos: int
    sort_order: int
    photo_count: int
    slot_ok: bool


class PhotoUploadRequest(BaseModel):
    slot_id: UUID
    storage_bucket: str = Field(min_length=1, max_length=100)
    storage_path: str = Field(min_length=1, max_length=500)
    mime_type: str | None = Field(default=None, max_length=100)
    file_size: int | None = Field(default=None, ge=0)


class PhotoResponse(BaseModel):
    id: str
    receipt_id: str
    slot_id: str
    storage_bucket: str
    storage_path: str
    mime_type: str | None
    file_size: int | None
    uploaded_by: str | None
    uploaded_at: datetime


class PhotoListResponse(BaseModel):
    rows: list[PhotoResponse]


class ReceiptLineInput(BaseModel):
    receipt_line_id: UUID | None = None
    plan_line_id: UUID | None = None
    product_id: UUID
    accepted_qty: int = Field(default=0, ge=0)
    damaged_qty: int = Field(default=0, ge=0)
    missing_qty: int = Field(default=0, ge=0)
    other_qty: int = Field(default=0, ge=0)
    location_id: UUID | None = None


class ReceiptLinesSaveRequest(BaseModel):
    lines: list[ReceiptLineInput] = Field(min_length=1)


class ReceiptLineResponse(BaseModel):
    id: str
    plan_line_id: str | None
    product_id: str
    expected_qty: int
    accepted_qty: int
    damaged_qty: int
    missing_qty: int
    other_qty: int
    received_total: int
    location_id: str | None
    inspected_by: str | None
    inspected_at: datetime | None


class ReceiptLinesSaveResponse(BaseModel):
    receipt_id: str
    status: str
    saved_count: int
    lines: list[ReceiptLineResponse]


class ReceiptResponse(BaseModel):
    id: str
    receipt_no: str
    plan_id: str
    warehouse_id: str
    client_id: str
    status: str
    created_by: str | None
    confirmed_by: str | None
    confirmed_at: datetime | None
    created_at: datetime
    updated_at: datetime


class LocationOption(BaseModel):
    id: str
    code: str
    zone: str | None


class ReceiptWorkspaceResponse(BaseModel):
    plan: InboundPlanResponse
    receipt: ReceiptResponse
    slots: list[PhotoSlotResponse]
    photos_complete: bool
    missing_slots: list[str]
    receipt_lines: list[ReceiptLineResponse]
    locations: list[LocationOption]


class DiscrepancyItem(BaseModel):
    product_id: str
    plan_line_id: str | None
    expected: int
    actual: int


class ConfirmResponse(BaseModel):
    receipt_id: str
    discrepancy: bool
    status: str
    details: list[DiscrepancyItem] = Field(default_factory=list)
    ledger_entries: int = 0
    putaway_tasks: int = 0


class InboundEventResponse(BaseModel):
    id: str
    receipt_id: str
    event_type: str
    payload: dict | None
    actor_id: str | None
    created_at: datetime


class InboundEventListResponse(BaseModel):
    rows: list[InboundEventResponse]
