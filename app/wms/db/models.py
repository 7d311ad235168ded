import uuid
from datetime import date, datetime, timezone

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Index, Integer, JSON, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.types import TypeDecorator, CHAR


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class GUID(TypeDecorator):
    impl = CHAR
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            from sqlalchemy.dialects.postgresql import UUID

            return dialect.type_descriptor(UUID(as_uuid=True))
        return dialect.type_descriptor(CHAR(36))

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if not isinstance(value, uuid.UUID):
            value = uuid.UUID(str(value))
        return value if dialect.name == "postgresql" else str(value)

    def process_result_value(self, value, dialect):
        if value is None or isinstance(value, uuid.UUID):
            return value
        return uuid.UUID(value)


class Base(DeclarativeBase):
    pass


class ReceiptStatus:
    ARRIVED = "ARRIVED"
    PHOTO_REQUIRED = "PHOTO_REQUIRED"
    COUNTING = "COUNTING"
    DISCREPANCY = "DISCREPANCY"
    CONFIRMED = "CONFIRMED"
    PUTAWAY_READY = "PUTAWAY_READY"


# Plan/receipt edits need an elevated actor once the receipt reaches one of these.
LOCKED_RECEIPT_STATUSES = frozenset(
    {ReceiptStatus.CONFIRMED, ReceiptStatus.PUTAWAY_READY, ReceiptStatus.DISCREPANCY}
)
FINALIZED_RECEIPT_STATUSES = frozenset({ReceiptStatus.CONFIRMED, ReceiptStatus.PUTAWAY_READY})


class InboundEventType:
    CREATED = "CREATED"
    UPDATED = "UPDATED"
    PHOTO_UPLOADED = "PHOTO_UPLOADED"
    QTY_UPDATED = "QTY_UPDATED"
    DISCREPANCY_FOUND = "DISCREPANCY_FOUND"
    CONFIRMED = "CONFIRMED"
    DELETED = "DELETED"


class Organization(Base):
    __tablename__ = "organizations"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    warehouses = relationship("Warehouse", back_populates="organization")


class Warehouse(Base):
    __tablename__ = "warehouses"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    org_id: Mapped[uuid.UUID] = mapped_column(GUID(), ForeignKey("organizations.id"), index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    code: Mapped[str | None] = mapped_column(String(50), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    organization = relationship("Organization", back_populates="warehouses")


class Client(Base):
    __tablename__ = "clients"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    org_id: Mapped[uuid.UUID] = mapped_column(GUID(), ForeignKey("organizations.id"), index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    code: Mapped[str | None] = mapped_column(String(50), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)


class Product(Base):
    __tablename__ = "products"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    org_id: Mapped[uuid.UUID] = mapped_column(GUID(), ForeignKey("organizations.id"), index=True, nullable=False)
    sku: Mapped[str] = mapped_column(String(100), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    barcode: Mapped[str | None] = mapped_column(String(100), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)


class Location(Base):
    __tablename__ = "locations"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    warehouse_id: Mapped[uuid.UUID] = mapped_column(GUID(), ForeignKey("warehouses.id"), index=True, nullable=False)
    code: Mapped[str] = mapped_column(String(100), nullable=False)
    zone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    status: Mapped[str] = mapped_column(String(20), default="ACTIVE", nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)


class InboundPlan(Base):
    __tablename__ = "inbound_plans"
    __table_args__ = (UniqueConstraint("org_id", "plan_no", name="uq_inbound_plans_org_plan_no"),)

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    org_id: Mapped[uuid.UUID] = mapped_column(GUID(), index=True, nullable=False)
    warehouse_id: Mapped[uuid.UUID] = mapped_column(GUID(), ForeignKey("warehouses.id"), nullable=False)
    client_id: Mapped[uuid.UUID] = mapped_column(GUID(), ForeignKey("clients.id"), nullable=False)
    plan_no: Mapped[str] = mapped_column(String(32), nullable=False)
    planned_date: Mapped[date] = mapped_column(Date, nullable=False)
    inbound_manager: Mapped[str | None] = mapped_column(String(150), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(32), default=ReceiptStatus.ARRIVED, nullable=False)
    created_by: Mapped[uuid.UUID | None] = mapped_column(GUID(), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    lines = relationship(
        "InboundPlanLine",
        back_populates="plan",
        cascade="all, delete-orphan",
        order_by="InboundPlanLine.created_at",
    )


class InboundPlanLine(Base):
    __tablename__ = "inbound_plan_lines"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    org_id: Mapped[uuid.UUID] = mapped_column(GUID(), nullable=False)
    plan_id: Mapped[uuid.UUID] = mapped_column(
        GUID(), ForeignKey("inbound_plans.id", ondelete="CASCADE"), index=True, nullable=False
    )
    product_id: Mapped[uuid.UUID] = mapped_column(GUID(), ForeignKey("products.id"), nullable=False)
    expected_qty: Mapped[int] = mapped_column(Integer, nullable=False)
    box_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    pallet_text: Mapped[str | None] = mapped_column(String(100), nullable=True)
    mfg_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    expiry_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    line_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    plan = relationship("InboundPlan", back_populates="lines")


class InboundReceipt(Base):
    __tablename__ = "inbound_receipts"
    __table_args__ = (UniqueConstraint("org_id", "receipt_no", name="uq_inbound_receipts_org_receipt_no"),)

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    org_id: Mapped[uuid.UUID] = mapped_column(GUID(), index=True, nullable=False)
    warehouse_id: Mapped[uuid.UUID] = mapped_column(GUID(), ForeignKey("warehouses.id"), nullable=False)
    client_id: Mapped[uuid.UUID] = mapped_column(GUID(), ForeignKey("clients.id"), nullable=False)
    plan_id: Mapped[uuid.UUID] = mapped_column(
        GUID(), ForeignKey("inbound_plans.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    receipt_no: Mapped[str] = mapped_column(String(32), nullable=False)
    status: Mapped[str] = mapped_column(String(32), default=ReceiptStatus.ARRIVED, nullable=False, index=True)
    created_by: Mapped[uuid.UUID | None] = mapped_column(GUID(), nullable=True)
    confirmed_by: Mapped[uuid.UUID | None] = mapped_column(GUID(), nullable=True)
    confirmed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)


class InboundPhotoSlot(Base):
    __tablename__ = "inbound_photo_slots"
    __table_args__ = (UniqueConstraint("receipt_id", "slot_key", name="uq_inbound_photo_slots_receipt_key"),)

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    org_id: Mapped[uuid.UUID] = mapped_column(GUID(), nullable=False)
    receipt_id: Mapped[uuid.UUID] = mapped_column(
        GUID(), ForeignKey("inbound_receipts.id", ondelete="CASCADE"), index=True, nullable=False
    )
    slot_key: Mapped[str] = mapped_column(String(50), nullable=False)
    title: Mapped[str] = mapped_column(String(150), nullable=False)
    is_required: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    min_photos: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)


class InboundPhoto(Base):
    __tablename__ = "inbound_photos"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    org_id: Mapped[uuid.UUID] = mapped_column(GUID(), nullable=False)
    receipt_id: Mapped[uuid.UUID] = mapped_column(
        GUID(), ForeignKey("inbound_receipts.id", ondelete="CASCADE"), index=True, nullable=False
    )
    slot_id: Mapped[uuid.UUID] = mapped_column(
        GUID(), ForeignKey("inbound_photo_slots.id", ondelete="CASCADE"), index=True, nullable=False
    )
    storage_bucket: Mapped[str] = mapped_column(String(100), nullable=False)
    storage_path: Mapped[str] = mapped_column(String(500), nullable=False)
    mime_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    file_size: Mapped[int | None] = mapped_column(Integer, nullable=True)
    uploaded_by: Mapped[uuid.UUID | None] = mapped_column(GUID(), nullable=True)
    uploaded_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)


class InboundReceiptLine(Base):
    __tablename__ = "inbound_receipt_lines"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    org_id: Mapped[uuid.UUID] = mapped_column(GUID(), nullable=False)
    receipt_id: Mapped[uuid.UUID] = mapped_column(
        GUID(), ForeignKey("inbound_receipts.id", ondelete="CASCADE"), index=True, nullable=False
    )
    plan_line_id: Mapped[uuid.UUID | None] = mapped_column(GUID(), nullable=True, index=True)
    product_id: Mapped[uuid.UUID] = mapped_column(GUID(), ForeignKey("products.id"), nullable=False)
    expected_qty: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    accepted_qty: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    damaged_qty: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    missing_qty: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    other_qty: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    # Added by a later migration; deferred so older schemas can still be read.
    location_id: Mapped[uuid.UUID | None] = mapped_column(GUID(), nullable=True, deferred=True)
    inspected_by: Mapped[uuid.UUID | None] = mapped_column(GUID(), nullable=True)
    inspected_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)


class InboundEvent(Base):
    __tablename__ = "inbound_events"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    org_id: Mapped[uuid.UUID] = mapped_column(GUID(), nullable=False)
    # No foreign key: the stream outlives a deleted receipt.
    receipt_id: Mapped[uuid.UUID] = mapped_column(GUID(), index=True, nullable=False)
    event_type: Mapped[str] = mapped_column(String(50), nullable=False)
    payload: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    actor_id: Mapped[uuid.UUID | None] = mapped_column(GUID(), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)


class AuditEvent(Base):
    __tablename__ = "audit_events"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    org_id: Mapped[uuid.UUID | None] = mapped_column(GUID(), index=True, nullable=True)
    user_id: Mapped[uuid.UUID | None] = mapped_column(GUID(), index=True, nullable=True)
    trace_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    actor: Mapped[str | None] = mapped_column(String(150), nullable=True)
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    resource_type: Mapped[str] = mapped_column(String(50), nullable=False)
    resource_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    payload: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    result: Mapped[str] = mapped_column(String(20), default="success", nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)


class InventoryLedgerEntry(Base):
    __tablename__ = "inventory_ledger"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    org_id: Mapped[uuid.UUID] = mapped_column(GUID(), index=True, nullable=False)
    warehouse_id: Mapped[uuid.UUID] = mapped_column(GUID(), nullable=False)
    product_id: Mapped[uuid.UUID] = mapped_column(GUID(), nullable=False)
    location_id: Mapped[uuid.UUID | None] = mapped_column(GUID(), nullable=True)
    transaction_type: Mapped[str] = mapped_column(String(30), nullable=False)
    qty_change: Mapped[int] = mapped_column(Integer, nullable=False)
    reference_type: Mapped[str] = mapped_column(String(30), nullable=False)
    reference_id: Mapped[uuid.UUID] = mapped_column(GUID(), index=True, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[uuid.UUID | None] = mapped_column(GUID(), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)


class InventoryBalance(Base):
    __tablename__ = "inventory_balances"
    __table_args__ = (
        UniqueConstraint("warehouse_id", "location_id", "product_id", name="uq_inventory_balances_slot"),
    )

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    org_id: Mapped[uuid.UUID] = mapped_column(GUID(), index=True, nullable=False)
    warehouse_id: Mapped[uuid.UUID] = mapped_column(GUID(), nullable=False)
    location_id: Mapped[uuid.UUID] = mapped_column(GUID(), nullable=False)
    product_id: Mapped[uuid.UUID] = mapped_column(GUID(), nullable=False)
    qty_on_hand: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    qty_allocated: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)


class PutawayTask(Base):
    __tablename__ = "putaway_tasks"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    org_id: Mapped[uuid.UUID] = mapped_column(GUID(), index=True, nullable=False)
    warehouse_id: Mapped[uuid.UUID] = mapped_column(GUID(), index=True, nullable=False)
    receipt_id: Mapped[uuid.UUID] = mapped_column(GUID(), index=True, nullable=False)
    receipt_line_id: Mapped[uuid.UUID] = mapped_column(GUID(), nullable=False)
    product_id: Mapped[uuid.UUID] = mapped_column(GUID(), nullable=False)
    qty_expected: Mapped[int] = mapped_column(Integer, nullable=False)
    qty_processed: Mapped[int | None] = mapped_column(Integer, nullable=True)
    to_location_id: Mapped[uuid.UUID | None] = mapped_column(GUID(), nullable=True)
    status: Mapped[str] = mapped_column(String(20), default="PENDING", nullable=False)
    processed_by: Mapped[uuid.UUID | None] = mapped_column(GUID(), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)


# One receipt line per plan line; unplanned lines (NULL plan_line_id) are not constrained.
Index(
    "uq_inbound_receipt_lines_receipt_plan_line",
    InboundReceiptLine.receipt_id,
    InboundReceiptLine.plan_line_id,
    unique=True,
)
Index("ix_inventory_ledger_reference", InventoryLedgerEntry.reference_type, InventoryLedgerEntry.reference_id)
