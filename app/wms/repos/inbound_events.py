from sqlalchemy import select

from app.wms.db.models import InboundEvent


class InboundEventRepository:
    def __init__(self, db):
        self.db = db

    def append(self, event: InboundEvent) -> InboundEvent:
        self.db.add(event)
        self.db.commit()
        return event

    def list_for_receipt(self, receipt_id: str, org_id: str) -> list[InboundEvent]:
        return (
            self.db.execute(
                select(InboundEvent)
                .where(InboundEvent.receipt_id == receipt_id, InboundEvent.org_id == org_id)
                .order_by(InboundEvent.created_at, InboundEvent.id)
            )
            .scalars()
            .all()
        )
