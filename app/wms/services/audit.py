from dataclasses import dataclass, field

from app.wms.db.models import AuditEvent, utcnow
from app.wms.repos.audit import AuditRepository

INBOUND_RESOURCE_TYPE = "inventory"


@dataclass
class AuditEventPayload:
    org_id: str | None
    user_id: str | None
    trace_id: str | None
    actor: str | None
    action: str
    resource_id: str | None
    payload: dict | None = None
    resource_type: str = INBOUND_RESOURCE_TYPE
    reason: str | None = None
    result: str = "success"
    metadata: dict = field(default_factory=dict)


class AuditService:
    """System-wide audit trail.

    Writes are not guarded here: callers emit audit entries through the side
    channel, which owns the failure policy.
    """

    def __init__(self, db):
        self.repo = AuditRepository(db)

    def record_event(self, payload: AuditEventPayload) -> AuditEvent:
        body = dict(payload.payload or {})
        if payload.metadata:
            body.setdefault("metadata", payload.metadata)
        event = AuditEvent(
            org_id=payload.org_id,
            user_id=payload.user_id,
            trace_id=payload.trace_id,
            actor=payload.actor,
            action=payload.action,
            resource_type=payload.resource_type,
            resource_id=payload.resource_id,
            reason=payload.reason,
            payload=body or None,
            result=payload.result,
            created_at=utcnow(),
        )
        return self.repo.create(event)
