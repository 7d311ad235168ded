from __future__ import annotations

import logging
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Union

from app.wms.core.metrics import metrics
from app.wms.db.models import InboundEvent, utcnow
from app.wms.db.session import get_session_factory
from app.wms.repos.inbound_events import InboundEventRepository
from app.wms.services.audit import AuditEventPayload, AuditService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InboundEventMessage:
    org_id: str
    receipt_id: str
    event_type: str
    payload: dict | None
    actor_id: str | None

    kind = "inbound_event"


@dataclass(frozen=True)
class AuditMessage:
    payload: AuditEventPayload

    kind = "audit"


SideChannelMessage = Union[InboundEventMessage, AuditMessage]


class SideChannel:
    """Queue of best-effort writes produced while serving one request.

    Nothing here touches the database. Messages are only delivered by a
    `SideChannelDispatcher` after the primary operation has finished.
    """

    def __init__(self) -> None:
        self._messages: deque[SideChannelMessage] = deque()

    def __len__(self) -> int:
        return len(self._messages)

    def emit_event(
        self,
        *,
        org_id,
        receipt_id,
        event_type: str,
        actor_id=None,
        payload: dict | None = None,
    ) -> None:
        self._messages.append(
            InboundEventMessage(
                org_id=str(org_id),
                receipt_id=str(receipt_id),
                event_type=event_type,
                payload=payload,
                actor_id=str(actor_id) if actor_id else None,
            )
        )

    def emit_audit(self, payload: AuditEventPayload) -> None:
        self._messages.append(AuditMessage(payload=payload))

    def peek(self) -> list[SideChannelMessage]:
        return list(self._messages)

    def drain(self) -> list[SideChannelMessage]:
        drained = list(self._messages)
        self._messages.clear()
        return drained


class SideChannelDispatcher:
    """Delivers side-channel messages, one session per message.

    A failed delivery is logged and counted; it never reaches the caller.
    """

    def __init__(self, session_factory=None):
        self.session_factory = session_factory

    def dispatch(self, messages: list[SideChannelMessage]) -> int:
        factory = self.session_factory or get_session_factory()
        delivered = 0
        for message in messages:
            db = factory()
            try:
                self._deliver(db, message)
                delivered += 1
            except Exception:
                db.rollback()
                metrics.increment_side_channel_failure(message.kind)
                logger.exception(
                    "Failed to write side channel message",
                    extra={"kind": message.kind, **_message_context(message)},
                )
            finally:
                db.close()
        return delivered

    @staticmethod
    def _deliver(db, message: SideChannelMessage) -> None:
        if isinstance(message, InboundEventMessage):
            InboundEventRepository(db).append(
                InboundEvent(
                    org_id=message.org_id,
                    receipt_id=message.receipt_id,
                    event_type=message.event_type,
                    payload=message.payload,
                    actor_id=message.actor_id,
                    created_at=utcnow(),
                )
            )
            return
        AuditService(db).record_event(message.payload)


def _message_context(message: SideChannelMessage) -> dict:
    if isinstance(message, InboundEventMessage):
        return {"event_type": message.event_type, "receipt_id": message.receipt_id}
    return {"action": message.payload.action, "resource_id": message.payload.resource_id}


@contextmanager
def side_channel(db, dispatcher: SideChannelDispatcher | None = None) -> Iterator[SideChannel]:
    """Yields a channel for one unit of work and flushes it when the block exits.

    The primary session is rolled back if the block raises; messages emitted
    before the failure (for work that was already committed) are still delivered.
    """
    channel = SideChannel()
    try:
        yield channel
    except Exception:
        db.rollback()
        raise
    finally:
        (dispatcher or SideChannelDispatcher()).dispatch(channel.drain())
