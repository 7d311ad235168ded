import uuid

from sqlalchemy import select

from app.wms.core.deps import Actor
from app.wms.db.models import (
    InboundPhoto,
    InboundReceipt,
    InboundReceiptLine,
    InventoryLedgerEntry,
    PutawayTask,
    ReceiptStatus,
)
from app.wms.repos.inbound_receipts import InboundReceiptRepository
from app.wms.schemas.inbound import ReceiptLineInput
from app.wms.services.inbound import InboundService
from app.wms.services.side_channel import SideChannel
from tests.inbound_helpers import (
    auth_headers,
    confirm,
    count_line,
    create_plan,
    event_types,
    get_workspace,
    plan_line_ids,
    ready_receipt,
    save_lines,
    seed_org,
    upload_photo,
)


def _actor(org_id):
    return Actor(
        user_id=str(uuid.uuid4()),
        username="second-operator",
        org_id=org_id,
        role="OPERATOR",
        is_elevated=False,
    )


def _in_other_session(work):
    """Runs `work(service)` to completion on its own session, like a second request would."""
    from app.wms.db.session import SessionLocal

    db = SessionLocal()
    try:
        return work(InboundService(db, SideChannel()))
    finally:
        db.close()


def _save_in_other_session(refs, plan, plan_line_id, accepted):
    line = ReceiptLineInput(product_id=refs.product_ids[0], plan_line_id=plan_line_id, accepted_qty=accepted)
    return _in_other_session(
        lambda service: service.save_receipt_lines(refs.org_id, _actor(refs.org_id), plan["receipt_id"], [line])
    )


def _confirm_in_other_session(refs, plan):
    return _in_other_session(
        lambda service: service.confirm_receipt(refs.org_id, _actor(refs.org_id), plan["receipt_id"])
    )


def _stored_lines(db_session, receipt_id):
    db_session.expire_all()
    return (
        db_session.execute(select(InboundReceiptLine).where(InboundReceiptLine.receipt_id == uuid.UUID(receipt_id)))
        .scalars()
        .all()
    )


def test_second_confirm_is_rejected_without_double_posting(client, db_session):
    refs, headers, plan = ready_receipt(client, db_session, accepted=10)

    first = confirm(client, headers, plan["receipt_id"])
    second = confirm(client, headers, plan["receipt_id"])

    assert first.status_code == 200, first.text
    assert second.status_code == 409
    assert second.json()["code"] == "RECEIPT_ALREADY_CONFIRMED"
    assert second.json()["details"]["status"] == "CONFIRMED"

    assert event_types(client, headers, plan["receipt_id"]).count("CONFIRMED") == 1
    assert len(db_session.execute(select(InventoryLedgerEntry)).scalars().all()) == 1
    assert len(db_session.execute(select(PutawayTask)).scalars().all()) == 1


def test_stale_receipt_cannot_be_transitioned(client, db_session):
    from app.wms.db.session import SessionLocal

    refs, headers, plan = ready_receipt(client, db_session, accepted=10)
    stale = db_session.execute(select(InboundReceipt).where(InboundReceipt.id == plan["receipt_id"])).scalars().one()
    assert stale.status == ReceiptStatus.COUNTING

    other = SessionLocal()
    try:
        winner = other.execute(select(InboundReceipt).where(InboundReceipt.id == plan["receipt_id"])).scalars().one()
        assert InboundReceiptRepository(other).transition_status(
            winner,
            {ReceiptStatus.COUNTING},
            ReceiptStatus.CONFIRMED,
        )
        other.commit()
    finally:
        other.close()

    repo = InboundReceiptRepository(db_session)
    assert not repo.transition_status(stale, {ReceiptStatus.COUNTING}, ReceiptStatus.DISCREPANCY)
    db_session.rollback()
    assert stale.status == ReceiptStatus.CONFIRMED


def test_locked_receipt_blocks_plan_edits_for_operators(client, db_session):
    refs, headers, plan = ready_receipt(client, db_session, accepted=7)
    assert confirm(client, headers, plan["receipt_id"]).json()["status"] == "DISCREPANCY"

    response = client.patch(f"/wms/inbound/plans/{plan['plan_id']}", json={"notes": "late"}, headers=headers)
    assert response.status_code == 409
    assert response.json()["code"] == "INBOUND_ALREADY_PROCESSED"

    response = client.delete(f"/wms/inbound/plans/{plan['plan_id']}", headers=headers)
    assert response.status_code == 409

    admin = auth_headers(refs.org_id, role="ADMIN", username="admin")
    response = client.patch(f"/wms/inbound/plans/{plan['plan_id']}", json={"notes": "late"}, headers=admin)
    assert response.status_code == 200
    assert response.json()["notes"] == "late"


def test_confirmed_receipt_refuses_further_evidence_and_counts(client, db_session):
    refs, headers, plan = ready_receipt(client, db_session, accepted=10)
    assert confirm(client, headers, plan["receipt_id"]).status_code == 200
    slot_id = get_workspace(client, headers, plan["plan_id"])["slots"][0]["slot_id"]

    response = upload_photo(client, headers, plan["receipt_id"], slot_id, name="late.jpg")
    assert response.status_code == 409
    assert response.json()["code"] == "RECEIPT_FINALIZED"

    response = save_lines(client, headers, plan["receipt_id"], [count_line(refs.product_ids[0], accepted=1)])
    assert response.status_code == 409
    assert response.json()["code"] == "RECEIPT_FINALIZED"


def test_confirm_racing_another_confirm_posts_once(client, db_session, monkeypatch):
    refs, headers, plan = ready_receipt(client, db_session, accepted=10)
    original = InboundReceiptRepository.transition_status
    rival = {}

    def claim_after_rival_confirm(self, receipt, from_statuses, to_status, **values):
        if to_status == ReceiptStatus.CONFIRMED and "result" not in rival:
            rival["result"] = None
            rival["result"] = _confirm_in_other_session(refs, plan)
        return original(self, receipt, from_statuses, to_status, **values)

    monkeypatch.setattr(InboundReceiptRepository, "transition_status", claim_after_rival_confirm)

    response = confirm(client, headers, plan["receipt_id"])

    assert rival["result"].status == ReceiptStatus.CONFIRMED
    assert response.status_code == 409
    assert response.json()["code"] == "RECEIPT_ALREADY_CONFIRMED"
    assert response.json()["details"]["status"] == "CONFIRMED"
    assert len(db_session.execute(select(InventoryLedgerEntry)).scalars().all()) == 1
    assert len(db_session.execute(select(PutawayTask)).scalars().all()) == 1


def test_recount_landing_before_the_confirm_claim_is_reconciled(client, db_session, monkeypatch):
    refs, headers, plan = ready_receipt(client, db_session, accepted=10)
    plan_line_id = plan_line_ids(client, headers, plan)[0]
    original = InboundReceiptRepository.transition_status
    recounted = []

    def claim_after_recount(self, receipt, from_statuses, to_status, **values):
        if to_status == ReceiptStatus.CONFIRMED and not recounted:
            recounted.append(plan_line_id)
            _save_in_other_session(refs, plan, plan_line_id, accepted=7)
        return original(self, receipt, from_statuses, to_status, **values)

    monkeypatch.setattr(InboundReceiptRepository, "transition_status", claim_after_recount)

    response = confirm(client, headers, plan["receipt_id"])

    assert recounted
    assert response.status_code == 200, response.text
    body = response.json()
    assert body["discrepancy"] is True
    assert body["status"] == "DISCREPANCY"
    assert [(item["expected"], item["actual"]) for item in body["details"]] == [(10, 7)]
    [line] = _stored_lines(db_session, plan["receipt_id"])
    assert line.accepted_qty == 7
    assert db_session.execute(select(InventoryLedgerEntry)).scalars().all() == []
    receipt = db_session.get(InboundReceipt, uuid.UUID(plan["receipt_id"]))
    assert receipt.status == ReceiptStatus.DISCREPANCY
    assert receipt.confirmed_at is None


def test_recount_racing_a_finished_confirm_is_refused(client, db_session, monkeypatch):
    refs, headers, plan = ready_receipt(client, db_session, accepted=10)
    plan_line_id = plan_line_ids(client, headers, plan)[0]
    original = InboundReceiptRepository.find_line
    rival = {}

    def find_then_confirm(self, receipt_id, **criteria):
        found = original(self, receipt_id, **criteria)
        if "result" not in rival:
            rival["result"] = None
            rival["result"] = _confirm_in_other_session(refs, plan)
        return found

    monkeypatch.setattr(InboundReceiptRepository, "find_line", find_then_confirm)

    response = save_lines(
        client,
        headers,
        plan["receipt_id"],
        [count_line(refs.product_ids[0], plan_line_id=plan_line_id, accepted=7)],
    )

    assert rival["result"].status == ReceiptStatus.CONFIRMED
    assert response.status_code == 422
    body = response.json()
    assert body["code"] == "RECEIPT_LINES_SAVE_FAILED"
    assert body["details"]["errors"] == ["line 1: receipt is already finalized"]
    assert body["details"]["saved_count"] == 0
    [line] = _stored_lines(db_session, plan["receipt_id"])
    assert line.accepted_qty == 10
    ledger = db_session.execute(select(InventoryLedgerEntry.qty_change)).scalars().all()
    assert ledger == [10]


def test_concurrent_saves_of_one_plan_line_keep_a_single_line(client, db_session, monkeypatch):
    refs = seed_org(db_session)
    headers = auth_headers(refs.org_id)
    plan = create_plan(client, headers, refs)
    plan_line_id = plan_line_ids(client, headers, plan)[0]
    original = InboundReceiptRepository.find_line
    raced = []

    def find_then_save(self, receipt_id, **criteria):
        found = original(self, receipt_id, **criteria)
        if criteria.get("plan_line_id") is not None and not raced:
            raced.append(plan_line_id)
            _save_in_other_session(refs, plan, plan_line_id, accepted=4)
        return found

    monkeypatch.setattr(InboundReceiptRepository, "find_line", find_then_save)

    response = save_lines(
        client,
        headers,
        plan["receipt_id"],
        [count_line(refs.product_ids[0], plan_line_id=plan_line_id, accepted=10)],
    )

    assert raced
    assert response.status_code == 200, response.text
    assert response.json()["saved_count"] == 1
    [line] = _stored_lines(db_session, plan["receipt_id"])
    assert str(line.plan_line_id) == plan_line_id
    assert line.accepted_qty == 10


def test_photo_upload_racing_a_finished_confirm_is_refused(client, db_session, monkeypatch):
    refs, headers, plan = ready_receipt(client, db_session, accepted=10)
    slot_id = get_workspace(client, headers, plan["plan_id"])["slots"][0]["slot_id"]
    original = InboundReceiptRepository.get_slot
    rival = {}

    def slot_then_confirm(self, slot_id, receipt_id):
        found = original(self, slot_id, receipt_id)
        if "result" not in rival:
            rival["result"] = None
            rival["result"] = _confirm_in_other_session(refs, plan)
        return found

    monkeypatch.setattr(InboundReceiptRepository, "get_slot", slot_then_confirm)

    response = upload_photo(client, headers, plan["receipt_id"], slot_id, name="late.jpg")

    assert rival["result"].status == ReceiptStatus.CONFIRMED
    assert response.status_code == 409
    assert response.json()["code"] == "RECEIPT_FINALIZED"
    assert response.json()["details"]["status"] == "CONFIRMED"
    photos = db_session.execute(select(InboundPhoto).where(InboundPhoto.slot_id == uuid.UUID(slot_id))).scalars().all()
    assert len(photos) == 1
