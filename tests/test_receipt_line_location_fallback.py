import logging
import uuid

from sqlalchemy import inspect, select

import app.wms.repos.inbound_receipts as inbound_receipts
from app.wms.db.models import InboundReceipt, InboundReceiptLine
from tests.inbound_helpers import (
    auth_headers,
    confirm,
    count_line,
    create_plan,
    get_workspace,
    plan_line_ids,
    ready_receipt,
    save_lines,
    seed_org,
)


def _counted_line(client, db_session, **extra):
    refs = seed_org(db_session)
    headers = auth_headers(refs.org_id)
    plan = create_plan(client, headers, refs)
    line = count_line(
        refs.product_ids[0],
        plan_line_id=plan_line_ids(client, headers, plan)[0],
        accepted=10,
        location_id=refs.location_id,
        **extra,
    )
    return refs, headers, plan, line


def test_auto_mode_skips_location_on_legacy_schema(legacy_client, db_session):
    columns = {column["name"] for column in inspect(db_session.get_bind()).get_columns("inbound_receipt_lines")}
    assert "location_id" not in columns

    refs, headers, plan, line = _counted_line(legacy_client, db_session)
    response = save_lines(legacy_client, headers, plan["receipt_id"], [line])

    assert response.status_code == 200, response.text
    [saved] = response.json()["lines"]
    assert saved["accepted_qty"] == 10
    assert saved["location_id"] is None
    assert get_workspace(legacy_client, headers, plan["plan_id"])["receipt_lines"][0]["accepted_qty"] == 10


def test_enabled_mode_falls_back_once_when_column_is_missing(legacy_client, db_session, monkeypatch, caplog):
    monkeypatch.setattr(inbound_receipts.settings, "RECEIPT_LINE_LOCATION_MODE", "enabled")
    refs, headers, plan, line = _counted_line(legacy_client, db_session)

    with caplog.at_level(logging.INFO):
        first = save_lines(legacy_client, headers, plan["receipt_id"], [line])
        second = save_lines(legacy_client, headers, plan["receipt_id"], [{**line, "accepted_qty": 9, "damaged_qty": 1}])

    assert first.status_code == 200, first.text
    assert second.status_code == 200, second.text
    [saved] = second.json()["lines"]
    assert saved["accepted_qty"] == 9
    assert saved["location_id"] is None
    assert db_session.execute(select(InboundReceiptLine.accepted_qty)).scalars().all() == [9]

    fallbacks = [record for record in caplog.records if "inbound.receipt_line.location_unsupported" in record.getMessage()]
    assert len(fallbacks) == 1


def test_enabled_mode_workspace_reads_before_any_write(legacy_client, db_session, monkeypatch, caplog):
    monkeypatch.setattr(inbound_receipts.settings, "RECEIPT_LINE_LOCATION_MODE", "enabled")
    refs = seed_org(db_session)
    headers = auth_headers(refs.org_id)
    plan = create_plan(legacy_client, headers, refs)

    with caplog.at_level(logging.INFO):
        response = legacy_client.get(f"/wms/inbound/plans/{plan['plan_id']}/workspace", headers=headers)

    assert response.status_code == 200, response.text
    assert response.json()["receipt_lines"] == []
    fallbacks = [record for record in caplog.records if "inbound.receipt_line.location_unsupported" in record.getMessage()]
    assert len(fallbacks) == 1


def test_enabled_mode_confirm_settles_location_before_claiming(legacy_client, db_session, monkeypatch, caplog):
    monkeypatch.setattr(inbound_receipts.settings, "RECEIPT_LINE_LOCATION_MODE", "enabled")
    refs, headers, plan = ready_receipt(legacy_client, db_session, accepted=7)
    monkeypatch.setattr(inbound_receipts, "location_support", inbound_receipts.LocationColumnSupport())

    with caplog.at_level(logging.INFO):
        response = confirm(legacy_client, headers, plan["receipt_id"])

    assert response.status_code == 200, response.text
    body = response.json()
    assert body["status"] == "DISCREPANCY"
    assert [(item["expected"], item["actual"]) for item in body["details"]] == [(10, 7)]
    assert db_session.get(InboundReceipt, uuid.UUID(plan["receipt_id"])).status == "DISCREPANCY"
    fallbacks = [record for record in caplog.records if "inbound.receipt_line.location_unsupported" in record.getMessage()]
    assert len(fallbacks) == 1


def test_disabled_mode_never_writes_location(client, db_session, monkeypatch):
    monkeypatch.setattr(inbound_receipts.settings, "RECEIPT_LINE_LOCATION_MODE", "disabled")
    refs, headers, plan, line = _counted_line(client, db_session)

    response = save_lines(client, headers, plan["receipt_id"], [line])

    assert response.status_code == 200, response.text
    assert response.json()["lines"][0]["location_id"] is None
    assert db_session.execute(select(InboundReceiptLine.location_id)).scalars().all() == [None]


def test_location_is_persisted_on_current_schema(client, db_session):
    refs, headers, plan, line = _counted_line(client, db_session)

    response = save_lines(client, headers, plan["receipt_id"], [line])

    assert response.status_code == 200, response.text
    assert response.json()["lines"][0]["location_id"] == refs.location_id
    [stored] = db_session.execute(select(InboundReceiptLine.location_id)).scalars().all()
    assert str(stored) == refs.location_id
