import uuid

from sqlalchemy import select

from app.wms.db.models import AuditEvent, InboundReceiptLine
from tests.inbound_helpers import (
    auth_headers,
    count_line,
    create_plan,
    event_types,
    get_workspace,
    plan_line_ids,
    save_lines,
    seed_org,
)


def _setup(client, db_session, quantities=(10,)):
    refs = seed_org(db_session)
    headers = auth_headers(refs.org_id)
    plan = create_plan(client, headers, refs, quantities=quantities)
    return refs, headers, plan


def test_saving_lines_moves_receipt_to_counting(client, db_session):
    refs, headers, plan = _setup(client, db_session)
    plan_line_id = plan_line_ids(client, headers, plan)[0]

    response = save_lines(
        client,
        headers,
        plan["receipt_id"],
        [count_line(refs.product_ids[0], plan_line_id=plan_line_id, accepted=6, damaged=1, missing=2, other=1)],
    )

    assert response.status_code == 200, response.text
    body = response.json()
    assert body["status"] == "COUNTING"
    assert body["saved_count"] == 1
    [line] = body["lines"]
    assert line["plan_line_id"] == plan_line_id
    assert line["expected_qty"] == 10
    assert line["received_total"] == 10
    assert line["inspected_by"] is not None

    [event] = [
        row
        for row in client.get(f"/wms/inbound/receipts/{plan['receipt_id']}/events", headers=headers).json()["rows"]
        if row["event_type"] == "QTY_UPDATED"
    ]
    assert event["payload"] == {"lines_count": 1, "saved_count": 1, "failed_count": 0}
    actions = db_session.execute(
        select(AuditEvent.action).where(AuditEvent.resource_id == plan["receipt_id"])
    ).scalars().all()
    assert actions == ["UPDATE"]


def test_saving_the_same_counts_twice_keeps_one_line(client, db_session):
    refs, headers, plan = _setup(client, db_session)
    plan_line_id = plan_line_ids(client, headers, plan)[0]
    lines = [count_line(refs.product_ids[0], plan_line_id=plan_line_id, accepted=4)]

    first = save_lines(client, headers, plan["receipt_id"], lines)
    second = save_lines(client, headers, plan["receipt_id"], lines)

    assert first.status_code == 200
    assert second.status_code == 200
    assert [line["id"] for line in first.json()["lines"]] == [line["id"] for line in second.json()["lines"]]
    rows = db_session.execute(select(InboundReceiptLine)).scalars().all()
    assert len(rows) == 1
    assert rows[0].accepted_qty == 4


def test_line_without_plan_line_id_matches_by_product(client, db_session):
    refs, headers, plan = _setup(client, db_session)

    response = save_lines(client, headers, plan["receipt_id"], [count_line(refs.product_ids[0], accepted=10)])

    assert response.status_code == 200, response.text
    [line] = response.json()["lines"]
    assert line["plan_line_id"] == plan_line_ids(client, headers, plan)[0]
    assert line["expected_qty"] == 10


def test_unplanned_product_is_counted_with_zero_expected(client, db_session):
    refs, headers, plan = _setup(client, db_session)

    response = save_lines(client, headers, plan["receipt_id"], [count_line(refs.product_ids[1], other=3)])

    assert response.status_code == 200, response.text
    [line] = response.json()["lines"]
    assert line["plan_line_id"] is None
    assert line["expected_qty"] == 0
    assert line["received_total"] == 3


def test_existing_line_can_be_addressed_by_id(client, db_session):
    refs, headers, plan = _setup(client, db_session)
    plan_line_id = plan_line_ids(client, headers, plan)[0]
    saved = save_lines(
        client,
        headers,
        plan["receipt_id"],
        [count_line(refs.product_ids[0], plan_line_id=plan_line_id, accepted=2)],
    ).json()["lines"][0]

    response = save_lines(
        client,
        headers,
        plan["receipt_id"],
        [count_line(refs.product_ids[0], receipt_line_id=saved["id"], accepted=9, damaged=1)],
    )

    assert response.status_code == 200, response.text
    [line] = response.json()["lines"]
    assert line["id"] == saved["id"]
    assert line["accepted_qty"] == 9
    assert line["received_total"] == 10


def test_partial_failure_keeps_valid_lines_and_reports_each_error(client, db_session):
    refs, headers, plan = _setup(client, db_session, quantities=(10, 5))
    first_line, second_line = plan_line_ids(client, headers, plan)
    workspace = get_workspace(client, headers, plan["plan_id"])
    products = {line["id"]: line["product_id"] for line in workspace["plan"]["lines"]}

    response = save_lines(
        client,
        headers,
        plan["receipt_id"],
        [
            count_line(products[first_line], plan_line_id=first_line, accepted=10),
            count_line(products[first_line], plan_line_id=second_line, accepted=1),
            count_line(products[second_line], plan_line_id=str(uuid.uuid4()), accepted=1),
            count_line(products[second_line], plan_line_id=second_line, accepted=5),
        ],
    )

    assert response.status_code == 422
    body = response.json()
    assert body["code"] == "RECEIPT_LINES_SAVE_FAILED"
    details = body["details"]
    assert details["saved_count"] == 2
    assert [error.split(":")[0] for error in details["errors"]] == ["line 2", "line 3"]
    assert details["message"] == " | ".join(details["errors"])

    rows = db_session.execute(select(InboundReceiptLine)).scalars().all()
    assert sorted(row.accepted_qty for row in rows) == [5, 10]
    assert get_workspace(client, headers, plan["plan_id"])["receipt"]["status"] == "COUNTING"
    [event] = [
        row
        for row in client.get(f"/wms/inbound/receipts/{plan['receipt_id']}/events", headers=headers).json()["rows"]
        if row["event_type"] == "QTY_UPDATED"
    ]
    assert event["payload"] == {"lines_count": 4, "saved_count": 2, "failed_count": 2}


def test_all_lines_failing_leaves_receipt_untouched(client, db_session):
    refs, headers, plan = _setup(client, db_session)

    response = save_lines(client, headers, plan["receipt_id"], [count_line(str(uuid.uuid4()), accepted=1)])

    assert response.status_code == 422
    assert response.json()["details"]["errors"] == ["line 1: product not found"]
    assert get_workspace(client, headers, plan["plan_id"])["receipt"]["status"] == "ARRIVED"
    assert event_types(client, headers, plan["receipt_id"]) == ["CREATED"]


def test_negative_quantities_are_rejected(client, db_session):
    refs, headers, plan = _setup(client, db_session)

    response = save_lines(client, headers, plan["receipt_id"], [count_line(refs.product_ids[0], damaged=-1)])

    assert response.status_code == 422
    assert response.json()["code"] == "VALIDATION_ERROR"
    assert db_session.execute(select(InboundReceiptLine)).scalars().all() == []


def test_location_must_be_active_in_the_receipt_warehouse(client, db_session):
    refs, headers, plan = _setup(client, db_session)
    plan_line_id = plan_line_ids(client, headers, plan)[0]

    response = save_lines(
        client,
        headers,
        plan["receipt_id"],
        [count_line(refs.product_ids[0], plan_line_id=plan_line_id, accepted=10, location_id=refs.inactive_location_id)],
    )

    assert response.status_code == 422
    [error] = response.json()["details"]["errors"]
    assert error.startswith("line 1: location")

    response = save_lines(
        client,
        headers,
        plan["receipt_id"],
        [count_line(refs.product_ids[0], plan_line_id=plan_line_id, accepted=10, location_id=refs.location_id)],
    )
    assert response.status_code == 200, response.text
    assert response.json()["lines"][0]["location_id"] == refs.location_id


def test_workspace_reports_lines_and_locations(client, db_session):
    refs, headers, plan = _setup(client, db_session)
    save_lines(client, headers, plan["receipt_id"], [count_line(refs.product_ids[0], accepted=3, missing=7)])

    workspace = get_workspace(client, headers, plan["plan_id"])

    [line] = workspace["receipt_lines"]
    assert line["received_total"] == 10
    assert [location["id"] for location in workspace["locations"]] == [refs.location_id]
    assert workspace["photos_complete"] is False
    assert len(workspace["missing_slots"]) == 6
