import random
import uuid
from datetime import date
from types import SimpleNamespace

import pytest

from app.wms.repos.inbound_receipts import PhotoSlotProgress
from app.wms.services.document_numbers import generate_document_numbers
from app.wms.services.reconciliation import (
    PHOTO_SLOT_CATALOG,
    find_discrepancies,
    missing_slot_titles,
    received_total,
)


def _plan_line(expected):
    return SimpleNamespace(id=uuid.uuid4(), product_id=uuid.uuid4(), expected_qty=expected)


def _receipt_line(plan_line, accepted=0, damaged=0, missing=0, other=0, expected=None):
    return SimpleNamespace(
        plan_line_id=plan_line.id if plan_line is not None else None,
        product_id=plan_line.product_id if plan_line is not None else uuid.uuid4(),
        expected_qty=plan_line.expected_qty if expected is None else expected,
        accepted_qty=accepted,
        damaged_qty=damaged,
        missing_qty=missing,
        other_qty=other,
    )


def _progress(spec, index, photo_count):
    return PhotoSlotProgress(
        slot_id=uuid.uuid4(),
        slot_key=spec.slot_key,
        title=spec.title,
        is_required=spec.is_required,
        min_photos=spec.min_photos,
        sort_order=index,
        photo_count=photo_count,
    )


@pytest.mark.parametrize(
    ("buckets", "expected"),
    [
        ((10, 0, 0, 0), 10),
        ((8, 0, 2, 0), 10),
        ((1, 2, 3, 4), 10),
        ((0, None, 0, None), 0),
    ],
)
def test_received_total_sums_every_bucket(buckets, expected):
    assert received_total(*buckets) == expected


def test_matching_totals_have_no_discrepancy():
    plan_line = _plan_line(10)
    assert find_discrepancies([plan_line], [_receipt_line(plan_line, accepted=8, missing=2)]) == []


def test_short_count_is_reported():
    plan_line = _plan_line(10)

    [item] = find_discrepancies([plan_line], [_receipt_line(plan_line, accepted=7)])

    assert item.as_dict() == {
        "product_id": str(plan_line.product_id),
        "plan_line_id": str(plan_line.id),
        "expected": 10,
        "actual": 7,
    }


def test_over_count_and_unplanned_lines_are_reported():
    plan_line = _plan_line(5)
    unplanned = _receipt_line(None, other=2, expected=0)

    items = find_discrepancies([plan_line], [_receipt_line(plan_line, accepted=6), unplanned])

    assert [(item.expected, item.actual) for item in items] == [(5, 6), (0, 2)]
    assert items[1].plan_line_id is None


def test_uncounted_plan_lines_count_as_zero_unless_nothing_was_expected():
    counted, forgotten, empty = _plan_line(3), _plan_line(4), _plan_line(0)

    items = find_discrepancies([counted, forgotten, empty], [_receipt_line(counted, accepted=3)])

    assert [(item.plan_line_id, item.actual) for item in items] == [(str(forgotten.id), 0)]


def test_missing_slot_titles_follow_catalog_order():
    progress = [_progress(spec, index, 1 if index % 2 else 0) for index, spec in enumerate(PHOTO_SLOT_CATALOG)]

    assert missing_slot_titles(reversed(progress)) == [
        "Vehicle open (left)",
        "Full product view",
        "Waybill / label close-up",
    ]
    assert missing_slot_titles([_progress(spec, index, 2) for index, spec in enumerate(PHOTO_SLOT_CATALOG)]) == []


def test_optional_slot_never_blocks():
    optional = PhotoSlotProgress(
        slot_id=uuid.uuid4(),
        slot_key="EXTRA",
        title="Extra angle",
        is_required=False,
        min_photos=1,
        sort_order=99,
        photo_count=0,
    )
    assert optional.slot_ok
    assert missing_slot_titles([optional]) == []


def test_document_numbers_share_date_and_suffix():
    plan_no, receipt_no = generate_document_numbers(today=date(2026, 3, 2), rng=random.Random(7))

    assert plan_no.startswith("INP-20260302-")
    assert receipt_no.startswith("INR-20260302-")
    assert plan_no.rsplit("-", 1)[1] == receipt_no.rsplit("-", 1)[1]
    assert len(plan_no.rsplit("-", 1)[1]) == 4
