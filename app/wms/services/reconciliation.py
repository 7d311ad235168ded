"""Pure reconciliation rules for inbound receipts.

Nothing in this module talks to the database; the engine feeds it rows it has
already read inside the relevant transaction.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable


@dataclass(frozen=True)
class PhotoSlotSpec:
    slot_key: str
    title: str
    is_required: bool = True
    min_photos: int = 1


PHOTO_SLOT_CATALOG: tuple[PhotoSlotSpec, ...] = (
    PhotoSlotSpec("VEHICLE_LEFT", "Vehicle open (left)"),
    PhotoSlotSpec("VEHICLE_RIGHT", "Vehicle open (right)"),
    PhotoSlotSpec("PRODUCT_FULL", "Full product view"),
    PhotoSlotSpec("BOX_OUTER", "Box exterior"),
    PhotoSlotSpec("LABEL_CLOSEUP", "Waybill / label close-up"),
    PhotoSlotSpec("UNBOXED", "After unboxing"),
)


@dataclass(frozen=True)
class LineDiscrepancy:
    product_id: str
    plan_line_id: str | None
    expected: int
    actual: int

    def as_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "plan_line_id": self.plan_line_id,
            "expected": self.expected,
            "actual": self.actual,
        }


def received_total(accepted: int, damaged: int, missing: int, other: int) -> int:
    return int(accepted or 0) + int(damaged or 0) + int(missing or 0) + int(other or 0)


def missing_slot_titles(progress: Iterable) -> list[str]:
    return [slot.title for slot in sorted(progress, key=lambda item: item.sort_order) if not slot.slot_ok]


def find_discrepancies(plan_lines: Iterable, receipt_lines: Iterable) -> list[LineDiscrepancy]:
    """Every receipt line whose bucket total differs from its expected quantity.

    A plan line nobody counted is reported with an actual quantity of 0.
    """
    discrepancies: list[LineDiscrepancy] = []
    counted_plan_lines: set[str] = set()
    for line in receipt_lines:
        if line.plan_line_id is not None:
            counted_plan_lines.add(str(line.plan_line_id))
        actual = received_total(line.accepted_qty, line.damaged_qty, line.missing_qty, line.other_qty)
        expected = int(line.expected_qty or 0)
        if actual != expected:
            discrepancies.append(
                LineDiscrepancy(
                    product_id=str(line.product_id),
                    plan_line_id=str(line.plan_line_id) if line.plan_line_id is not None else None,
                    expected=expected,
                    actual=actual,
                )
            )
    for plan_line in plan_lines:
        if str(plan_line.id) in counted_plan_lines:
            continue
        expected = int(plan_line.expected_qty or 0)
        if expected != 0:
            discrepancies.append(
                LineDiscrepancy(
                    product_id=str(plan_line.product_id),
                    plan_line_id=str(plan_line.id),
                    expected=expected,
                    actual=0,
                )
            )
    return discrepancies
