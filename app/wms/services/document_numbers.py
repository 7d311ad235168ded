import random
from datetime import date

PLAN_PREFIX = "INP"
RECEIPT_PREFIX = "INR"


def generate_document_numbers(today: date | None = None, rng: random.Random | None = None) -> tuple[str, str]:
    """Returns a (plan_no, receipt_no) pair sharing the same date and 4-digit suffix."""
    day = (today or date.today()).strftime("%Y%m%d")
    suffix = f"{(rng or random).randint(0, 9999):04d}"
    return f"{PLAN_PREFIX}-{day}-{suffix}", f"{RECEIPT_PREFIX}-{day}-{suffix}"
