"""Generate realistic statement attributes for demos and smoke tests."""

from datetime import date, timedelta
from typing import Any, Dict, List, Optional
import numpy as np
from faker import Faker


CHARGE_DESCRIPTIONS = [
    "Monthly subscription",
    "Additional seats",
    "Storage overage",
    "Priority support",
    "API usage",
    "Setup fee",
    "Late payment fee",
    "Service credit",
]

LINE_ITEM_HEADER = ["<b>Date</b>", "<b>Description</b>", "<b>Amount</b>"]


def generate_statement_id(rng: np.random.Generator) -> str:
    """Generate a statement number."""
    formats = [
        lambda: f"{rng.integers(1000, 99999)}",
        lambda: f"ST-{rng.integers(100000, 999999)}",
        lambda: f"{rng.integers(2024, 2027)}-{rng.integers(1, 9999):04d}",
    ]
    return formats[int(rng.integers(len(formats)))]()


def generate_amount(description: str, rng: np.random.Generator) -> float:
    """Generate a charge amount; credits are negative."""
    # Log-normal amounts cluster around typical charges with a long tail
    amount = round(float(rng.lognormal(np.log(60), 0.8)), 2)
    if description == "Service credit":
        return -amount
    return amount


def generate_line_items(
    start: date,
    end: date,
    rng: np.random.Generator,
    num_items: int = 5,
) -> List[List[str]]:
    """Header row, itemized charges sorted by date, and a total row."""
    items = []
    for _ in range(num_items):
        description = str(rng.choice(CHARGE_DESCRIPTIONS))
        items.append((_random_date(start, end, rng), description, generate_amount(description, rng)))
    items.sort(key=lambda item: item[0])

    rows = [list(LINE_ITEM_HEADER)]
    for charge_date, description, amount in items:
        rows.append([charge_date.strftime("%m/%d/%y"), description, f"${amount:,.2f}"])

    total = sum(amount for _, _, amount in items)
    rows.append(["", "<b>Total</b>", f"<b>${total:,.2f}</b>"])
    return rows


def generate_statement_attributes(
    rng: np.random.Generator,
    fake: Optional[Faker] = None,
    num_items: int = 5,
    period_end: Optional[date] = None,
) -> Dict[str, Any]:
    """Build a complete attribute mapping for one statement."""
    fake = fake or Faker()
    period_end = period_end or date(2025, 12, 31)
    period_start = period_end.replace(day=1)
    company_name = fake.company()
    domain = company_name.split()[0].strip(",").lower()

    return {
        "id": generate_statement_id(rng),
        "company": {
            "name": company_name,
            "address": f"{fake.street_address()}\n{fake.city()}, {fake.state_abbr()} {fake.zipcode()}",
            "email": f"billing@{domain}.com",
        },
        "bill_to": [
            fake.name(),
            fake.company(),
            fake.street_address(),
            f"{fake.city()}, {fake.state_abbr()} {fake.zipcode()}",
        ],
        "issue_date": period_end + timedelta(days=int(rng.integers(1, 6))),
        "start_date": period_start,
        "end_date": period_end,
        "line_items": generate_line_items(period_start, period_end, rng, num_items),
    }


def _random_date(start: date, end: date, rng: np.random.Generator) -> date:
    """Generate a random date between start and end."""
    delta = (end - start).days
    random_days = rng.integers(0, max(1, delta + 1))
    return start + timedelta(days=int(random_days))
