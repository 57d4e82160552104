import re
from datetime import date

import numpy as np
import pytest
from faker import Faker

from conftest import RecordingRenderer
from statement_layout.sample_data import (
    LINE_ITEM_HEADER,
    generate_line_items,
    generate_statement_attributes,
)
from statement_layout.statement import Statement, StatementData


def money(cell):
    return float(re.sub(r"[^\d.-]", "", cell))


def seeded(seed=7):
    fake = Faker()
    fake.seed_instance(seed)
    return np.random.default_rng(seed), fake


def test_same_seed_same_statement():
    assert generate_statement_attributes(*seeded()) == generate_statement_attributes(*seeded())


def test_line_items_have_header_sorted_dates_and_total():
    rng = np.random.default_rng(3)
    rows = generate_line_items(date(2025, 3, 1), date(2025, 3, 31), rng, num_items=8)

    assert rows[0] == LINE_ITEM_HEADER
    assert len(rows) == 10
    body = rows[1:-1]
    dates = [row[0] for row in body]
    assert dates == sorted(dates)
    assert all(d.startswith("03/") and d.endswith("/25") for d in dates)

    amounts = [money(row[2]) for row in body]
    assert money(rows[-1][2]) == pytest.approx(sum(amounts), abs=0.01)
    assert rows[-1][1] == "<b>Total</b>"


def test_generated_attributes_validate_and_render():
    attributes = generate_statement_attributes(*seeded(), num_items=3)

    data = StatementData.from_attributes(attributes)
    assert data.start_date == date(2025, 12, 1)
    assert data.issue_date > data.end_date
    assert data.company.email.startswith("billing@")
    assert len(attributes["bill_to"]) == 4

    renderer = RecordingRenderer()
    Statement(attributes, renderer=renderer).render()
    assert renderer.find_text("Total").fragments[0].bold
