"""Tests for table column widths, borders and pagination."""

import pytest

from statement_layout.table_layout import (
    CellOverride,
    TableStyle,
    bottom_border_rows,
    compute_column_widths,
    normalize_grid,
)


@pytest.fixture
def page(document):
    document.push_box(0, 0, 612, 792)
    document.push_box(85, 0, 442, 792)
    return document


def grid(rows, columns=3):
    return [[f"r{r}c{c}" for c in range(columns)] for r in range(rows)]


@pytest.mark.parametrize("rows", [2, 3, 4, 5, 10])
def test_all_but_last_two_rows_get_bottom_border(rows):
    assert list(bottom_border_rows(rows)) == list(range(rows - 2))


def test_tiny_grids_have_no_borders():
    assert list(bottom_border_rows(0)) == []
    assert list(bottom_border_rows(1)) == []


def test_rendered_borders_follow_the_rule(page, renderer):
    table = page.table(grid(5))

    assert [row.has_bottom_border for row in table.rows] == [True, True, True, False, False]
    # One bottom edge per cell of rows 0..2
    assert len(renderer.lines()) == 9
    for line in renderer.lines():
        assert line.y == line.end[1]


def test_even_column_widths(page):
    table = page.table(grid(3))
    assert table.column_widths == [pytest.approx(442 / 3)] * 3


def test_column_width_overrides():
    assert compute_column_widths(400, 3, [100, None, None]) == [100, 150, 150]
    assert compute_column_widths(400, 2, [100, 100]) == [200, 200]
    with pytest.raises(ValueError):
        compute_column_widths(400, 2, [100])
    with pytest.raises(ValueError):
        compute_column_widths(400, 2, [500, None])
    with pytest.raises(ValueError):
        compute_column_widths(400, 2, [400, None])
    with pytest.raises(ValueError):
        compute_column_widths(400, 2, [0, None])


def test_short_rows_are_padded():
    assert normalize_grid([["a", "b"], ["c"]]) == [["a", "b"], ["c", ""]]


def test_rows_stack_and_advance_cursor(page, renderer):
    page.move_down(200)
    table = page.table(grid(3))

    # One 14.4pt line plus 12pt padding above and below
    assert [row.y_top for row in table.rows] == pytest.approx([200, 238.4, 276.8])
    assert table.height == pytest.approx(3 * 38.4)
    assert page.cursor == pytest.approx(200 + table.height)
    first = renderer.find_text("r0c0")
    assert (first.x, first.y) == (85 + 12, 212)


def test_empty_grid(page, renderer):
    table = page.table([])
    assert table.height == 0
    assert table.rows == []
    assert renderer.calls == []


def test_long_table_continues_on_new_page_with_header(page, renderer):
    page.move_down(200)
    table = page.table(grid(40))

    assert table.page_count > 1
    assert renderer.page == table.page_count - 1

    body_rows = [row for row in table.rows if not row.repeated_header]
    assert [row.row_index for row in body_rows] == list(range(40))

    repeated = [row for row in table.rows if row.repeated_header]
    assert len(repeated) == table.page_count - 1
    for row in repeated:
        assert row.row_index == 0
        assert row.y_top == 36
        first_on_page = [r for r in table.rows if r.page_index == row.page_index][0]
        assert first_on_page is row

    for row in table.rows:
        assert row.y_top + row.height <= 792 - 36 + 1e-6

    header_texts = [c for c in renderer.texts() if c.text == "r0c0"]
    assert [c.page for c in header_texts] == list(range(table.page_count))


def test_header_repeat_can_be_disabled(page, renderer):
    page.move_down(200)
    table = page.table(grid(40), style=page.table_style(header=False))
    assert table.page_count > 1
    assert not any(row.repeated_header for row in table.rows)


def test_header_is_kept_with_first_body_row(page):
    page.move_to(792 - 36 - 50)
    table = page.table(grid(3))
    assert table.rows[0].page_index == 1
    assert table.rows[0].y_top == 36


def test_row_taller_than_page_is_clipped_not_looped(page):
    tall = [["x\n" * 100]]
    table = page.table(tall)
    assert len(table.rows) == 1
    assert table.rows[0].height <= 792


def test_row_and_column_overrides(page, renderer):
    style = TableStyle(
        header=False,
        row_styles={0: CellOverride(bold=True)},
        column_styles={2: CellOverride(align="right", borders=frozenset({"left"}))},
    )
    table = page.table(grid(2), style=style)

    assert renderer.find_text("r0c0").fragments[0].bold
    assert not renderer.find_text("r1c0").fragments[0].bold
    assert renderer.find_text("r1c2").style.align == "right"
    assert table.rows[1].cell_borders[2] == frozenset({"left"})


def test_cell_override_rejects_unknown_border():
    with pytest.raises(ValueError):
        CellOverride(borders=frozenset({"diagonal"}))


def test_markup_in_cells(page, renderer):
    page.table([["<b>Total</b>", "<color rgb='888888'>$1.00</color>"], ["a", "b"]])
    assert renderer.find_text("Total").fragments[0].bold
    assert renderer.find_text("$1.00").fragments[0].color == "888888"
