"""Table layout for the itemized charges section.

Rows are drawn top to bottom at the active cursor using the full width of
the active box. When the next row would cross the page's bottom margin the
table continues on a new page, optionally repeating the first row.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any, Dict, FrozenSet, List, Optional, Sequence, Tuple

from .markup import BoldRun, Fragment, as_runs, flatten
from .pdf_renderer import TextStyle

if TYPE_CHECKING:
    from .document import Document

logger = logging.getLogger(__name__)

BORDER_SIDES = frozenset({"top", "bottom", "left", "right"})
NO_BORDERS: FrozenSet[str] = frozenset()


@dataclass(frozen=True)
class CellOverride:
    """Style applied to every cell of a row or column. None means inherit."""
    bold: Optional[bool] = None
    color: Optional[str] = None
    align: Optional[str] = None
    size: Optional[float] = None
    borders: Optional[FrozenSet[str]] = None

    def __post_init__(self):
        if self.borders is not None:
            borders = frozenset(self.borders)
            unknown = borders - BORDER_SIDES
            if unknown:
                raise ValueError(f"unknown border side(s): {sorted(unknown)}")
            object.__setattr__(self, "borders", borders)

    def merged(self, other: Optional["CellOverride"]) -> "CellOverride":
        """Return a copy where other's explicit values win."""
        if other is None:
            return self
        values = {
            name: getattr(other, name)
            for name in ("bold", "color", "align", "size", "borders")
            if getattr(other, name) is not None
        }
        return replace(self, **values)


@dataclass
class TableStyle:
    """Cell styling and pagination thresholds for a table."""
    padding: float = 12.0
    border_color: str = "cccccc"
    border_width: float = 1.0
    font: str = "Helvetica"
    size: float = 12.0
    leading: float = 0.0
    color: str = "000000"
    inline_format: bool = True
    header: bool = True  # Repeat the first row on continuation pages
    margin_top: float = 36.0
    margin_bottom: float = 36.0
    row_styles: Dict[int, CellOverride] = field(default_factory=dict)
    column_styles: Dict[int, CellOverride] = field(default_factory=dict)


@dataclass
class RowPlacement:
    """Where a row was drawn. y_top is relative to the table's box."""
    row_index: int
    page_index: int
    y_top: float
    height: float
    cell_borders: List[FrozenSet[str]]
    repeated_header: bool = False

    @property
    def has_bottom_border(self) -> bool:
        return bool(self.cell_borders) and all("bottom" in b for b in self.cell_borders)


@dataclass
class RenderedTable:
    """Metadata for a rendered table."""
    height: float  # Occupied height summed over all pages
    column_widths: List[float]
    rows: List[RowPlacement]

    @property
    def pages(self) -> List[int]:
        return sorted({row.page_index for row in self.rows})

    @property
    def page_count(self) -> int:
        return len(self.pages)


@dataclass
class _Cell:
    fragments: List[Fragment]
    style: TextStyle
    borders: FrozenSet[str]


def bottom_border_rows(row_count: int) -> range:
    """Rows that receive a bottom border: all but the last two."""
    return range(max(0, row_count - 2))


def normalize_grid(grid: Sequence[Sequence[Any]]) -> List[List[Any]]:
    """Copy the grid, padding short rows with empty cells."""
    rows = [list(row) for row in grid]
    column_count = max((len(row) for row in rows), default=0)
    for row in rows:
        row.extend([""] * (column_count - len(row)))
    return rows


def compute_column_widths(
    total_width: float,
    column_count: int,
    column_widths: Optional[Sequence[Optional[float]]] = None,
) -> List[float]:
    """Distribute the table width over columns.

    Without overrides every column gets an equal share. Overrides may leave
    entries as None to share whatever width the fixed columns leave. When
    every width is fixed they are scaled to fill the table width.
    """
    if column_count == 0:
        return []
    if column_widths is None:
        return [total_width / column_count] * column_count

    if len(column_widths) != column_count:
        raise ValueError(
            f"expected {column_count} column widths, got {len(column_widths)}"
        )
    if any(w is not None and w <= 0 for w in column_widths):
        raise ValueError("column widths must be positive")

    fixed = sum(w for w in column_widths if w is not None)
    auto_count = sum(1 for w in column_widths if w is None)
    if fixed > total_width + 1e-6:
        raise ValueError(f"column widths {fixed:.2f} exceed table width {total_width:.2f}")

    if auto_count == 0:
        scale = total_width / fixed
        return [w * scale for w in column_widths]

    share = (total_width - fixed) / auto_count
    if share <= 0:
        raise ValueError("no width left for auto-sized columns")
    return [share if w is None else float(w) for w in column_widths]


class TableLayout:
    """Draws a grid of cells into the active box of a document."""

    def __init__(self, document: "Document", style: Optional[TableStyle] = None):
        self.document = document
        self.style = style or TableStyle()

    def render(
        self,
        grid: Sequence[Sequence[Any]],
        column_widths: Optional[Sequence[Optional[float]]] = None,
    ) -> RenderedTable:
        """Draw the grid at the current cursor and advance past it."""
        doc = self.document
        box = doc.bounds
        rows = normalize_grid(grid)
        column_count = len(rows[0]) if rows else 0
        widths = compute_column_widths(box.width, column_count, column_widths)

        if not rows or column_count == 0:
            return RenderedTable(height=0.0, column_widths=widths, rows=[])

        bordered = set(bottom_border_rows(len(rows)))
        cells = [
            self._prepare_row(row_index, row, row_index in bordered)
            for row_index, row in enumerate(rows)
        ]
        heights = [self._row_height(row_cells, widths) for row_cells in cells]
        repeat_header = self.style.header and len(rows) > 1

        placements: List[RowPlacement] = []
        occupied = 0.0
        page_top = box.cursor
        fresh_page = False  # True until a body row is drawn on a continuation page

        for row_index, height in enumerate(heights):
            needed = height
            if row_index == 0 and repeat_header:
                # Keep the header with the first body row
                needed += heights[1]

            if not fresh_page and not doc.engine.can_fit(needed, self.style.margin_bottom):
                occupied += box.cursor - page_top
                doc.start_new_page()
                doc.move_down(self.style.margin_top)
                page_top = box.cursor
                fresh_page = True
                logger.debug("Table continues on page %d at row %d", doc.page_index, row_index)

                if repeat_header and row_index > 0:
                    placements.append(
                        self._draw_row(0, cells[0], widths, heights[0], repeated=True)
                    )

            placements.append(self._draw_row(row_index, cells[row_index], widths, height))
            if not (row_index == 0 and repeat_header):
                fresh_page = False

        occupied += box.cursor - page_top
        return RenderedTable(height=occupied, column_widths=widths, rows=placements)

    def _prepare_row(self, row_index: int, row: List[Any], bottom_border: bool) -> List[_Cell]:
        style = self.style
        default = CellOverride(borders=frozenset({"bottom"}) if bottom_border else NO_BORDERS)
        row_override = style.row_styles.get(row_index)

        cells = []
        for col_index, value in enumerate(row):
            override = default.merged(style.column_styles.get(col_index)).merged(row_override)
            runs = as_runs(value, style.inline_format)
            if override.bold:
                runs = (BoldRun(runs),)
            text_style = TextStyle(
                font=style.font,
                size=override.size or style.size,
                leading=style.leading,
                color=override.color or style.color,
                align=override.align or "left",
            )
            cells.append(_Cell(flatten(runs), text_style, override.borders or NO_BORDERS))
        return cells

    def _row_height(self, cells: List[_Cell], widths: List[float]) -> float:
        padding = self.style.padding
        measure = self.document.renderer.measure_text
        content = max(
            measure(cell.fragments, self._text_width(width), cell.style)
            for cell, width in zip(cells, widths)
        )
        return content + 2 * padding

    def _text_width(self, width: float) -> float:
        return max(width - 2 * self.style.padding, 1.0)

    def _draw_row(
        self,
        row_index: int,
        cells: List[_Cell],
        widths: List[float],
        height: float,
        repeated: bool = False,
    ) -> RowPlacement:
        doc = self.document
        box = doc.bounds
        padding = self.style.padding

        # A row taller than the whole page is clipped to what is left
        height = min(height, box.remaining)
        top = box.cursor
        x = 0.0
        for cell, width in zip(cells, widths):
            text_x, text_y = box.to_absolute(x + padding, top + padding)
            doc.renderer.draw_text(
                cell.fragments,
                text_x,
                text_y,
                self._text_width(width),
                cell.style,
                max_height=max(height - 2 * padding, 0.0),
            )
            self._draw_borders(cell.borders, x, top, width, height)
            x += width

        doc.move_down(height)
        return RowPlacement(
            row_index=row_index,
            page_index=doc.page_index,
            y_top=top,
            height=height,
            cell_borders=[cell.borders for cell in cells],
            repeated_header=repeated,
        )

    def _draw_borders(
        self, borders: FrozenSet[str], x: float, top: float, width: float, height: float
    ) -> None:
        box = self.document.bounds
        edges: Dict[str, Tuple[float, float, float, float]] = {
            "top": (x, top, x + width, top),
            "bottom": (x, top + height, x + width, top + height),
            "left": (x, top, x, top + height),
            "right": (x + width, top, x + width, top + height),
        }
        for side in ("top", "bottom", "left", "right"):
            if side not in borders:
                continue
            x1, y1, x2, y2 = edges[side]
            ax1, ay1 = box.to_absolute(x1, y1)
            ax2, ay2 = box.to_absolute(x2, y2)
            self.document.renderer.stroke_line(
                ax1, ay1, ax2, ay2, self.style.border_color, self.style.border_width
            )
