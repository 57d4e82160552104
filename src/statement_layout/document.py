"""A document being laid out: box stack, flow primitives and page breaks."""

import logging
from enum import Enum
from typing import Any, ContextManager, Dict, List, Optional, Sequence, Tuple

from .assets import resolve_image
from .config import RenderConfig
from .errors import LayoutInvariantError, TextOverflowError
from .layout_engine import BoundingBox, LayoutEngine, PageLayout
from .markup import ColoredRun, Fragment, as_runs, flatten
from .pdf_renderer import DEFAULT_FONT, FontSource, Renderer, TextStyle
from .table_layout import RenderedTable, TableLayout, TableStyle

logger = logging.getLogger(__name__)

LABEL_SIZE = 8
LABEL_COLOR = "a6a6a6"


class Overflow(Enum):
    """What to do when text is taller than the space it is given."""
    SHRINK_TO_FIT = "shrink_to_fit"  # Reduce font size down to a floor
    TRUNCATE = "truncate"  # Drop the lines that do not fit
    EXPAND = "expand"  # Grow the text box to fit its content


class Document:
    """Lays out content on fixed-size pages through a Renderer.

    Positions passed to the drawing methods are local to the active box.
    They are resolved to page coordinates only when handed to the renderer.
    """

    def __init__(self, renderer: Renderer, config: Optional[RenderConfig] = None):
        self.config = config or RenderConfig()
        self.renderer = renderer
        self.layout = PageLayout(
            page_width=self.config.page_width,
            page_height=self.config.page_height,
            margin=self.config.margin,
        )
        self.engine = LayoutEngine(self.layout, cursor_overflow=self.config.cursor_overflow)
        self.font = DEFAULT_FONT

    # Box stack

    def box(self, x: float, y: float, width: float, height: Optional[float] = None) -> ContextManager[BoundingBox]:
        return self.engine.box(x, y, width, height)

    def push_box(self, x: float, y: float, width: float, height: Optional[float] = None) -> BoundingBox:
        return self.engine.push_box(x, y, width, height)

    def pop_box(self, box: Optional[BoundingBox] = None) -> BoundingBox:
        return self.engine.pop_box(box)

    @property
    def bounds(self) -> BoundingBox:
        return self.engine.bounds

    @property
    def cursor(self) -> float:
        return self.engine.cursor

    @property
    def page_index(self) -> int:
        return self.engine.current_page

    @property
    def page_count(self) -> int:
        return self.engine.current_page + 1

    def move_down(self, amount: float) -> float:
        return self.engine.move_down(amount)

    def move_to(self, y: float) -> float:
        return self.engine.move_to(y)

    def start_new_page(self) -> int:
        self.renderer.new_page()
        page = self.engine.start_new_page()
        logger.debug("Started page %d", page + 1)
        return page

    # Text

    def use_font(self, faces: Dict[str, FontSource]) -> str:
        """Register a custom font family and draw all further text with it."""
        self.font = self.renderer.register_font_family(faces)
        return self.font

    def text_style(
        self,
        size: float = 12.0,
        leading: float = 0.0,
        color: Optional[str] = None,
        align: str = "left",
    ) -> TextStyle:
        return TextStyle(font=self.font, size=size, leading=leading, color=color or "000000", align=align)

    def measure(
        self,
        content: Any,
        size: float = 12.0,
        leading: float = 0.0,
        width: Optional[float] = None,
        inline_format: bool = True,
    ) -> float:
        """Height content would take in the active box (or at width)."""
        fragments = flatten(as_runs(content, inline_format))
        width = self.bounds.width if width is None else width
        return self.renderer.measure_text(fragments, width, self.text_style(size, leading))

    def text(
        self,
        content: Any,
        size: float = 12.0,
        leading: float = 0.0,
        color: Optional[str] = None,
        align: str = "left",
        inline_format: bool = True,
        overflow: Overflow = Overflow.TRUNCATE,
    ) -> float:
        """Flow text at the cursor across the box width; returns its height."""
        box = self.bounds
        fragments = flatten(as_runs(content, inline_format))
        if not fragments:
            return 0.0

        style = self.text_style(size, leading, color, align)
        style, clip = self._fit(fragments, box.width, box.remaining, style, overflow)
        x, y = box.to_absolute(0, box.cursor)
        drawn = self.renderer.draw_text(fragments, x, y, box.width, style, max_height=clip)
        self.move_down(drawn)
        return drawn

    def text_box(
        self,
        content: Any,
        at: Optional[Tuple[float, float]] = None,
        width: Optional[float] = None,
        height: Optional[float] = None,
        size: float = 12.0,
        leading: float = 0.0,
        color: Optional[str] = None,
        align: str = "left",
        inline_format: bool = True,
        overflow: Overflow = Overflow.TRUNCATE,
    ) -> float:
        """Draw text inside an explicit region without moving the cursor.

        ``at`` is the region's top-left corner in the active box and defaults
        to the cursor. The region never extends past the box bottom.
        Returns the drawn height.
        """
        box = self.bounds
        x, y = at if at is not None else (0.0, box.cursor)
        width = box.width - x if width is None else width
        room = max(box.limit - y, 0.0)
        height = room if height is None else min(height, room)

        fragments = flatten(as_runs(content, inline_format))
        if not fragments:
            return 0.0

        style = self.text_style(size, leading, color, align)
        if overflow is Overflow.EXPAND:
            height = min(self.renderer.measure_text(fragments, width, style), room)

        style, clip = self._fit(fragments, width, height, style, overflow)
        abs_x, abs_y = box.to_absolute(x, y)
        drawn = self.renderer.draw_text(fragments, abs_x, abs_y, width, style, max_height=clip)
        box.reach(y + drawn)
        return drawn

    def label(self, content: Any) -> float:
        """Small muted caption text."""
        return self.text(ColoredRun(LABEL_COLOR, as_runs(content)), size=LABEL_SIZE)

    def _fit(
        self,
        fragments: List[Fragment],
        width: float,
        height: float,
        style: TextStyle,
        overflow: Overflow,
    ) -> Tuple[TextStyle, Optional[float]]:
        """Choose the style to draw with and the height to clip to, if any."""
        measure = self.renderer.measure_text
        if measure(fragments, width, style) <= height:
            return style, None

        if overflow is Overflow.SHRINK_TO_FIT:
            size = style.size
            step = self.config.shrink_step
            floor = self.config.min_font_size
            while size - step >= floor - 1e-9:
                size -= step
                candidate = style.with_size(size)
                if measure(fragments, width, candidate) <= height:
                    return candidate, None
            if self.config.overflow_fallback == "raise":
                raise TextOverflowError(
                    f"text does not fit {height:.1f}pt even at {size:.1f}pt"
                )
            logger.warning(
                "Text does not fit %.1fpt at minimum size %.1fpt; truncating", height, size
            )
            return style.with_size(size), height

        return style, height

    # Images

    def image(self, source: Any, height: float) -> float:
        """Draw an image at the cursor scaled to height; returns its width."""
        box = self.bounds
        data = resolve_image(
            source, timeout=self.config.image_timeout, retries=self.config.image_retries
        )
        native_width, native_height = self.renderer.image_size(data)

        advance = height
        if height > box.remaining:
            logger.warning("Image of %.1fpt shrunk to fit %.1fpt", height, box.remaining)
            height = advance = box.remaining
        width = native_width * height / native_height
        if width > box.width:
            width = box.width
            height = native_height * width / native_width

        if height > 0:
            x, y = box.to_absolute(0, box.cursor)
            self.renderer.draw_image(data, x, y, width, height)
        self.move_down(advance)
        return width

    # Tables

    def table_style(self, **overrides: Any) -> TableStyle:
        """Table style seeded from the render configuration."""
        values: Dict[str, Any] = dict(
            padding=self.config.table_padding,
            border_color=self.config.table_border_color,
            font=self.font,
            header=self.config.repeat_table_header,
            margin_top=self.config.table_margin_top,
            margin_bottom=self.config.table_margin_bottom,
        )
        values.update(overrides)
        return TableStyle(**values)

    def table(
        self,
        grid: Sequence[Sequence[Any]],
        column_widths: Optional[Sequence[Optional[float]]] = None,
        style: Optional[TableStyle] = None,
    ) -> RenderedTable:
        """Draw a table at the cursor across the full box width."""
        return TableLayout(self, style or self.table_style()).render(grid, column_widths)

    # Output

    def render(self) -> bytes:
        """Serialize the finished document."""
        if self.engine.depth:
            raise LayoutInvariantError(
                f"cannot render with {self.engine.depth} bounding box(es) still open"
            )
        return self.renderer.save()
