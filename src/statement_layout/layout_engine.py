"""Nested bounding boxes and the vertical cursor used to place content."""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple

from reportlab.lib.pagesizes import LETTER

from .errors import LayoutInvariantError

logger = logging.getLogger(__name__)


# Page dimensions
PORTRAIT_SIZE = LETTER  # 612 x 792 points
DEFAULT_MARGIN = 0


@dataclass
class PageLayout:
    """Defines the layout parameters for a page."""
    page_width: float = PORTRAIT_SIZE[0]
    page_height: float = PORTRAIT_SIZE[1]
    margin: float = DEFAULT_MARGIN

    @property
    def content_width(self) -> float:
        return self.page_width - 2 * self.margin

    @property
    def content_height(self) -> float:
        return self.page_height - 2 * self.margin


@dataclass
class BoundingBox:
    """A rectangular region with its own origin and vertical cursor.

    ``x`` and ``y`` are the top-left corner relative to the parent box (or
    the page margin for the outermost box). ``cursor`` is the distance from
    the box top to the next write position. A box without a height is
    stretchy: it may grow down to the bottom of its parent.
    """
    x: float
    y: float
    width: float
    height: Optional[float] = None
    abs_x: float = 0.0
    abs_y: float = 0.0
    limit: float = 0.0  # Largest cursor value allowed
    cursor: float = 0.0
    extent: float = 0.0  # Lowest point reached, relative to the box top

    @property
    def stretchy(self) -> bool:
        return self.height is None

    @property
    def remaining(self) -> float:
        return self.limit - self.cursor

    @property
    def used_height(self) -> float:
        """Height the box occupies in its parent once closed."""
        if self.height is not None:
            return self.height
        return max(self.cursor, self.extent)

    @property
    def bottom(self) -> float:
        """Bottom edge in the parent's coordinates."""
        return self.y + self.used_height

    def to_absolute(self, x: float, y: float) -> Tuple[float, float]:
        return self.abs_x + x, self.abs_y + y

    def reach(self, y: float) -> None:
        """Record that content extends down to local y."""
        self.extent = max(self.extent, min(y, self.limit))


class LayoutEngine:
    """Stack of active bounding boxes for one document."""

    def __init__(self, layout: Optional[PageLayout] = None, cursor_overflow: str = "clamp"):
        self.layout = layout or PageLayout()
        self.cursor_overflow = cursor_overflow
        self.current_page = 0
        self._stack: List[BoundingBox] = []

    @property
    def depth(self) -> int:
        return len(self._stack)

    @property
    def boxes(self) -> List[BoundingBox]:
        return list(self._stack)

    @property
    def bounds(self) -> BoundingBox:
        """The active (innermost) box."""
        if not self._stack:
            raise LayoutInvariantError("no active bounding box")
        return self._stack[-1]

    def push_box(self, x: float, y: float, width: float, height: Optional[float] = None) -> BoundingBox:
        """Open a box at (x, y) in the active box's coordinates."""
        if width <= 0:
            raise ValueError(f"box width must be positive, got {width}")
        if height is not None and height < 0:
            raise ValueError(f"box height must not be negative, got {height}")

        if self._stack:
            parent = self._stack[-1]
            abs_x, abs_y = parent.to_absolute(x, y)
            available = parent.limit - y
        else:
            abs_x, abs_y = self.layout.margin + x, self.layout.margin + y
            available = self.layout.content_height - y

        limit = height if height is not None else max(0.0, available)
        box = BoundingBox(x=x, y=y, width=width, height=height, abs_x=abs_x, abs_y=abs_y, limit=limit)
        self._stack.append(box)
        return box

    def pop_box(self, box: Optional[BoundingBox] = None) -> BoundingBox:
        """Close the active box and move the parent cursor to its bottom."""
        if not self._stack:
            raise LayoutInvariantError("pop with no active bounding box")
        if box is not None and self._stack[-1] is not box:
            raise LayoutInvariantError("popped box is not the innermost active box")

        closed = self._stack.pop()
        if self._stack:
            parent = self._stack[-1]
            parent.cursor = min(closed.bottom, parent.limit)
            parent.reach(parent.cursor)
        return closed

    @contextmanager
    def box(self, x: float, y: float, width: float, height: Optional[float] = None) -> Iterator[BoundingBox]:
        """Run a block with a new active box; the box is always closed."""
        frame = self.push_box(x, y, width, height)
        try:
            yield frame
        finally:
            self.pop_box(frame)

    @property
    def cursor(self) -> float:
        return self.bounds.cursor

    def move_down(self, amount: float) -> float:
        """Advance the active cursor; returns the new cursor."""
        box = self.bounds
        return self.move_to(box.cursor + amount)

    def move_to(self, y: float) -> float:
        """Place the active cursor at local y, keeping it inside the box."""
        box = self.bounds
        if y > box.limit:
            if self.cursor_overflow == "raise":
                raise LayoutInvariantError(
                    f"cursor {y:.2f} is past the box bottom {box.limit:.2f}"
                )
            logger.debug("Clamping cursor %.2f to box bottom %.2f", y, box.limit)
            y = box.limit
        box.cursor = max(0.0, y)
        box.reach(box.cursor)
        return box.cursor

    def to_absolute(self, x: float, y: float) -> Tuple[float, float]:
        """Resolve a point in the active box to page coordinates."""
        return self.bounds.to_absolute(x, y)

    def can_fit(self, height: float, reserve: float = 0.0) -> bool:
        """Check if content of given height fits below the active cursor."""
        return height <= self.bounds.remaining - reserve

    def start_new_page(self) -> int:
        """Move to a new page; every active box restarts at its top.

        Nested boxes keep their x offset but move up to the top of their
        parent, so continued content starts at the top of the page body.
        """
        self.current_page += 1
        for depth, box in enumerate(self._stack):
            if depth:
                parent = self._stack[depth - 1]
                box.y = 0.0
                box.abs_y = parent.abs_y
                if box.stretchy:
                    box.limit = parent.limit
            box.cursor = 0.0
            box.extent = 0.0
        return self.current_page
