"""PDF drawing backend using ReportLab.

The layout engine works in top-down page coordinates: (0, 0) is the top-left
corner of the page and y grows downward. Renderers receive absolute
coordinates in that space and convert them to their own at the boundary.
"""

import hashlib
import io
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Tuple, Union
from xml.sax.saxutils import escape

from reportlab.lib.colors import HexColor
from reportlab.lib.enums import TA_CENTER, TA_LEFT, TA_RIGHT
from reportlab.lib.pagesizes import LETTER
from reportlab.lib.styles import ParagraphStyle
from reportlab.lib.utils import ImageReader
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont
from reportlab.pdfgen import canvas
from reportlab.platypus import Paragraph

from .errors import AssetError
from .markup import Fragment

logger = logging.getLogger(__name__)

# Line height as a multiple of font size, before extra leading
LINE_HEIGHT_FACTOR = 1.2

DEFAULT_FONT = "Helvetica"

ALIGNMENTS = {"left": TA_LEFT, "center": TA_CENTER, "right": TA_RIGHT}

FONT_FACES = ("normal", "bold", "italic", "bold_italic")

FontSource = Union[str, bytes]


@dataclass(frozen=True)
class TextStyle:
    """Font and paragraph settings for one text draw."""
    font: str = DEFAULT_FONT
    size: float = 12.0
    leading: float = 0.0  # Extra space between lines
    color: str = "000000"
    align: str = "left"

    @property
    def line_height(self) -> float:
        return self.size * LINE_HEIGHT_FACTOR + self.leading

    def with_size(self, size: float) -> "TextStyle":
        return replace(self, size=size)


class Renderer(ABC):
    """Drawing capability the layout engine calls into.

    All coordinates are absolute, measured from the top-left corner of the
    page. ``y`` is the top edge of the drawn element.
    """

    page_width: float
    page_height: float

    @abstractmethod
    def measure_text(self, fragments: List[Fragment], width: float, style: TextStyle) -> float:
        """Return the height the fragments occupy when wrapped to width."""

    @abstractmethod
    def draw_text(
        self,
        fragments: List[Fragment],
        x: float,
        y: float,
        width: float,
        style: TextStyle,
        max_height: Optional[float] = None,
    ) -> float:
        """Draw wrapped text, clipped to max_height lines; return drawn height."""

    @abstractmethod
    def image_size(self, data: bytes) -> Tuple[float, float]:
        """Return the native (width, height) of encoded image data."""

    @abstractmethod
    def draw_image(self, data: bytes, x: float, y: float, width: float, height: float) -> None:
        """Draw encoded image data scaled into the given rectangle."""

    @abstractmethod
    def stroke_line(
        self, x1: float, y1: float, x2: float, y2: float, color: str, line_width: float = 1.0
    ) -> None:
        """Stroke a straight line."""

    @abstractmethod
    def new_page(self) -> None:
        """Finish the current page and start a new one of the same size."""

    @abstractmethod
    def register_font_family(self, faces: Dict[str, FontSource]) -> str:
        """Register a font family and return the name to draw with."""

    @abstractmethod
    def save(self) -> bytes:
        """Finish the document and return its serialized bytes."""


def fragments_to_markup(fragments: List[Fragment]) -> str:
    """Convert fragments into ReportLab paragraph markup."""
    parts = []
    for fragment in fragments:
        text = escape(fragment.text).replace("\n", "<br/>")
        if fragment.bold:
            text = f"<b>{text}</b>"
        if fragment.href:
            href = escape(fragment.href, {'"': "&quot;"})
            text = f'<a href="{href}">{text}</a>'
        if fragment.color:
            text = f'<font color="#{fragment.color}">{text}</font>'
        parts.append(text)
    return "".join(parts)


def font_family_name(faces: Dict[str, FontSource]) -> str:
    """Derive a stable family name from the font sources."""
    digest = hashlib.sha1()
    for face in FONT_FACES:
        source = faces.get(face)
        if source is None:
            continue
        digest.update(face.encode())
        digest.update(source if isinstance(source, bytes) else str(source).encode())
    return f"Primary-{digest.hexdigest()[:10]}"


class ReportLabRenderer(Renderer):
    """Renders into an in-memory PDF with a ReportLab canvas."""

    def __init__(self, page_width: float = LETTER[0], page_height: float = LETTER[1]):
        self.page_width = page_width
        self.page_height = page_height
        self.page_count = 1
        self._buffer = io.BytesIO()
        # invariant=1 keeps output byte-identical across runs
        self.canvas = canvas.Canvas(
            self._buffer, pagesize=(page_width, page_height), invariant=1
        )

    def _paragraph(self, fragments: List[Fragment], style: TextStyle) -> Paragraph:
        paragraph_style = ParagraphStyle(
            name="statement",
            fontName=style.font,
            fontSize=style.size,
            leading=style.line_height,
            textColor=HexColor(f"#{style.color}"),
            alignment=ALIGNMENTS.get(style.align, TA_LEFT),
            # Truncation may keep a single line of a longer paragraph
            allowOrphans=1,
            allowWidows=1,
        )
        return Paragraph(fragments_to_markup(fragments), paragraph_style)

    def measure_text(self, fragments: List[Fragment], width: float, style: TextStyle) -> float:
        if not fragments:
            return 0.0
        _, height = self._paragraph(fragments, style).wrap(width, self.page_height)
        return height

    def draw_text(
        self,
        fragments: List[Fragment],
        x: float,
        y: float,
        width: float,
        style: TextStyle,
        max_height: Optional[float] = None,
    ) -> float:
        if not fragments:
            return 0.0

        paragraph = self._paragraph(fragments, style)
        available = self.page_height if max_height is None else max_height
        _, height = paragraph.wrap(width, available)

        if max_height is not None and height > max_height:
            # Keep only the lines that fit
            parts = paragraph.split(width, max_height)
            if not parts:
                return 0.0
            paragraph = parts[0]
            _, height = paragraph.wrap(width, max_height)

        paragraph.drawOn(self.canvas, x, self.page_height - y - height)
        return height

    def image_size(self, data: bytes) -> Tuple[float, float]:
        try:
            reader = ImageReader(io.BytesIO(data))
            width, height = reader.getSize()
            # Decode the pixel data too so a corrupt body fails here
            reader.getRGBData()
        except Exception as exc:
            raise AssetError(f"could not decode image data: {exc}") from exc
        if not width or not height:
            raise AssetError("image has zero width or height")
        return float(width), float(height)

    def draw_image(self, data: bytes, x: float, y: float, width: float, height: float) -> None:
        self.canvas.drawImage(
            ImageReader(io.BytesIO(data)),
            x,
            self.page_height - y - height,
            width=width,
            height=height,
            mask="auto",
        )

    def stroke_line(
        self, x1: float, y1: float, x2: float, y2: float, color: str, line_width: float = 1.0
    ) -> None:
        self.canvas.setStrokeColor(HexColor(f"#{color}"))
        self.canvas.setLineWidth(line_width)
        self.canvas.line(x1, self.page_height - y1, x2, self.page_height - y2)

    def new_page(self) -> None:
        self.canvas.showPage()
        self.page_count += 1

    def register_font_family(self, faces: Dict[str, FontSource]) -> str:
        if not faces.get("normal"):
            raise ValueError("font family requires a 'normal' face")

        family = font_family_name(faces)
        names = {face: f"{family}-{face}" for face in FONT_FACES}
        if names["normal"] in pdfmetrics.getRegisteredFontNames():
            return names["normal"]

        for face in FONT_FACES:
            source = faces.get(face) or faces["normal"]
            if isinstance(source, bytes):
                source = io.BytesIO(source)
            else:
                source = str(source)
            try:
                pdfmetrics.registerFont(TTFont(names[face], source))
            except Exception as exc:
                raise AssetError(f"could not load {face} font face: {exc}") from exc

        # Paragraph markup resolves <b> through the family mapping
        pdfmetrics.registerFontFamily(
            family,
            normal=names["normal"],
            bold=names["bold"],
            italic=names["italic"],
            boldItalic=names["bold_italic"],
        )
        logger.debug("Registered font family %s", family)
        return names["normal"]

    def save(self) -> bytes:
        self.canvas.save()
        return self._buffer.getvalue()
