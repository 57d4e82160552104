"""Shared fixtures: a recording renderer and sample statement input."""

import math
import struct
import zlib
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional, Tuple

import pytest

from statement_layout.config import RenderConfig
from statement_layout.document import Document
from statement_layout.errors import AssetError
from statement_layout.markup import Fragment, flatten
from statement_layout.pdf_renderer import Renderer, TextStyle


def plain_text(runs) -> str:
    return "".join(fragment.text for fragment in flatten(runs))


def links(runs) -> List[str]:
    targets: List[str] = []
    for fragment in flatten(runs):
        if fragment.href and fragment.href not in targets:
            targets.append(fragment.href)
    return targets


# Fake image data encodes its size: b"IMG <width>x<height>"
def fake_image(width: int, height: int) -> bytes:
    return f"IMG {width}x{height}".encode()


def make_png(width: int = 4, height: int = 2, corrupt_body: bool = False) -> bytes:
    """A real RGB PNG, for tests that decode with ReportLab.

    With corrupt_body the header stays valid but the pixel data is garbage.
    """
    raw = b"".join(b"\x00" + b"\xff\x00\x00" * width for _ in range(height))

    def chunk(tag: bytes, data: bytes) -> bytes:
        crc = zlib.crc32(tag + data) & 0xFFFFFFFF
        return struct.pack(">I", len(data)) + tag + data + struct.pack(">I", crc)

    header = struct.pack(">IIBBBBB", width, height, 8, 2, 0, 0, 0)
    return (
        b"\x89PNG\r\n\x1a\n"
        + chunk(b"IHDR", header)
        + chunk(b"IDAT", b"\x00garbage pixel data" if corrupt_body else zlib.compress(raw))
        + chunk(b"IEND", b"")
    )


@dataclass
class DrawCall:
    kind: str  # "text", "image", "line"
    page: int
    x: float
    y: float
    width: float = 0.0
    height: float = 0.0
    text: str = ""
    style: Optional[TextStyle] = None
    fragments: List[Fragment] = field(default_factory=list)
    end: Optional[Tuple[float, float]] = None


class RecordingRenderer(Renderer):
    """Renderer double with a fixed-width text metric.

    Every character is half the font size wide; lines are
    ``size * 1.2 + leading`` tall.
    """

    def __init__(self, page_width: float = 612, page_height: float = 792):
        self.page_width = page_width
        self.page_height = page_height
        self.page = 0
        self.calls: List[DrawCall] = []
        self.fonts: List[Dict] = []
        self.saved = False

    def line_count(self, fragments: List[Fragment], width: float, style: TextStyle) -> int:
        text = "".join(f.text for f in fragments)
        if not text:
            return 0
        per_line = max(1, int(width // (style.size * 0.5)))
        return sum(max(1, math.ceil(len(line) / per_line)) for line in text.split("\n"))

    def measure_text(self, fragments, width, style):
        return self.line_count(fragments, width, style) * style.line_height

    def draw_text(self, fragments, x, y, width, style, max_height=None):
        lines = self.line_count(fragments, width, style)
        if max_height is not None:
            lines = min(lines, int(max_height // style.line_height))
        height = lines * style.line_height
        if lines:
            self.calls.append(DrawCall(
                kind="text",
                page=self.page,
                x=x,
                y=y,
                width=width,
                height=height,
                text="".join(f.text for f in fragments),
                style=style,
                fragments=list(fragments),
            ))
        return height

    def image_size(self, data):
        if not data.startswith(b"IMG "):
            raise AssetError("not an image")
        width, height = data[4:].decode().split("x")
        return float(width), float(height)

    def draw_image(self, data, x, y, width, height):
        self.calls.append(DrawCall("image", self.page, x, y, width, height))

    def stroke_line(self, x1, y1, x2, y2, color, line_width=1.0):
        self.calls.append(DrawCall("line", self.page, x1, y1, end=(x2, y2)))

    def new_page(self):
        self.page += 1

    def register_font_family(self, faces):
        self.fonts.append(dict(faces))
        return "TestFamily"

    def save(self):
        self.saved = True
        return b"RECORDED %d" % len(self.calls)

    def texts(self) -> List[DrawCall]:
        return [c for c in self.calls if c.kind == "text"]

    def lines(self) -> List[DrawCall]:
        return [c for c in self.calls if c.kind == "line"]

    def images(self) -> List[DrawCall]:
        return [c for c in self.calls if c.kind == "image"]

    def find_text(self, text: str) -> DrawCall:
        for call in self.texts():
            if call.text == text:
                return call
        raise AssertionError(f"no text call for {text!r}")


@pytest.fixture
def renderer():
    return RecordingRenderer()


@pytest.fixture
def config():
    return RenderConfig()


@pytest.fixture
def document(renderer, config):
    return Document(renderer, config)


@pytest.fixture
def attributes():
    return {
        "id": "7",
        "company": {
            "name": "Example Co",
            "address": "1 Market St, Springfield",
            "email": "billing@example.com",
        },
        "bill_to": ["Acme Inc", "123 Main St"],
        "issue_date": date(2025, 2, 1),
        "start_date": date(2025, 1, 1),
        "end_date": date(2025, 1, 31),
        "line_items": [
            ["<b>Date</b>", "<b>Description</b>", "<b>Amount</b>"],
            ["01/05/25", "Subscription", "$19.00"],
            ["01/20/25", "Extra seats", "$10.00"],
            ["", "<b>Total</b>", "<b>$29.00</b>"],
        ],
    }
