"""Configuration dataclass and YAML loading for the renderer."""

from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Optional
import yaml


OVERFLOW_FALLBACKS = ("truncate", "raise")
CURSOR_OVERFLOW_POLICIES = ("clamp", "raise")


@dataclass
class RenderConfig:
    """Tunable parameters for rendering a statement."""

    # Page geometry (US Letter at 72 dpi, no outer margin)
    page_width: float = 612.0
    page_height: float = 792.0
    margin: float = 0.0
    content_inset: float = 85.0  # Left/right inset of the content box

    # Image fetching
    image_timeout: float = 30.0  # Seconds per attempt
    image_retries: int = 2  # Extra attempts after the first one

    # Text overflow
    min_font_size: float = 5.0
    shrink_step: float = 0.5
    overflow_fallback: str = "truncate"  # "truncate" or "raise"
    cursor_overflow: str = "clamp"  # "clamp" or "raise"

    # Itemized table
    table_padding: float = 12.0
    table_border_color: str = "cccccc"
    table_margin_top: float = 36.0  # Offset at the top of a continuation page
    table_margin_bottom: float = 36.0  # Space kept free at the page bottom
    repeat_table_header: bool = True

    def __post_init__(self):
        if self.overflow_fallback not in OVERFLOW_FALLBACKS:
            raise ValueError(
                f"overflow_fallback must be one of {OVERFLOW_FALLBACKS}, "
                f"got {self.overflow_fallback!r}"
            )
        if self.cursor_overflow not in CURSOR_OVERFLOW_POLICIES:
            raise ValueError(
                f"cursor_overflow must be one of {CURSOR_OVERFLOW_POLICIES}, "
                f"got {self.cursor_overflow!r}"
            )
        if self.page_width <= 0 or self.page_height <= 0:
            raise ValueError("page dimensions must be positive")
        if 2 * self.content_inset >= self.page_width:
            raise ValueError("content_inset leaves no room for content")
        if self.image_timeout <= 0:
            raise ValueError("image_timeout must be positive")
        if self.image_retries < 0:
            raise ValueError("image_retries must not be negative")
        if self.shrink_step <= 0:
            raise ValueError("shrink_step must be positive")

    @property
    def content_width(self) -> float:
        return self.page_width - 2 * self.content_inset

    @classmethod
    def from_yaml(cls, path: Path) -> "RenderConfig":
        """Load configuration from a YAML file."""
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
        return cls(**data)

    def to_yaml(self, path: Path) -> None:
        """Save configuration to a YAML file."""
        with open(path, "w") as f:
            yaml.dump(asdict(self), f, default_flow_style=False, sort_keys=False)


def load_config(path: Optional[Path] = None) -> RenderConfig:
    """Load config from path or return default config."""
    if path is None:
        return RenderConfig()
    return RenderConfig.from_yaml(path)
