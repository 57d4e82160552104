"""Exception types raised while building and rendering a statement."""


class StatementError(Exception):
    """Base class for all statement rendering errors."""


class MissingRequiredField(StatementError, ValueError):
    """A required construction attribute was not supplied."""

    def __init__(self, field: str):
        self.field = field
        super().__init__(f"missing required field: {field}")


class AssetError(StatementError):
    """An image source could not be fetched or decoded."""


class MarkupError(StatementError, ValueError):
    """Inline markup uses an unsupported tag or is malformed."""


class TextOverflowError(StatementError):
    """Text does not fit its box even at the minimum font size."""


class LayoutInvariantError(StatementError, RuntimeError):
    """The bounding box stack was used incorrectly."""
