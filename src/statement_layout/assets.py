"""Resolve image sources (bytes, files, URLs) into encoded image data."""

import logging
from pathlib import Path
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.parse import urlparse
from urllib.request import urlopen

from .errors import AssetError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
DEFAULT_RETRIES = 2
URL_SCHEMES = ("http", "https", "file")


def resolve_image(source: Any, timeout: float = DEFAULT_TIMEOUT, retries: int = DEFAULT_RETRIES) -> bytes:
    """Return the encoded bytes for an image source.

    Raw bytes pass through unchanged. File-like objects are read. Strings
    with an http, https or file scheme are fetched; other strings and Path
    objects are read from disk.
    """
    if isinstance(source, (bytes, bytearray, memoryview)):
        data = bytes(source)
    elif hasattr(source, "read"):
        # Rewind so the same stream can be rendered again
        if getattr(source, "seekable", lambda: False)():
            source.seek(0)
        data = source.read()
        if isinstance(data, str):
            raise AssetError("image stream must be opened in binary mode")
    elif isinstance(source, Path):
        data = _read_file(source)
    elif isinstance(source, str):
        if urlparse(source).scheme.lower() in URL_SCHEMES:
            data = fetch_url(source, timeout=timeout, retries=retries)
        else:
            data = _read_file(Path(source))
    else:
        raise AssetError(f"unsupported image source type: {type(source).__name__}")

    if not data:
        raise AssetError("image source is empty")
    return data


def fetch_url(url: str, timeout: float = DEFAULT_TIMEOUT, retries: int = DEFAULT_RETRIES) -> bytes:
    """Fetch a URL, retrying transient failures a bounded number of times."""
    attempts = retries + 1
    last_error: Exception = AssetError(f"no attempt made to fetch {url}")

    for attempt in range(1, attempts + 1):
        try:
            with urlopen(url, timeout=timeout) as resp:
                return resp.read()
        except HTTPError as exc:
            last_error = exc
            # Client errors will not change on retry
            if exc.code < 500:
                break
        except (URLError, OSError, ValueError) as exc:
            last_error = exc
        logger.warning("Fetching %s failed (attempt %d/%d): %s", url, attempt, attempts, last_error)

    raise AssetError(f"could not fetch image {url}: {last_error}") from last_error


def _read_file(path: Path) -> bytes:
    try:
        return path.read_bytes()
    except OSError as exc:
        raise AssetError(f"could not read image {path}: {exc}") from exc
