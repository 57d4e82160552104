"""Inline text runs and the small markup vocabulary used in statement fields.

Text is modelled as a tree of runs:

    PlainRun("Total: ")
    ColoredRun("326d92", (BoldRun((PlainRun("$12.00"),)),))

Strings using ``<color rgb='RRGGBB'>``, ``<b>`` and ``<link href='...'>`` are
parsed into the same tree at the boundary. Any other tag is rejected with
MarkupError. Before drawing, the tree is flattened into Fragments that carry
the effective color, weight and link target of each piece of text.
"""

import html
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Union

from .errors import MarkupError


@dataclass(frozen=True)
class PlainRun:
    text: str


@dataclass(frozen=True)
class ColoredRun:
    rgb: str  # Six hex digits, no leading '#'
    children: Tuple["Run", ...]

    def __post_init__(self):
        if not _RGB_RE.fullmatch(self.rgb):
            raise MarkupError(f"invalid rgb color {self.rgb!r}")


@dataclass(frozen=True)
class BoldRun:
    children: Tuple["Run", ...]


@dataclass(frozen=True)
class LinkRun:
    href: str
    children: Tuple["Run", ...]

    def __post_init__(self):
        if not self.href:
            raise MarkupError("link requires a non-empty href")


Run = Union[PlainRun, ColoredRun, BoldRun, LinkRun]
RUN_TYPES = (PlainRun, ColoredRun, BoldRun, LinkRun)


@dataclass(frozen=True)
class Fragment:
    """A piece of text with its resolved inline style."""
    text: str
    color: Optional[str] = None
    bold: bool = False
    href: Optional[str] = None


SUPPORTED_TAGS = ("color", "b", "link")
REQUIRED_ATTRIBUTES = {"color": "rgb", "link": "href", "b": None}

_RGB_RE = re.compile(r"[0-9a-fA-F]{6}")
_TAG_RE = re.compile(
    r"<(/?)([A-Za-z][\w-]*)"
    r"((?:\s+[A-Za-z_][\w-]*\s*=\s*(?:'[^']*'|\"[^\"]*\"))*)"
    r"\s*(/?)>"
)
_ATTR_RE = re.compile(r"([A-Za-z_][\w-]*)\s*=\s*(?:'([^']*)'|\"([^\"]*)\")")
# A tag opener that _TAG_RE could not parse, e.g. with an unquoted attribute
_LOOSE_TAG_RE = re.compile(r"</?[A-Za-z]")


def parse(markup: str) -> Tuple[Run, ...]:
    """Parse a markup string into a tuple of runs."""
    # Each frame is (tag, attributes, children)
    stack: List[Tuple[Optional[str], Dict[str, str], List[Run]]] = [(None, {}, [])]
    pos = 0

    for match in _TAG_RE.finditer(markup):
        _append_text(stack[-1][2], markup[pos:match.start()])
        pos = match.end()

        closing, name, attr_text, self_closing = match.groups()
        name = name.lower()
        if name not in SUPPORTED_TAGS:
            raise MarkupError(f"unsupported tag <{name}> in {markup!r}")
        if self_closing:
            raise MarkupError(f"<{name}/> must wrap content")

        if closing:
            if len(stack) == 1 or stack[-1][0] != name:
                raise MarkupError(f"unexpected </{name}> in {markup!r}")
            tag, attrs, children = stack.pop()
            stack[-1][2].append(_build_run(tag, attrs, children))
        else:
            stack.append((name, _parse_attributes(name, attr_text), []))

    _append_text(stack[-1][2], markup[pos:])

    if len(stack) > 1:
        raise MarkupError(f"unclosed <{stack[-1][0]}> in {markup!r}")
    return tuple(stack[0][2])


def as_runs(content: Any, inline_format: bool = True) -> Tuple[Run, ...]:
    """Coerce text content (string, run, or sequence of runs) into runs."""
    if content is None:
        return ()
    if isinstance(content, RUN_TYPES):
        return (content,)
    if isinstance(content, str):
        if inline_format:
            return parse(content)
        return (PlainRun(content),) if content else ()
    if isinstance(content, (list, tuple)):
        runs = tuple(content)
        for run in runs:
            if not isinstance(run, RUN_TYPES):
                raise TypeError(f"expected a run, got {type(run).__name__}")
        return runs
    return (PlainRun(str(content)),)


def flatten(
    runs: Tuple[Run, ...],
    color: Optional[str] = None,
    bold: bool = False,
    href: Optional[str] = None,
) -> List[Fragment]:
    """Resolve nested runs into a flat list of styled fragments."""
    fragments: List[Fragment] = []
    for run in runs:
        if isinstance(run, PlainRun):
            if run.text:
                fragments.append(Fragment(run.text, color, bold, href))
        elif isinstance(run, ColoredRun):
            fragments.extend(flatten(run.children, run.rgb.lower(), bold, href))
        elif isinstance(run, BoldRun):
            fragments.extend(flatten(run.children, color, True, href))
        elif isinstance(run, LinkRun):
            fragments.extend(flatten(run.children, color, bold, run.href))
        else:
            raise TypeError(f"expected a run, got {type(run).__name__}")
    return fragments


def _append_text(children: List[Run], text: str) -> None:
    loose = _LOOSE_TAG_RE.search(text)
    if loose:
        snippet = text[loose.start():loose.start() + 20]
        raise MarkupError(f"malformed or unsupported tag near {snippet!r}")
    if text:
        children.append(PlainRun(html.unescape(text)))


def _parse_attributes(tag: str, attr_text: str) -> Dict[str, str]:
    attrs = {}
    for match in _ATTR_RE.finditer(attr_text):
        value = match.group(2) if match.group(2) is not None else match.group(3)
        attrs[match.group(1).lower()] = html.unescape(value)

    required = REQUIRED_ATTRIBUTES[tag]
    allowed = {required} if required else set()
    unknown = set(attrs) - allowed
    if unknown:
        raise MarkupError(f"unsupported attribute(s) {sorted(unknown)} on <{tag}>")
    if required and not attrs.get(required):
        raise MarkupError(f"<{tag}> requires a {required} attribute")
    return attrs


def _build_run(tag: str, attrs: Dict[str, str], children: List[Run]) -> Run:
    if tag == "color":
        return ColoredRun(attrs["rgb"].lstrip("#"), tuple(children))
    if tag == "link":
        return LinkRun(attrs["href"], tuple(children))
    return BoldRun(tuple(children))
