"""Statement document: input validation, default fields and page composition."""

import logging
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple, Union

from .config import RenderConfig
from .document import Document, Overflow
from .errors import MissingRequiredField
from .markup import BoldRun, ColoredRun, LinkRun, PlainRun, Run, as_runs
from .pdf_renderer import FONT_FACES, FontSource, ReportLabRenderer, Renderer

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("id", "company", "line_items", "bill_to", "issue_date", "start_date", "end_date")
COMPANY_FIELDS = ("name", "address", "email")

LINK_COLOR = "326d92"
ADDRESS_COLOR = "888888"

# Replaced with the statement id in a supplied subheading
ID_PLACEHOLDERS = ("%<id>s", "{id}")

# Header geometry (points)
HEADER_TOP = 60
LOGO_HEIGHT = 32
ADDRESS_WIDTH = 200
ADDRESS_HEIGHT = 75
DETAILS_X = 250
DETAILS_WIDTH = 200
SECTION_GAP = 30


def is_present(value: Any) -> bool:
    """False for None, blank strings and empty collections."""
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (list, tuple, dict, set, frozenset)):
        return len(value) > 0
    return True


def display(value: Any) -> str:
    """Text for a scalar field; dates use ISO format, None is empty."""
    if value is None:
        return ""
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def default_message(email: Optional[str], statement_id: Any) -> Tuple[Run, ...]:
    if not is_present(email):
        return ()
    email = display(email)
    href = f"mailto:{email}?subject=Charge #{display(statement_id)}"
    return (
        PlainRun("For questions, contact us anytime at "),
        ColoredRun(LINK_COLOR, (LinkRun(href, (BoldRun((PlainRun(email),)),)),)),
        PlainRun("."),
    )


def default_subheading(statement_id: Any) -> str:
    if is_present(statement_id):
        return f"STATEMENT #{display(statement_id)}"
    return ""


def format_subheading(template: Any, statement_id: Any) -> str:
    """Substitute the statement id for %<id>s or {id} in a subheading."""
    text = display(template)
    for placeholder in ID_PLACEHOLDERS:
        text = text.replace(placeholder, display(statement_id))
    return text


def default_statement_date_text(issue_date: Any) -> str:
    return "STATEMENT DATE" if is_present(issue_date) else ""


def default_statement_period_text(start_date: Any, end_date: Any) -> str:
    if is_present(start_date) and is_present(end_date):
        return "STATEMENT PERIOD"
    return ""


@dataclass(frozen=True)
class Company:
    name: str
    address: str
    email: Optional[str] = None
    logo: Any = None  # bytes, file-like, path or URL

    @classmethod
    def from_mapping(cls, company: Any) -> "Company":
        if not isinstance(company, Mapping):
            raise MissingRequiredField("company")
        for key in COMPANY_FIELDS:
            if key not in company:
                raise MissingRequiredField(f"company.{key}")
        return cls(
            name=display(company["name"]),
            address=display(company["address"]),
            email=company["email"],
            logo=company.get("logo"),
        )


@dataclass(frozen=True)
class StatementData:
    """Validated statement input with every optional field resolved."""
    id: Any
    company: Company
    line_items: Tuple[Tuple[Any, ...], ...]
    bill_to: str
    issue_date: Any
    start_date: Any
    end_date: Any
    message: Tuple[Run, ...]
    subheading: str
    statement_date_text: str
    statement_period_text: str
    font: Optional[Dict[str, FontSource]] = None

    @property
    def period(self) -> str:
        return f"{display(self.start_date)} - {display(self.end_date)}"

    @classmethod
    def from_attributes(cls, attributes: Mapping[str, Any]) -> "StatementData":
        """Validate attributes and resolve defaults once.

        Required keys must be present (their value may be None). Optional
        text fields that are supplied, even as empty strings, are kept as is.
        """
        for key in REQUIRED_FIELDS:
            if key not in attributes:
                raise MissingRequiredField(key)
        if attributes["line_items"] is None:
            raise MissingRequiredField("line_items")

        statement_id = attributes["id"]
        company = Company.from_mapping(attributes["company"])
        issue_date = attributes["issue_date"]
        start_date = attributes["start_date"]
        end_date = attributes["end_date"]

        if "message" in attributes:
            message = as_runs(attributes["message"])
        else:
            message = default_message(company.email, statement_id)

        data = cls(
            id=statement_id,
            company=company,
            line_items=tuple(tuple(row) for row in attributes["line_items"]),
            bill_to="\n".join(display(line) for line in _lines(attributes["bill_to"])),
            issue_date=issue_date,
            start_date=start_date,
            end_date=end_date,
            message=message,
            subheading=(
                format_subheading(attributes["subheading"], statement_id)
                if "subheading" in attributes
                else default_subheading(statement_id)
            ),
            statement_date_text=_resolve(
                attributes, "statement_date_text", lambda: default_statement_date_text(issue_date)
            ),
            statement_period_text=_resolve(
                attributes,
                "statement_period_text",
                lambda: default_statement_period_text(start_date, end_date),
            ),
            font=_font_faces(attributes.get("font")),
        )
        data._check_markup()
        return data

    def _check_markup(self) -> None:
        """Parse every markup field now so bad tags fail before drawing."""
        fields = [
            self.bill_to,
            self.subheading,
            self.statement_date_text,
            self.statement_period_text,
            self.company.name,
            self.company.address,
        ]
        fields.extend(cell for row in self.line_items for cell in row if isinstance(cell, str))
        for value in fields:
            as_runs(value)


def _resolve(attributes: Mapping[str, Any], key: str, default) -> str:
    if key in attributes:
        return display(attributes[key])
    return default()


def _lines(bill_to: Any) -> Sequence[Any]:
    if bill_to is None:
        return []
    if isinstance(bill_to, (list, tuple)):
        return bill_to
    return [bill_to]


def _font_faces(font: Any) -> Optional[Dict[str, FontSource]]:
    if not font:
        return None
    unknown = set(font) - set(FONT_FACES)
    if unknown:
        raise ValueError(f"unknown font face(s): {sorted(unknown)}")
    if "normal" not in font:
        raise MissingRequiredField("font.normal")
    return dict(font)


class StatementComposer:
    """Lays out the header, charge details and footer of one statement."""

    def __init__(self, document: Document, data: StatementData):
        self.document = document
        self.data = data

    def compose(self) -> None:
        doc = self.document
        config = doc.config
        with doc.box(0, 0, config.page_width, config.page_height):
            with doc.box(config.content_inset, 0, config.content_width, config.page_height):
                self.header()
                self.charge_details()
                self.footer()

    def header(self) -> None:
        doc = self.document
        doc.move_down(HEADER_TOP)

        logo = self.data.company.logo
        if logo is None:
            doc.move_down(LOGO_HEIGHT)
        else:
            doc.image(logo, height=LOGO_HEIGHT)

        doc.move_down(8)
        doc.label(self.data.subheading)
        doc.move_down(10)

        # Both columns start at the same height
        top = doc.cursor
        with doc.box(0, top, ADDRESS_WIDTH) as left:
            doc.move_down(5)
            doc.text_box(
                self.data.bill_to,
                at=(0, doc.cursor),
                width=ADDRESS_WIDTH,
                height=ADDRESS_HEIGHT,
                size=10,
                leading=4,
                overflow=Overflow.SHRINK_TO_FIT,
            )

        with doc.box(DETAILS_X, top, DETAILS_WIDTH) as right:
            doc.label(self.data.statement_date_text)
            doc.move_down(5)
            doc.text(display(self.data.issue_date), size=12, leading=4)
            doc.move_down(10)
            doc.label(self.data.statement_period_text)
            doc.move_down(5)
            doc.text(self.data.period, size=12, leading=4)

        doc.move_to(max(left.bottom, right.bottom))

    def charge_details(self) -> None:
        doc = self.document
        doc.move_down(SECTION_GAP)
        doc.table(self.data.line_items)

    def footer(self) -> None:
        doc = self.document
        # Keep the footer together on one page
        if not doc.engine.can_fit(self._footer_height()):
            doc.start_new_page()
            doc.move_down(doc.config.table_margin_top)

        doc.move_down(SECTION_GAP)
        doc.text(self.data.message, size=12, leading=4)

        doc.move_down(SECTION_GAP)
        doc.text(self.data.company.name)
        doc.text(ColoredRun(ADDRESS_COLOR, as_runs(self.data.company.address)))

    def _footer_height(self) -> float:
        doc = self.document
        return (
            2 * SECTION_GAP
            + doc.measure(self.data.message, size=12, leading=4)
            + doc.measure(self.data.company.name)
            + doc.measure(self.data.company.address)
        )


class Statement:
    """A statement ready to render.

    Attributes are validated and defaults resolved on construction, so a
    missing field fails before anything is drawn. Each call to render()
    draws into a fresh renderer unless one was supplied.
    """

    def __init__(
        self,
        attributes: Mapping[str, Any],
        config: Optional[RenderConfig] = None,
        renderer: Optional[Renderer] = None,
    ):
        self.config = config or RenderConfig()
        self.data = StatementData.from_attributes(attributes)
        self._renderer = renderer

    def render(self) -> bytes:
        renderer = self._renderer or ReportLabRenderer(self.config.page_width, self.config.page_height)
        document = Document(renderer, self.config)
        if self.data.font:
            document.use_font(self.data.font)
        StatementComposer(document, self.data).compose()
        logger.debug("Rendered statement %s on %d page(s)", display(self.data.id), document.page_count)
        return document.render()

    def render_file(self, path: Union[str, Path]) -> Path:
        path = Path(path)
        path.write_bytes(self.render())
        return path


def render_statement(
    attributes: Mapping[str, Any],
    config: Optional[RenderConfig] = None,
    renderer: Optional[Renderer] = None,
) -> bytes:
    """Validate attributes and render them into a document."""
    return Statement(attributes, config=config, renderer=renderer).render()
