from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union

from reportlab.lib.utils import simpleSplit
from reportlab.pdfbase.pdfmetrics import stringWidth

from .certificate_document import (
    CertificateDocument,
    CriteriaList,
    GradeTable,
    KeyValueBlock,
    Letterhead,
    Paragraph,
    Rule,
    Signature,
    Stamp,
    Title,
)
from .grade_table import COLUMN_WIDTHS, ROW_HEIGHT, TableRow

_MM = 72 / 25.4


def mm(v: float) -> float:
    return v * _MM


PAGE_WIDTH_MM = 210
PAGE_HEIGHT_MM = 330
MARGIN_MM = 20

PAGE_WIDTH = mm(PAGE_WIDTH_MM)
PAGE_HEIGHT = mm(PAGE_HEIGHT_MM)
MARGIN = mm(MARGIN_MM)

FONT_REGULAR = "Helvetica"
FONT_BOLD = "Helvetica-Bold"
LINE_HEIGHT_RATIO = 1.156

HEADER_Y = 35.0
HEADER_HEIGHT = 80.0
LOGO_WIDTH = 60.0
MARK_ARM = 4.0
MARK_COLOR = "#888888"

LABEL_WIDTH = 150.0
COLON_WIDTH = 10.0
FIELD_INDENT = 15.0
FIELD_PITCH = 20.0

STAMP_WIDTH = 200.0
STAMP_HEIGHT = 40.0
STAMP_FONT_SIZE = 16.0

TABLE_FONT_SIZE = 12.0
TABLE_ESTIMATE_EXTRA_ROWS = 5
SIGNATURE_ALLOWANCE = 180.0
SIGNATURE_WIDTH = 200.0
QR_SIZE = 60.0


@dataclass(frozen=True)
class TextOp:
    """One line of text; ``y`` is the top of the line box."""

    x: float
    y: float
    text: str
    font: str
    size: float
    word_spacing: float = 0.0


@dataclass(frozen=True)
class LineOp:
    x1: float
    y1: float
    x2: float
    y2: float
    width: float = 1.0
    color: str = "#000000"


@dataclass(frozen=True)
class RectOp:
    x: float
    y: float
    width: float
    height: float
    line_width: float = 1.0


@dataclass(frozen=True)
class ImageOp:
    """Image placed in a box; ``height=None`` keeps the aspect ratio from ``width``."""

    source: Any
    x: float
    y: float
    width: float
    height: float | None = None
    opacity: float = 1.0
    label: str = ""


@dataclass(frozen=True)
class QrImage:
    payload: str


DrawOp = Union[TextOp, LineOp, RectOp, ImageOp]


@dataclass
class Page:
    number: int
    ops: list[DrawOp] = field(default_factory=list)

    def texts(self) -> list[str]:
        return [op.text for op in self.ops if isinstance(op, TextOp)]


@dataclass
class CertificateLayout:
    document: CertificateDocument
    width: float
    height: float
    pages: list[Page] = field(default_factory=list)
    # name -> (page number, y) of notable positions, e.g. "grade_table"
    anchors: dict[str, tuple[int, float]] = field(default_factory=dict)

    @property
    def page_count(self) -> int:
        return len(self.pages)

    def page_of(self, text: str) -> int | None:
        for page in self.pages:
            if text in page.texts():
                return page.number
        return None


def line_height(size: float) -> float:
    return size * LINE_HEIGHT_RATIO


def wrap_text(text: str, font: str, size: float, width: float) -> list[str]:
    lines: list[str] = []
    for paragraph in text.split("\n"):
        lines.extend(simpleSplit(paragraph, font, size, width) or [""])
    return lines


def text_height(text: str, font: str, size: float, width: float) -> float:
    return len(wrap_text(text, font, size, width)) * line_height(size)


class LayoutEngine:
    """Place a ``CertificateDocument`` on F4 pages with a top-down cursor."""

    def __init__(
        self,
        width: float = PAGE_WIDTH,
        height: float = PAGE_HEIGHT,
        margin: float = MARGIN,
    ):
        self.width = width
        self.height = height
        self.margin = margin
        self.content_width = width - 2 * margin
        self.bottom = height - margin
        self._layout: CertificateLayout | None = None
        self.y = margin

    # page handling ---------------------------------------------------

    @property
    def page(self) -> Page:
        return self._layout.pages[-1]

    def new_page(self) -> None:
        number = len(self._layout.pages) + 1
        self._layout.pages.append(Page(number))
        self._corner_marks()
        self.y = self.margin

    def _corner_marks(self) -> None:
        m = self.margin
        for x, y in (
            (m, m),
            (self.width - m, m),
            (m, self.height - m),
            (self.width - m, self.height - m),
        ):
            self.page.ops.append(
                LineOp(x - MARK_ARM, y, x + MARK_ARM, y, 0.5, MARK_COLOR)
            )
            self.page.ops.append(
                LineOp(x, y - MARK_ARM, x, y + MARK_ARM, 0.5, MARK_COLOR)
            )

    def _anchor(self, name: str) -> None:
        self._layout.anchors[name] = (self.page.number, self.y)

    # text primitives -------------------------------------------------

    def _text(self, x: float, y: float, text: str, font: str, size: float) -> None:
        self.page.ops.append(TextOp(x, y, text, font, size))

    def _centered(self, text: str, y: float, size: float, bold: bool = False) -> None:
        font = FONT_BOLD if bold else FONT_REGULAR
        text_width = stringWidth(text, font, size)
        x = self.margin + (self.content_width - text_width) / 2
        self._text(x, y, text, font, size)

    def _block_text(
        self,
        text: str,
        x: float,
        y: float,
        width: float,
        size: float,
        *,
        font: str = FONT_REGULAR,
        align: str = "left",
    ) -> float:
        """Draw wrapped text starting at ``y`` and return its height."""
        lines = wrap_text(text, font, size, width)
        step = line_height(size)
        space_width = stringWidth(" ", font, size)
        for index, line in enumerate(lines):
            spacing = 0.0
            is_last = index == len(lines) - 1
            gaps = line.count(" ")
            if align == "justify" and not is_last and gaps:
                slack = width - stringWidth(line, font, size)
                spacing = max(slack, 0.0) / gaps
            # leave sparse lines ragged rather than stretched
            if spacing > space_width * 4:
                spacing = 0.0
            self.page.ops.append(
                TextOp(x, y + index * step, line, font, size, word_spacing=spacing)
            )
        return len(lines) * step

    # blocks ----------------------------------------------------------

    def layout(self, document: CertificateDocument) -> CertificateLayout:
        self._layout = CertificateLayout(document, self.width, self.height)
        self.new_page()
        for block in document.blocks:
            handler = getattr(self, f"_place_{type(block).__name__.lower()}")
            handler(block)
        layout, self._layout = self._layout, None
        return layout

    def _place_letterhead(self, block: Letterhead) -> None:
        if block.left_logo:
            self.page.ops.append(
                ImageOp(block.left_logo, self.margin, HEADER_Y, LOGO_WIDTH, label="ministry_logo")
            )
        if block.right_logo:
            self.page.ops.append(
                ImageOp(
                    block.right_logo,
                    self.width - self.margin - LOGO_WIDTH,
                    HEADER_Y,
                    LOGO_WIDTH,
                    label="school_logo",
                )
            )
        self._centered(block.province_line, HEADER_Y, 11, bold=True)
        self._centered(block.agency_line, HEADER_Y + 14, 11, bold=True)
        self._centered(block.school_line, HEADER_Y + 28, 12, bold=True)
        self._centered(block.address_line, HEADER_Y + 42, 9)
        if block.contact_line:
            self._centered(block.contact_line, HEADER_Y + 65, 9)
        self.y = HEADER_Y + HEADER_HEIGHT

    def _place_rule(self, block: Rule) -> None:
        self.page.ops.append(
            LineOp(self.margin, self.y, self.width - self.margin, self.y, block.width)
        )
        self.y += 20

    def _place_title(self, block: Title) -> None:
        self._centered(block.text, self.y, 14, bold=True)
        self._centered(block.number_line, self.y + 20, 12)
        self.y += 45

    def _place_paragraph(self, block: Paragraph) -> None:
        if block.role:
            self._anchor(block.role)
        self.y += self._block_text(
            block.text,
            self.margin,
            self.y,
            self.content_width,
            block.font_size,
            align=block.align,
        )
        self.y += block.space_after

    def _place_criterialist(self, block: CriteriaList) -> None:
        self._anchor("criteria")
        self.y += self._block_text(
            block.heading, self.margin, self.y, self.content_width, 11
        )
        self.y += 10
        indent = self.margin + FIELD_INDENT
        for line in block.lines:
            self.y += self._block_text(
                line, indent, self.y, self.content_width - FIELD_INDENT, 11, align="justify"
            )
            self.y += 8
        self.y += 5

    def _place_keyvalueblock(self, block: KeyValueBlock) -> None:
        label_x = self.margin + FIELD_INDENT
        colon_x = label_x + LABEL_WIDTH
        value_x = colon_x + COLON_WIDTH
        value_width = self.width - self.margin - value_x
        for row in block.rows:
            self._text(label_x, self.y, row.label, FONT_REGULAR, 11)
            self._text(colon_x, self.y, ":", FONT_REGULAR, 11)
            height = self._block_text(
                row.value,
                value_x,
                self.y,
                value_width,
                11,
                font=FONT_BOLD if row.bold else FONT_REGULAR,
            )
            self.y += max(FIELD_PITCH, height)
        self.y += 5

    def _place_stamp(self, block: Stamp) -> None:
        x = (self.width - STAMP_WIDTH) / 2
        self.page.ops.append(RectOp(x, self.y, STAMP_WIDTH, STAMP_HEIGHT, 1.5))
        text_y = self.y + (STAMP_HEIGHT - line_height(STAMP_FONT_SIZE)) / 2
        self._centered(block.text, text_y, STAMP_FONT_SIZE, bold=True)
        self.y += STAMP_HEIGHT + 20

    def _place_gradetable(self, block: GradeTable) -> None:
        estimate = (block.grade_count + TABLE_ESTIMATE_EXTRA_ROWS) * ROW_HEIGHT
        if self.y + estimate > self.bottom:
            self.new_page()
        self._text(self.margin, self.y, block.intro, FONT_REGULAR, 12)
        self.y += 20
        self._anchor("grade_table")
        last = len(block.rows) - 1
        for index, row in enumerate(block.rows):
            self._table_row(row)
            self.y += ROW_HEIGHT
            if index < last and self.y + ROW_HEIGHT > self.bottom:
                self.new_page()
        self.y += 20

    def _table_row(self, row: TableRow) -> None:
        x = self.margin
        column = 0
        for text, span in zip(row.cells, row.spans):
            width = sum(COLUMN_WIDTHS[column:column + span])
            self._table_cell(text, x, width, bold=row.bold)
            x += width
            column += span

    def _table_cell(self, text: str, x: float, width: float, *, bold: bool) -> None:
        self.page.ops.append(RectOp(x, self.y, width, ROW_HEIGHT, 1.0))
        if not text:
            return
        font = FONT_BOLD if bold else FONT_REGULAR
        inner = width - 10
        height = text_height(text, font, TABLE_FONT_SIZE, inner)
        top = self.y + (ROW_HEIGHT - height) / 2
        self._block_text(text, x + 5, top, inner, TABLE_FONT_SIZE, font=font)

    def _place_signature(self, block: Signature) -> None:
        if self.y + SIGNATURE_ALLOWANCE > self.bottom:
            self.new_page()
        else:
            self.y += 40
        self._anchor("signature")
        x = self.width - self.margin - SIGNATURE_WIDTH
        y = self.y
        self._text(x, y, block.place_date, FONT_REGULAR, 12)
        self._text(x, y + 20, block.role_label, FONT_REGULAR, 12)
        if block.qr_payload:
            self.page.ops.append(
                ImageOp(QrImage(block.qr_payload), x, y + 35, QR_SIZE, QR_SIZE, label="qr")
            )
            self._text(x + QR_SIZE + 6, y + 35 + QR_SIZE / 2 - 4, "TTE", FONT_REGULAR, 8)
        else:
            if block.stamp_image:
                self.page.ops.append(
                    ImageOp(block.stamp_image, x + 20, y + 30, 100, 100, opacity=0.8, label="stamp")
                )
            if block.signature_image:
                self.page.ops.append(
                    ImageOp(block.signature_image, x + 20, y + 40, 160, 55, label="signature")
                )
        self._text(x, y + 100, block.name, FONT_BOLD, 12)
        self._text(x, y + 120, block.nip, FONT_REGULAR, 11)
        self.y = y + 120 + line_height(11)


def layout_document(document: CertificateDocument) -> CertificateLayout:
    return LayoutEngine().layout(document)
