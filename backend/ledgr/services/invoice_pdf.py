"""Invoice PDF rendering.

Layout is a fixed, ordered list of sections. Each section is a pure function
``(RenderContext, Cursor) -> (ops, Cursor)`` producing draw operations in
top-down page coordinates; a reportlab painter turns the operations into bytes.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date, datetime
from decimal import Decimal
from io import BytesIO
from typing import Callable, List, Optional, Sequence, Tuple, Union

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.utils import simpleSplit
from reportlab.pdfgen import canvas

from ledgr.core.errors import RenderFailed
from ledgr.schemas.invoice import InvoiceSnapshot
from ledgr.services.money import HUNDRED, Totals, compute_totals


logger = logging.getLogger(__name__)

PAGE_WIDTH, PAGE_HEIGHT = A4
MARGIN = 50.0
CONTENT_BOTTOM = PAGE_HEIGHT - 70

ACCENT = "#0ea5e9"
HEADER_SHADE = "#f1f5f9"
STRIPE = "#fafafa"
RULE = "#e5e7eb"
MUTED = "#444444"
INK = "#111111"
BLACK = "#000000"
WHITE = "#ffffff"
FOOTER_INK = "#666666"

DEFAULT_BRAND = "Ledgr"
BILL_TO_X = 320.0
COL_QTY_X = 300.0
COL_RATE_X = 360.0
COL_AMOUNT_X = 450.0
SUMMARY_X = 330.0
ROW_HEIGHT = 18.0

CURRENCY_SYMBOLS = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
}


# ============ DRAW OPERATIONS ============


@dataclass(frozen=True)
class Text:
    x: float
    y: float
    text: str
    size: float = 10
    color: str = BLACK
    bold: bool = False
    align: str = "left"
    width: Optional[float] = None
    underline: bool = False


@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    width: float
    height: float
    fill: str
    radius: float = 0
    stroke: Optional[str] = None
    line_width: float = 1


@dataclass(frozen=True)
class Line:
    x1: float
    y1: float
    x2: float
    y2: float
    color: str = RULE
    line_width: float = 1


@dataclass(frozen=True)
class PageBreak:
    pass


DrawOp = Union[Text, Rect, Line, PageBreak]


@dataclass(frozen=True)
class Cursor:
    y: float
    page: int = 1


@dataclass(frozen=True)
class Branding:
    name: Optional[str] = None


@dataclass(frozen=True)
class RenderContext:
    invoice: InvoiceSnapshot
    brand_name: str
    currency: str
    totals: Optional[Totals]
    subtotal: Decimal
    tax: Decimal
    total: Decimal


Section = Callable[[RenderContext, Cursor], Tuple[List[DrawOp], Cursor]]


# ============ FORMATTING ============


def format_currency(value: Decimal, currency: str) -> str:
    code = (currency or "").upper()
    number = f"{abs(value):,.2f}"
    sign = "-" if value < 0 else ""
    symbol = CURRENCY_SYMBOLS.get(code)
    if symbol:
        return f"{sign}{symbol}{number}"
    return f"{sign}{code} {number}"


def format_number(value: float) -> str:
    """Render 2.0 as "2" and 7.5 as "7.5"."""
    if float(value).is_integer():
        return str(int(value))
    return str(value)


def format_date(value: Union[date, datetime]) -> str:
    return f"{value.month}/{value.day}/{value.year}"


def _wrap(text: str, width: float, size: float, bold: bool = False) -> List[str]:
    font = "Helvetica-Bold" if bold else "Helvetica"
    lines: List[str] = []
    for paragraph in text.splitlines() or [""]:
        lines.extend(simpleSplit(paragraph, font, size, width) or [""])
    return lines


def _line_height(size: float) -> float:
    return size * 1.25


def _ensure_room(cursor: Cursor, needed: float) -> Tuple[List[DrawOp], Cursor]:
    if cursor.y + needed <= CONTENT_BOTTOM:
        return [], cursor
    return [PageBreak()], Cursor(y=MARGIN, page=cursor.page + 1)


def _paragraph(
    lines: Sequence[str],
    x: float,
    y: float,
    *,
    size: float,
    color: str = BLACK,
) -> Tuple[List[DrawOp], float]:
    ops: List[DrawOp] = []
    for line in lines:
        ops.append(Text(x, y, line, size=size, color=color))
        y += _line_height(size)
    return ops, y


# ============ CONTEXT ============


def build_context(invoice: InvoiceSnapshot, branding: Optional[Branding] = None) -> RenderContext:
    currency = (invoice.currency or "").upper()
    brand_name = (branding.name if branding else None) or DEFAULT_BRAND

    if invoice.items:
        totals = compute_totals(invoice.items, invoice.tax_rate or 0)
        if totals.total_minor_units != invoice.amount:
            logger.warning(
                "invoice_amount_mismatch",
                extra={"invoice_id": invoice.id, "user_id": invoice.user_id},
            )
        return RenderContext(
            invoice=invoice,
            brand_name=brand_name,
            currency=currency,
            totals=totals,
            subtotal=Decimal(totals.subtotal_minor_units) / HUNDRED,
            tax=Decimal(totals.tax_minor_units) / HUNDRED,
            total=Decimal(totals.total_minor_units) / HUNDRED,
        )

    return RenderContext(
        invoice=invoice,
        brand_name=brand_name,
        currency=currency,
        totals=None,
        subtotal=Decimal("0"),
        tax=Decimal("0"),
        total=Decimal(invoice.amount) / HUNDRED,
    )


# ============ SECTIONS ============


def header_section(ctx: RenderContext, cursor: Cursor) -> Tuple[List[DrawOp], Cursor]:
    ops: List[DrawOp] = [
        Rect(0, 0, PAGE_WIDTH, 60, fill=ACCENT),
        Text(MARGIN, 20, "INVOICE", size=22, color=WHITE, bold=True),
        Text(MARGIN, 22, ctx.brand_name, size=12, color=WHITE, align="right", width=PAGE_WIDTH - MARGIN * 2),
    ]
    return ops, replace(cursor, y=80)


def meta_section(ctx: RenderContext, cursor: Cursor) -> Tuple[List[DrawOp], Cursor]:
    invoice = ctx.invoice
    lines = [
        f"Invoice ID: {invoice.id}",
        f"Date: {format_date(invoice.created_at)}",
        f"Status: {invoice.status}",
    ]
    ops, y = _paragraph(lines, MARGIN, cursor.y, size=10, color=MUTED)
    return ops, replace(cursor, y=y + 12)


def parties_section(ctx: RenderContext, cursor: Cursor) -> Tuple[List[DrawOp], Cursor]:
    invoice = ctx.invoice
    top = cursor.y
    left_width = BILL_TO_X - MARGIN - 20
    right_width = PAGE_WIDTH - MARGIN - BILL_TO_X

    ops: List[DrawOp] = [Text(MARGIN, top, "From", size=12, color=INK, underline=True)]
    left_y = top + _line_height(12)
    ops.append(Text(MARGIN, left_y, invoice.company_name or ctx.brand_name, size=11))
    left_y += _line_height(11)
    if invoice.company_address:
        more, left_y = _paragraph(_wrap(invoice.company_address, left_width, 10), MARGIN, left_y, size=10, color=MUTED)
        ops.extend(more)

    ops.append(Text(BILL_TO_X, top, "Bill To", size=12, color=INK, underline=True))
    right_y = top + _line_height(12)
    for line in _wrap(invoice.customer, right_width, 11):
        ops.append(Text(BILL_TO_X, right_y, line, size=11))
        right_y += _line_height(11)
    for extra in (invoice.client_email, invoice.client_address):
        if extra:
            more, right_y = _paragraph(_wrap(extra, right_width, 10), BILL_TO_X, right_y, size=10, color=MUTED)
            ops.extend(more)

    return ops, replace(cursor, y=max(left_y, right_y) + 14)


def dates_section(ctx: RenderContext, cursor: Cursor) -> Tuple[List[DrawOp], Cursor]:
    invoice = ctx.invoice
    if not (invoice.issue_date or invoice.due_date):
        return [], cursor
    ops: List[DrawOp] = [Text(MARGIN, cursor.y, "Dates", size=12, underline=True)]
    y = cursor.y + _line_height(12) + 2
    if invoice.issue_date:
        ops.append(Text(MARGIN, y, f"Issue Date: {format_date(invoice.issue_date)}", size=11))
        y += _line_height(11)
    if invoice.due_date:
        ops.append(Text(MARGIN, y, f"Due Date: {format_date(invoice.due_date)}", size=11))
        y += _line_height(11)
    return ops, replace(cursor, y=y + 12)


def _items_header(y: float) -> List[DrawOp]:
    return [
        Rect(MARGIN, y - 4, PAGE_WIDTH - MARGIN * 2, 20, fill=HEADER_SHADE),
        Text(MARGIN + 5, y, "Description", size=10, color=INK, bold=True),
        Text(COL_QTY_X, y, "Qty", size=10, color=INK, bold=True),
        Text(COL_RATE_X, y, "Rate", size=10, color=INK, bold=True),
        Text(COL_AMOUNT_X, y, "Amount", size=10, color=INK, bold=True),
        Line(MARGIN, y + 18, PAGE_WIDTH - MARGIN, y + 18, color=RULE),
    ]


def items_section(ctx: RenderContext, cursor: Cursor) -> Tuple[List[DrawOp], Cursor]:
    items = ctx.invoice.items or []
    if not items:
        return [], cursor

    ops, cursor = _ensure_room(cursor, _line_height(12) + 6 + 24 + ROW_HEIGHT)
    ops.append(Text(MARGIN, cursor.y, "Items", size=12, underline=True))
    y = cursor.y + _line_height(12) + 6
    ops.extend(_items_header(y))
    y += 24

    for index, item in enumerate(items):
        description = _wrap(item.description, COL_QTY_X - MARGIN - 15, 10)
        row_height = max(ROW_HEIGHT, len(description) * _line_height(10) + 3)
        if y + row_height > CONTENT_BOTTOM:
            ops.append(PageBreak())
            cursor = Cursor(y=MARGIN, page=cursor.page + 1)
            ops.extend(_items_header(cursor.y))
            y = cursor.y + 24
        if index % 2 == 1:
            ops.append(Rect(MARGIN, y - 2, PAGE_WIDTH - MARGIN * 2, row_height, fill=STRIPE))
        line_amount = Decimal(str(item.quantity)) * Decimal(str(item.rate))
        text_ops, _ = _paragraph(description, MARGIN + 5, y, size=10)
        ops.extend(text_ops)
        ops.append(Text(COL_QTY_X, y, format_number(item.quantity), size=10))
        ops.append(Text(COL_RATE_X, y, format_currency(Decimal(str(item.rate)), ctx.currency), size=10))
        ops.append(Text(COL_AMOUNT_X, y, format_currency(line_amount, ctx.currency), size=10))
        y += row_height

    return ops, replace(cursor, y=y + 12)


def summary_section(ctx: RenderContext, cursor: Cursor) -> Tuple[List[DrawOp], Cursor]:
    height = 96.0 if ctx.totals else 68.0
    ops, cursor = _ensure_room(cursor, height)
    x = SUMMARY_X
    y = cursor.y
    ops.extend(
        [
            Rect(x, y, PAGE_WIDTH - MARGIN - x, height, fill=WHITE, radius=6, stroke=RULE, line_width=0.5),
            Text(x + 10, y + 10, "Summary", size=12, color=INK, bold=True),
            Text(x + 10, y + 28, f"Currency: {ctx.currency}", size=10),
        ]
    )
    total_y = y + 44
    if ctx.totals:
        tax_rate = format_number(ctx.invoice.tax_rate or 0)
        ops.append(Text(x + 10, y + 42, f"Subtotal: {format_currency(ctx.subtotal, ctx.currency)}", size=10))
        ops.append(Text(x + 10, y + 56, f"Tax ({tax_rate}%): {format_currency(ctx.tax, ctx.currency)}", size=10))
        total_y = y + 72
    ops.append(Text(x + 10, total_y, f"Total: {format_currency(ctx.total, ctx.currency)}", size=12, color=ACCENT, bold=True))
    return ops, replace(cursor, y=y + height + 24)


def notes_section(ctx: RenderContext, cursor: Cursor) -> Tuple[List[DrawOp], Cursor]:
    notes = ctx.invoice.notes
    if not notes:
        return [], cursor
    lines = _wrap(notes, PAGE_WIDTH - MARGIN * 2, 10)
    ops, cursor = _ensure_room(cursor, _line_height(12) + 4 + _line_height(10))
    ops.append(Text(MARGIN, cursor.y, "Notes", size=12, underline=True))
    y = cursor.y + _line_height(12) + 4
    for line in lines:
        if y + _line_height(10) > CONTENT_BOTTOM:
            ops.append(PageBreak())
            cursor = Cursor(y=MARGIN, page=cursor.page + 1)
            y = cursor.y
        ops.append(Text(MARGIN, y, line, size=10, color=MUTED))
        y += _line_height(10)
    return ops, replace(cursor, y=y + 12)


def footer_section(ctx: RenderContext, cursor: Cursor) -> Tuple[List[DrawOp], Cursor]:
    rule_y = PAGE_HEIGHT - 60
    ops: List[DrawOp] = [
        Line(MARGIN, rule_y, PAGE_WIDTH - MARGIN, rule_y, color=RULE),
        Text(
            MARGIN,
            PAGE_HEIGHT - 50,
            f"Generated by {DEFAULT_BRAND}",
            size=9,
            color=FOOTER_INK,
            align="center",
            width=PAGE_WIDTH - MARGIN * 2,
        ),
    ]
    return ops, cursor


SECTIONS: Tuple[Section, ...] = (
    header_section,
    meta_section,
    parties_section,
    dates_section,
    items_section,
    summary_section,
    notes_section,
    footer_section,
)


def layout(ctx: RenderContext) -> List[DrawOp]:
    ops: List[DrawOp] = []
    cursor = Cursor(y=0)
    for section in SECTIONS:
        section_ops, cursor = section(ctx, cursor)
        ops.extend(section_ops)
    return ops


# ============ PAINTER ============


def _to_pdf_y(y: float) -> float:
    return PAGE_HEIGHT - y


def _paint_text(c: canvas.Canvas, op: Text) -> None:
    font = "Helvetica-Bold" if op.bold else "Helvetica"
    c.setFont(font, op.size)
    c.setFillColor(colors.HexColor(op.color))
    baseline = _to_pdf_y(op.y + op.size * 0.8)
    if op.align == "right" and op.width is not None:
        c.drawRightString(op.x + op.width, baseline, op.text)
        start = op.x + op.width - c.stringWidth(op.text, font, op.size)
    elif op.align == "center" and op.width is not None:
        c.drawCentredString(op.x + op.width / 2, baseline, op.text)
        start = op.x + (op.width - c.stringWidth(op.text, font, op.size)) / 2
    else:
        c.drawString(op.x, baseline, op.text)
        start = op.x
    if op.underline:
        c.setStrokeColor(colors.HexColor(op.color))
        c.setLineWidth(0.6)
        under = baseline - 1.5
        c.line(start, under, start + c.stringWidth(op.text, font, op.size), under)


def _paint_rect(c: canvas.Canvas, op: Rect) -> None:
    c.setFillColor(colors.HexColor(op.fill))
    bottom = _to_pdf_y(op.y + op.height)
    stroke = 0
    if op.stroke:
        c.setStrokeColor(colors.HexColor(op.stroke))
        c.setLineWidth(op.line_width)
        stroke = 1
    if op.radius:
        c.roundRect(op.x, bottom, op.width, op.height, op.radius, stroke=stroke, fill=1)
    else:
        c.rect(op.x, bottom, op.width, op.height, stroke=stroke, fill=1)


def _paint_line(c: canvas.Canvas, op: Line) -> None:
    c.setStrokeColor(colors.HexColor(op.color))
    c.setLineWidth(op.line_width)
    c.line(op.x1, _to_pdf_y(op.y1), op.x2, _to_pdf_y(op.y2))


def paint(ops: Sequence[DrawOp], *, title: str) -> bytes:
    buffer = BytesIO()
    c = canvas.Canvas(buffer, pagesize=A4, invariant=1)
    c.setTitle(title)
    c.setAuthor(DEFAULT_BRAND)
    for op in ops:
        if isinstance(op, Text):
            _paint_text(c, op)
        elif isinstance(op, Rect):
            _paint_rect(c, op)
        elif isinstance(op, Line):
            _paint_line(c, op)
        elif isinstance(op, PageBreak):
            c.showPage()
    c.showPage()
    c.save()
    return buffer.getvalue()


def render_invoice_pdf(invoice: InvoiceSnapshot, branding: Optional[Branding] = None) -> bytes:
    """Render ``invoice`` to PDF bytes entirely in memory."""
    try:
        ctx = build_context(invoice, branding)
        return paint(layout(ctx), title=f"Invoice {invoice.id}")
    except RenderFailed:
        raise
    except Exception as exc:
        logger.exception("pdf_render_failed", extra={"invoice_id": invoice.id})
        raise RenderFailed() from exc
