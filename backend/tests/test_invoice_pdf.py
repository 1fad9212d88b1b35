from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from ledgr.core.errors import RenderFailed
from ledgr.schemas.invoice import InvoiceSnapshot, LineItem
from ledgr.services import invoice_pdf
from ledgr.services.invoice_pdf import (
    Branding,
    Cursor,
    PageBreak,
    Rect,
    Text,
    build_context,
    format_currency,
    header_section,
    items_section,
    layout,
    render_invoice_pdf,
    summary_section,
)


def _invoice(**overrides) -> InvoiceSnapshot:
    values = dict(
        id="0f8fad5b-d9cb-469f-a165-70867728950e",
        user_id="user-a",
        amount=2310,
        currency="usd",
        customer="Acme & Co. Ltd!!",
        items=[LineItem(description="Consulting", quantity=2, rate=10.5)],
        tax_rate=10,
        notes="Thanks for your business.",
        company_name="Ledgr Studio",
        client_email="billing@acme.test",
        issue_date=date(2024, 3, 5),
        due_date=date(2024, 4, 4),
        created_at=datetime(2024, 3, 5, 9, 30, tzinfo=timezone.utc),
    )
    values.update(overrides)
    return InvoiceSnapshot(**values)


def _texts(ops):
    return [op.text for op in ops if isinstance(op, Text)]


def test_render_returns_pdf_bytes():
    data = render_invoice_pdf(_invoice(), Branding(name="Studio"))
    assert data.startswith(b"%PDF")
    assert data.rstrip().endswith(b"%%EOF")


def test_render_is_deterministic():
    invoice = _invoice()
    assert render_invoice_pdf(invoice) == render_invoice_pdf(invoice)


def test_render_without_items():
    data = render_invoice_pdf(_invoice(items=None, tax_rate=None, amount=12345, notes=None))
    assert data.startswith(b"%PDF")


@pytest.mark.parametrize(
    "value,currency,expected",
    [
        (Decimal("1234.5"), "usd", "$1,234.50"),
        (Decimal("0"), "EUR", "€0.00"),
        (Decimal("99.999"), "GBP", "£100.00"),
        (Decimal("12"), "chf", "CHF 12.00"),
    ],
)
def test_format_currency(value, currency, expected):
    assert format_currency(value, currency) == expected


def test_header_uses_branding_or_default():
    branded, cursor = header_section(build_context(_invoice(), Branding(name="Studio")), Cursor(y=0))
    assert "Studio" in _texts(branded)
    assert cursor.y > 60
    plain, _ = header_section(build_context(_invoice(), None), Cursor(y=0))
    assert "Ledgr" in _texts(plain)


def test_summary_shows_tax_breakdown_for_items():
    ops, _ = summary_section(build_context(_invoice()), Cursor(y=300))
    texts = _texts(ops)
    assert "Subtotal: $21.00" in texts
    assert "Tax (10%): $2.10" in texts
    assert "Total: $23.10" in texts


def test_summary_without_items_uses_stored_amount():
    ctx = build_context(_invoice(items=None, tax_rate=None, amount=5000))
    texts = _texts(summary_section(ctx, Cursor(y=300))[0])
    assert "Total: $50.00" in texts
    assert not any(text.startswith("Subtotal") for text in texts)


def test_items_section_skipped_without_items():
    ctx = build_context(_invoice(items=None, tax_rate=None))
    ops, cursor = items_section(ctx, Cursor(y=200))
    assert ops == []
    assert cursor == Cursor(y=200)


def test_items_section_stripes_odd_rows():
    items = [LineItem(description=f"Row {i}", quantity=1, rate=1) for i in range(4)]
    ctx = build_context(_invoice(items=items, tax_rate=0, amount=400))
    ops, _ = items_section(ctx, Cursor(y=200))
    stripes = [op for op in ops if isinstance(op, Rect) and op.fill == invoice_pdf.STRIPE]
    assert len(stripes) == 2


def test_long_item_lists_break_pages():
    items = [LineItem(description=f"Row {i}", quantity=1, rate=1) for i in range(80)]
    ops = layout(build_context(_invoice(items=items, tax_rate=0, amount=8000)))
    assert any(isinstance(op, PageBreak) for op in ops)


def test_amount_mismatch_is_logged_not_fatal(caplog):
    invoice = _invoice(amount=9999)
    with caplog.at_level(logging.WARNING, logger="ledgr.services.invoice_pdf"):
        data = render_invoice_pdf(invoice)
    assert data.startswith(b"%PDF")
    assert any(record.getMessage() == "invoice_amount_mismatch" for record in caplog.records)


def test_rendered_totals_match_persisted_amount(caplog):
    invoice = _invoice()
    ctx = build_context(invoice)
    assert ctx.totals.total_minor_units == invoice.amount
    with caplog.at_level(logging.WARNING, logger="ledgr.services.invoice_pdf"):
        render_invoice_pdf(invoice)
    assert not [r for r in caplog.records if r.getMessage() == "invoice_amount_mismatch"]


def test_paint_errors_surface_as_render_failed(monkeypatch):
    def boom(*args, **kwargs):
        raise ValueError("broken font")

    monkeypatch.setattr(invoice_pdf, "paint", boom)
    with pytest.raises(RenderFailed):
        render_invoice_pdf(_invoice())
