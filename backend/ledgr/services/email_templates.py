from __future__ import annotations

import re
from datetime import datetime, timezone
from decimal import Decimal
from html import escape, unescape
from typing import Optional

from ledgr.schemas.invoice import InvoiceSnapshot
from ledgr.services.money import HUNDRED


_STYLES = """
body{margin:0;padding:0;background:#f6f7f9;color:#0f172a}
.container{max-width:560px;margin:0 auto;padding:24px}
.card{background:#ffffff;border:1px solid #e5e7eb;border-radius:12px}
.header{padding:16px 20px;border-bottom:1px solid #e5e7eb}
.brand{font-size:16px;font-weight:600;color:#111827}
.content{padding:20px}
h1{font-size:18px;margin:0 0 8px 0;color:#111827}
p{margin:0 0 12px 0;line-height:1.6;color:#374151}
.btn{display:inline-block;background:#2563eb;color:#fff !important;text-decoration:none;padding:10px 14px;border-radius:8px;font-weight:600}
.muted{color:#6b7280;font-size:12px}
.footer{padding:14px 20px;border-top:1px solid #e5e7eb;color:#6b7280;font-size:12px}
a{color:#2563eb}
""".strip()

_BREAK = re.compile(r"<\s*br\s*/?>", re.IGNORECASE)
_PARAGRAPH_END = re.compile(r"<\s*/p\s*>", re.IGNORECASE)
_TAG = re.compile(r"<[^>]+>")
_BLANK_RUN = re.compile(r"\n{3,}")
_INDENT = re.compile(r"^[ \t]+", re.MULTILINE)


def render_email(
    *,
    title: str,
    body_html: str,
    brand_name: str,
    heading: Optional[str] = None,
    preview_text: Optional[str] = None,
    footer_html: Optional[str] = None,
    year: Optional[int] = None,
) -> str:
    """Wrap ``body_html`` in the branded card layout.

    ``body_html`` is trusted markup; every other argument is escaped.
    """
    brand = escape(brand_name)
    preview = ""
    if preview_text:
        preview = (
            '<span style="display:none!important;visibility:hidden;opacity:0;'
            f'color:transparent;height:0;width:0;">{escape(preview_text)}</span>'
        )
    heading_html = f"<h1>{escape(heading)}</h1>" if heading else ""
    footer = footer_html or f"This message was sent to you by {brand}."
    year = year or datetime.now(timezone.utc).year
    return f"""<!doctype html>
<html lang="en">
  <head>
    <meta http-equiv="Content-Type" content="text/html; charset=utf-8" />
    <meta name="viewport" content="width=device-width, initial-scale=1" />
    <title>{escape(title)}</title>
    <style>{_STYLES}</style>
  </head>
  <body>
    {preview}
    <div class="container">
      <div class="card">
        <div class="header"><div class="brand">{brand}</div></div>
        <div class="content">
          {heading_html}
          {body_html}
        </div>
        <div class="footer">{footer}</div>
      </div>
      <div class="muted" style="text-align:center;margin-top:10px;">&copy; {year} {brand}</div>
    </div>
  </body>
</html>"""


def plain_text_from_html(html: str) -> str:
    text = _BREAK.sub("\n", html)
    text = _PARAGRAPH_END.sub("\n", text)
    text = _TAG.sub("", text)
    text = _INDENT.sub("", unescape(text))
    text = _BLANK_RUN.sub("\n\n", text)
    return text.strip()


def invoice_short_id(invoice: InvoiceSnapshot) -> str:
    return invoice.id[:8].upper()


def invoice_email_body(invoice: InvoiceSnapshot, *, url: str, message: Optional[str] = None) -> str:
    total = f"{Decimal(invoice.amount) / HUNDRED:.2f}"
    link = escape(url, quote=True)
    intro = escape(message) if message else "Please find your invoice below."
    return (
        f"<p>{intro}</p>\n"
        f"<p><strong>Invoice:</strong> {invoice_short_id(invoice)} &middot; "
        f"<strong>Total:</strong> {total} {escape(invoice.currency)}</p>\n"
        f'<p style="margin:18px 0;"><a class="btn" href="{link}" target="_blank" rel="noopener">View invoice</a></p>\n'
        "<p class=\"muted\">If the button doesn't work, copy and paste this link into your browser:</p>\n"
        f'<p><a href="{link}" target="_blank" rel="noopener">{link}</a></p>\n'
    )
