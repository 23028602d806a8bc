# Overview: PDF rendering for quotations, receipts, invoices, reports and barcode labels.

"""
Every renderer returns the PDF as bytes; nothing is written to disk.

A5 pages are used for office documents, an 80 mm roll for the thermal
receipt. A TTF font (PDF_FONT_PATH) and a logo image (PDF_LOGO_PATH) are
embedded when configured, otherwise Helvetica is used and the logo skipped.
"""

from __future__ import annotations

import logging
import os
from io import BytesIO
from typing import Iterable

from flask import current_app, has_app_context
from reportlab.graphics.barcode.code128 import Code128
from reportlab.lib.pagesizes import A5
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont
from reportlab.pdfgen import canvas

from ..models import Product, Quotation, Return, Sale, Transaction
from shopdesk.time_utils import format_date, utcnow
from .currency_service import format_cents
from .qr_service import generate_qr_code


logger = logging.getLogger(__name__)

CUSTOM_FONT = "ShopDeskFont"
THERMAL_WIDTH = 80 * mm
THERMAL_LINE_HEIGHT = 5 * mm
THERMAL_BASE_HEIGHT = 95 * mm
LABEL_SIZE = (30 * mm, 50 * mm)
LABEL_BARCODE_WIDTH = 24 * mm
LABEL_BARCODE_HEIGHT = 18 * mm


def _config(key: str, default=None):
    if has_app_context():
        return current_app.config.get(key, default)
    return default


def _fonts() -> tuple[str, str]:
    """(regular, bold) font names, registering the configured TTF once."""
    path = _config("PDF_FONT_PATH")
    if path and os.path.exists(path):
        if CUSTOM_FONT not in pdfmetrics.getRegisteredFontNames():
            try:
                pdfmetrics.registerFont(TTFont(CUSTOM_FONT, path))
            except Exception:
                logger.exception("Could not register PDF font %s; using Helvetica", path)
                return "Helvetica", "Helvetica-Bold"
        return CUSTOM_FONT, CUSTOM_FONT
    return "Helvetica", "Helvetica-Bold"


def _logo() -> ImageReader | None:
    path = _config("PDF_LOGO_PATH")
    if not path or not os.path.exists(path):
        return None
    return ImageReader(path)


class _Page:
    """Top-down cursor over a canvas with automatic page breaks."""

    def __init__(self, c: canvas.Canvas, size: tuple[float, float], margin: float = 12 * mm):
        self.c = c
        self.width, self.height = size
        self.margin = margin
        self.regular, self.bold = _fonts()
        self.y = self.height - margin

    def ensure(self, needed: float) -> None:
        if self.y - needed < self.margin:
            self.c.showPage()
            self.y = self.height - self.margin

    def text(self, value: str, *, size: int = 9, bold: bool = False, x: float | None = None, align: str = "left", advance: float | None = None) -> None:
        self.ensure(size + 4)
        self.c.setFont(self.bold if bold else self.regular, size)
        x = self.margin if x is None else x
        if align == "right":
            self.c.drawRightString(x, self.y, value)
        elif align == "center":
            self.c.drawCentredString(x, self.y, value)
        else:
            self.c.drawString(x, self.y, value)
        self.y -= advance if advance is not None else size + 4

    def row(self, cells: Iterable[tuple[float, str, str]], *, size: int = 8, bold: bool = False) -> None:
        """cells: (x, text, align) triples drawn on one baseline."""
        self.ensure(size + 4)
        self.c.setFont(self.bold if bold else self.regular, size)
        for x, value, align in cells:
            if align == "right":
                self.c.drawRightString(x, self.y, value)
            else:
                self.c.drawString(x, self.y, value)
        self.y -= size + 4

    def rule(self) -> None:
        self.ensure(6)
        self.c.line(self.margin, self.y + 2, self.width - self.margin, self.y + 2)
        self.y -= 6

    def gap(self, amount: float = 6) -> None:
        self.y -= amount


def _header(page: _Page, title: str, subtitle: str | None = None) -> None:
    logo = _logo()
    if logo is not None:
        size = 16 * mm
        page.c.drawImage(logo, page.width - page.margin - size, page.y - size + 8, size, size, mask="auto")
    page.text(_config("COMPANY_NAME", "ShopDesk Trading"), size=14, bold=True)
    page.text(title, size=11, bold=True)
    if subtitle:
        page.text(subtitle, size=8)
    page.gap(4)
    page.rule()


def _line_table(page: _Page, lines: Iterable[tuple[str, int, int]], currency: str) -> None:
    """lines: (name, quantity, price_cents)."""
    right = page.width - page.margin
    cols = (page.margin, right - 70 * mm, right - 35 * mm, right)
    page.row([(cols[0], "Item", "left"), (cols[1], "Qty", "left"), (cols[2], "Price", "right"), (cols[3], "Total", "right")], bold=True)
    page.rule()
    for name, qty, price in lines:
        page.row([
            (cols[0], name[:40], "left"),
            (cols[1], str(qty), "left"),
            (cols[2], _money(price, currency), "right"),
            (cols[3], _money(qty * price, currency), "right"),
        ])
    page.rule()


def _totals(page: _Page, rows: Iterable[tuple[str, str]], *, bold_last: bool = True) -> None:
    rows = list(rows)
    right = page.width - page.margin
    for i, (label, value) in enumerate(rows):
        bold = bold_last and i == len(rows) - 1
        page.row([(right - 60 * mm, label, "left"), (right, value, "right")], size=9, bold=bold)


def _finish(c: canvas.Canvas, buf: BytesIO) -> bytes:
    c.showPage()
    c.save()
    return buf.getvalue()


def _new_canvas(size, title: str) -> tuple[canvas.Canvas, BytesIO]:
    buf = BytesIO()
    c = canvas.Canvas(buf, pagesize=size)
    c.setTitle(title)
    c.setAuthor(_config("COMPANY_NAME", "ShopDesk Trading"))
    return c, buf


def _currency() -> str:
    return _config("DEFAULT_CURRENCY", "EGP")


def _money(cents: int, currency: str) -> str:
    # Helvetica has no Arabic glyphs; fall back to the ISO code
    if _fonts()[0] == CUSTOM_FONT:
        return format_cents(cents, currency)
    return f"{currency} {cents / 100:,.2f}"


def render_quotation_pdf(quotation: Quotation) -> bytes:
    currency = _currency()
    c, buf = _new_canvas(A5, f"Quotation {quotation.id}")
    page = _Page(c, A5)

    created = quotation.created_at or utcnow()
    _header(page, f"Quotation #{quotation.id}", format_date(created))
    page.text(f"To: {quotation.company}", size=10, bold=True)
    if quotation.payment_terms:
        page.text(f"Payment terms: {quotation.payment_terms}")
    if quotation.delivery_date:
        page.text(f"Delivery: {quotation.delivery_date}")
    page.gap()

    _line_table(page, [(l.name, l.quantity, l.price_cents) for l in quotation.lines], currency)
    _totals(page, [
        ("Subtotal", _money(quotation.subtotal_cents, currency)),
        (f"Tax ({quotation.tax_rate_pct:g}%)", _money(quotation.tax_cents, currency)),
        ("Total", _money(quotation.total_cents, currency)),
    ])
    return _finish(c, buf)


def render_transaction_pdf(tx: Transaction) -> bytes:
    c, buf = _new_canvas(A5, f"Transaction {tx.id}")
    page = _Page(c, A5)

    _header(page, f"Transaction receipt #{tx.id}", format_date(tx.date))
    for label, value in (
        ("Type", tx.type.capitalize()),
        ("Category", tx.category),
        ("Amount", _money(tx.amount_cents, tx.currency)),
        ("Currency", tx.currency),
        ("Description", tx.description or "-"),
    ):
        page.row([(page.margin, label, "left"), (page.margin + 30 * mm, value[:60], "left")], size=9)
    return _finish(c, buf)


def render_financial_report_pdf(transactions: list[Transaction], summary: dict, *, title: str = "Financial report") -> bytes:
    """Transaction listing followed by the summary block; flows onto extra pages."""
    currency = summary.get("currency") or _currency()
    c, buf = _new_canvas(A5, title)
    page = _Page(c, A5)

    _header(page, title, f"Generated {format_date(utcnow())}")
    right = page.width - page.margin
    cols = (page.margin, page.margin + 24 * mm, page.margin + 42 * mm, right)
    page.row([(cols[0], "Date", "left"), (cols[1], "Type", "left"), (cols[2], "Category", "left"), (cols[3], "Amount", "right")], bold=True)
    page.rule()
    for tx in transactions:
        page.row([
            (cols[0], tx.date.strftime("%Y-%m-%d"), "left"),
            (cols[1], tx.type, "left"),
            (cols[2], (tx.category or "")[:28], "left"),
            (cols[3], _money(tx.amount_cents, tx.currency), "right"),
        ])
    page.rule()
    page.gap()

    _totals(page, [
        ("Transactions", str(summary.get("transaction_count", len(transactions)))),
        ("Total income", _money(summary.get("total_income_cents", 0), currency)),
        ("Total expenses", _money(summary.get("total_expenses_cents", 0), currency)),
        ("Net income", _money(summary.get("net_income_cents", 0), currency)),
    ])
    return _finish(c, buf)


def render_sale_invoice_pdf(sale: Sale) -> bytes:
    currency = _currency()
    c, buf = _new_canvas(A5, f"Invoice {sale.invoice_number}")
    page = _Page(c, A5)

    _header(page, f"Invoice {sale.invoice_number}", format_date(sale.date))

    qr_size = 24 * mm
    qr = ImageReader(BytesIO(generate_qr_code(sale.invoice_number)))
    c.drawImage(qr, page.width - page.margin - qr_size, page.y - qr_size + 8, qr_size, qr_size)

    page.text(f"Customer: {sale.customer_name}", size=10)
    if sale.customer_phone:
        page.text(f"Phone: {sale.customer_phone}")
    page.text(f"Payment: {sale.payment_type}")
    page.y = min(page.y, page.height - page.margin - 60 * mm)
    page.gap()

    _line_table(page, [(l.name, l.quantity, l.price_cents) for l in sale.lines], currency)
    rows = [("Subtotal", _money(sale.subtotal_cents, currency))]
    if sale.discount_cents:
        rows.append(("Discount", "-" + _money(sale.discount_cents, currency)))
    rows.append((f"Tax ({sale.tax_rate_pct:g}%)", _money(sale.tax_cents, currency)))
    rows.append(("Total", _money(sale.total_cents, currency)))
    _totals(page, rows)

    if sale.is_returned:
        page.gap()
        page.text("Returned", size=10, bold=True)
    return _finish(c, buf)


def thermal_receipt_height(line_count: int) -> float:
    return THERMAL_BASE_HEIGHT + line_count * THERMAL_LINE_HEIGHT


def render_thermal_receipt_pdf(sale: Sale) -> bytes:
    """80 mm roll; page height grows with the number of lines so it never breaks."""
    currency = _currency()
    size = (THERMAL_WIDTH, thermal_receipt_height(len(sale.lines)))
    c, buf = _new_canvas(size, f"Receipt {sale.invoice_number}")
    page = _Page(c, size, margin=4 * mm)
    center = THERMAL_WIDTH / 2
    right = THERMAL_WIDTH - page.margin

    page.text(_config("COMPANY_NAME", "ShopDesk Trading"), size=11, bold=True, x=center, align="center")
    page.text(sale.invoice_number, size=8, x=center, align="center")
    page.text(sale.date.strftime("%Y-%m-%d %H:%M"), size=7, x=center, align="center")
    page.text(f"Customer: {sale.customer_name}", size=7)
    page.rule()

    page.row([(page.margin, "Item", "left"), (right - 30 * mm, "Qty", "left"), (right, "Total", "right")], size=7, bold=True)
    for line in sale.lines:
        page.row([
            (page.margin, line.name[:22], "left"),
            (right - 30 * mm, str(line.quantity), "left"),
            (right, _money(line.line_total_cents, currency), "right"),
        ], size=7)
    page.rule()

    totals = [("Subtotal", sale.subtotal_cents)]
    if sale.discount_cents:
        totals.append(("Discount", -sale.discount_cents))
    totals.append(("Tax", sale.tax_cents))
    totals.append(("Total", sale.total_cents))
    for i, (label, cents) in enumerate(totals):
        page.row([(page.margin, label, "left"), (right, _money(cents, currency), "right")], size=8, bold=i == len(totals) - 1)

    page.gap(4)
    page.text("Thank you for your purchase", size=7, x=center, align="center")
    return _finish(c, buf)


def render_return_pdf(doc: Return) -> bytes:
    currency = _currency()
    c, buf = _new_canvas(A5, f"Return {doc.id}")
    page = _Page(c, A5)

    kind = "Full return" if doc.return_type == "full" else "Partial return"
    _header(page, f"{kind} #{doc.id}", format_date(doc.return_date))
    page.text(f"Original invoice: {doc.original_invoice_number or doc.original_sale_id}")
    if doc.customer_name:
        page.text(f"Customer: {doc.customer_name}")
    if doc.reason:
        page.text(f"Reason: {doc.reason}")
    page.gap()

    _line_table(page, [(l.name, l.quantity, l.price_cents) for l in doc.lines], currency)
    _totals(page, [("Refund", _money(doc.total_cents, currency))])
    return _finish(c, buf)


def render_barcode_label_pdf(product: Product) -> bytes:
    """30 x 50 mm shelf label: name on top, Code128 bars centred, code underneath."""
    code = (product.barcode or "").strip()
    if not code:
        raise ValueError("Product has no barcode")

    width, height = LABEL_SIZE
    c, buf = _new_canvas(LABEL_SIZE, f"Barcode {code}")
    regular, _ = _fonts()

    c.setFont(regular, 10)
    name = product.name
    while len(name) > 1 and c.stringWidth(name, regular, 10) > width - 2 * mm:
        name = name[:-1]
    c.drawCentredString(width / 2, height - 10 * mm, name)

    bars = Code128(code, barHeight=LABEL_BARCODE_HEIGHT, humanReadable=False, quiet=False)
    if bars.width > LABEL_BARCODE_WIDTH:
        bars = Code128(
            code,
            barWidth=bars.barWidth * LABEL_BARCODE_WIDTH / bars.width,
            barHeight=LABEL_BARCODE_HEIGHT,
            humanReadable=False,
            quiet=False,
        )
    bar_y = (height - LABEL_BARCODE_HEIGHT) / 2
    bars.drawOn(c, (width - bars.width) / 2, bar_y)

    c.setFont(regular, 9)
    c.drawCentredString(width / 2, bar_y - 5 * mm, code)
    return _finish(c, buf)
