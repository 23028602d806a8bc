"""Quotations, generated PDFs and QR codes."""

import base64

import pytest

from shopdesk.services import pdf_service, pos_service, quotation_service
from shopdesk.services.qr_service import generate_qr_code, generate_qr_data_url
from shopdesk.validation import ValidationError

from conftest import make_product


PNG_MAGIC = b"\x89PNG\r\n\x1a\n"


@pytest.fixture
def sale(db_session, users, products, cashier_shift):
    return pos_service.checkout(
        user_id=users["cashier"].id,
        items=[{"product_id": products["widget"].id, "quantity": 1}],
        customer={"name": "Mona", "phone": "0100"},
    )


class TestQuotations:

    def test_create(self, db_session, users):
        quotation = quotation_service.add_quotation(
            {
                "company": "Acme",
                "tax_rate_pct": 14,
                "lines": [{"name": "Desk", "quantity": 2, "price_cents": 15000}],
            },
            user_id=users["cashier"].id,
        )
        assert quotation.id is not None
        assert len(quotation.lines) == 1
        assert (quotation.subtotal_cents, quotation.tax_cents, quotation.total_cents) == (30000, 4200, 34200)

    @pytest.mark.parametrize(
        "data",
        [
            {"lines": [{"name": "Desk", "quantity": 1, "price_cents": 1}]},
            {"company": "Acme", "lines": []},
            {"company": "Acme", "lines": [{"name": "Desk", "quantity": 0, "price_cents": 1}]},
            {"company": "Acme", "tax_rate_pct": 120, "lines": [{"name": "Desk", "quantity": 1, "price_cents": 1}]},
        ],
    )
    def test_rejects_bad_input(self, db_session, data):
        with pytest.raises(ValidationError):
            quotation_service.add_quotation(data)

    def test_routes(self, client, cashier_headers):
        resp = client.post(
            "/api/quotations",
            json={"company": "Acme", "lines": [{"name": "Desk", "quantity": 1, "price_cents": 15000}]},
            headers=cashier_headers,
        )
        assert resp.status_code == 201
        quotation_id = resp.json["id"]

        pdf = client.get(f"/api/quotations/{quotation_id}/pdf", headers=cashier_headers)
        assert pdf.status_code == 200
        assert pdf.data.startswith(b"%PDF")

        assert client.delete(f"/api/quotations/{quotation_id}", headers=cashier_headers).status_code == 200
        assert client.get(f"/api/quotations/{quotation_id}", headers=cashier_headers).status_code == 404


class TestSalePdfs:

    def test_invoice_pdf(self, db_session, sale):
        assert pdf_service.render_sale_invoice_pdf(sale).startswith(b"%PDF")

    def test_thermal_receipt_pdf(self, db_session, sale):
        assert pdf_service.render_thermal_receipt_pdf(sale).startswith(b"%PDF")

    def test_receipt_grows_with_lines(self):
        assert pdf_service.thermal_receipt_height(4) > pdf_service.thermal_receipt_height(1)

    def test_invoice_route_is_attachment(self, client, cashier_headers, sale):
        resp = client.get(f"/api/pos/sales/{sale.id}/invoice.pdf", headers=cashier_headers)
        assert resp.status_code == 200
        assert sale.invoice_number in resp.headers["Content-Disposition"]

    def test_transaction_pdf(self, client, admin_headers, sale):
        tx_id = client.get("/api/transactions", headers=admin_headers).json["items"][0]["id"]
        resp = client.get(f"/api/transactions/{tx_id}/pdf", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.data.startswith(b"%PDF")


class TestBarcodeLabels:

    def test_label_pdf(self, db_session, products):
        assert pdf_service.render_barcode_label_pdf(products["widget"]).startswith(b"%PDF")

    def test_long_name_and_code_fit(self, db_session):
        product = make_product("Extra long product name for a tiny label", 100, barcode="ABC-1234567890-XYZ")
        assert pdf_service.render_barcode_label_pdf(product).startswith(b"%PDF")

    def test_product_without_barcode(self, db_session):
        with pytest.raises(ValueError):
            pdf_service.render_barcode_label_pdf(make_product("Loose", 100))

    def test_route(self, client, stock_headers, products):
        widget = products["widget"]
        resp = client.get(f"/api/products/{widget.id}/barcode.pdf", headers=stock_headers)
        assert resp.status_code == 200
        assert resp.mimetype == "application/pdf"
        assert widget.barcode in resp.headers["Content-Disposition"]

    def test_route_errors(self, client, stock_headers, db_session):
        loose = make_product("Loose", 100)
        assert client.get(f"/api/products/{loose.id}/barcode.pdf", headers=stock_headers).status_code == 400
        assert client.get("/api/products/999/barcode.pdf", headers=stock_headers).status_code == 404


class TestQrCodes:

    def test_png_bytes(self):
        assert generate_qr_code("INV-20260305-0001-ABCD").startswith(PNG_MAGIC)

    def test_data_url(self):
        url = generate_qr_data_url("hello")
        prefix = "data:image/png;base64,"
        assert url.startswith(prefix)
        assert base64.b64decode(url[len(prefix):]).startswith(PNG_MAGIC)

    def test_empty_payload(self):
        with pytest.raises(ValueError):
            generate_qr_code("")
