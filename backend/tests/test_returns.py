"""Full and partial returns against completed sales."""

import pytest

from shopdesk.models import AuditLog, Transaction
from shopdesk.services import pos_service, return_service, stock_service
from shopdesk.services.return_service import ReturnError


@pytest.fixture
def sale(db_session, users, products, cashier_shift):
    """Widget x2 + Gadget x1 at 14% tax: 25707 cents."""
    return pos_service.checkout(
        user_id=users["cashier"].id,
        items=[
            {"product_id": products["widget"].id, "quantity": 2},
            {"product_id": products["gadget"].id, "quantity": 1},
        ],
    )


class TestFullReturn:

    def test_restocks_and_refunds_total(self, db_session, sale, products, users):
        doc = return_service.process_full_return(sale.id, user_id=users["cashier"].id)

        assert doc.return_type == "full"
        assert doc.total_cents == 25707
        assert doc.tax_cents == sale.tax_cents
        assert doc.reason == "Full return from POS"
        assert stock_service.get_product_stock(products["widget"].id) == 10
        assert stock_service.get_product_stock(products["gadget"].id) == 5

        db_session.refresh(sale)
        assert sale.is_returned is True
        assert sale.return_id == doc.id

        tx = db_session.query(Transaction).filter_by(return_id=doc.id).one()
        assert (tx.type, tx.category, tx.amount_cents) == ("expense", "Returns", 25707)
        assert db_session.query(AuditLog).filter_by(action="full_return").count() == 1

    def test_second_full_return_is_rejected(self, db_session, sale):
        return_service.process_full_return(sale.id)
        with pytest.raises(ReturnError, match="already been fully returned"):
            return_service.process_full_return(sale.id)

    def test_full_after_partial_refunds_remainder(self, db_session, sale, products):
        return_service.process_partial_return(sale.id, {products["widget"].id: 1})
        doc = return_service.process_full_return(sale.id)

        assert doc.total_cents == 25707 - 10000
        assert {(l.product_id, l.quantity) for l in doc.lines} == {
            (products["widget"].id, 1),
            (products["gadget"].id, 1),
        }
        assert stock_service.get_product_stock(products["widget"].id) == 10

    def test_unknown_sale(self, db_session):
        with pytest.raises(ReturnError, match="Sale not found"):
            return_service.process_full_return(4242)


class TestPartialReturn:

    def test_refunds_line_value(self, db_session, sale, products):
        doc = return_service.process_partial_return(sale.id, {products["widget"].id: 1}, reason="Damaged box")

        assert doc.return_type == "partial"
        assert doc.total_cents == 10000
        assert doc.reason == "Damaged box"
        assert stock_service.get_product_stock(products["widget"].id) == 9

        tx = db_session.query(Transaction).filter_by(return_id=doc.id).one()
        assert tx.category == "Partial Returns"
        assert "Damaged box" in tx.description

    def test_cannot_exceed_sold_quantity_across_returns(self, db_session, sale, products):
        widget_id = products["widget"].id
        return_service.process_partial_return(sale.id, {widget_id: 1})

        with pytest.raises(ReturnError) as excinfo:
            return_service.process_partial_return(sale.id, {widget_id: 2})

        assert str(excinfo.value) == "Invalid return quantities"
        assert excinfo.value.details["items"][0]["returnable_quantity"] == 1
        assert stock_service.get_product_stock(widget_id) == 9

    def test_keys_for_same_product_are_summed(self, db_session, sale, products):
        widget_id = products["widget"].id

        with pytest.raises(ReturnError) as excinfo:
            return_service.process_partial_return(sale.id, {widget_id: 2, str(widget_id): 2})

        assert excinfo.value.details["items"][0]["requested_quantity"] == 4
        assert excinfo.value.details["items"][0]["returnable_quantity"] == 2
        assert stock_service.get_product_stock(widget_id) == 8

    def test_product_not_on_sale(self, db_session, sale):
        with pytest.raises(ReturnError) as excinfo:
            return_service.process_partial_return(sale.id, {999: 1})
        assert excinfo.value.details["items"][0]["error"] == "not on this sale"

    def test_zero_quantity(self, db_session, sale, products):
        with pytest.raises(ReturnError):
            return_service.process_partial_return(sale.id, {products["gadget"].id: 0})

    def test_nothing_selected(self, db_session, sale):
        with pytest.raises(ReturnError, match="Select at least one product"):
            return_service.process_partial_return(sale.id, {})

    def test_returnable_lines(self, db_session, sale, products):
        return_service.process_partial_return(sale.id, {products["widget"].id: 1})
        rows = {r["product_id"]: r for r in return_service.get_returnable_lines(sale.id)}
        assert rows[products["widget"].id]["returnable_quantity"] == 1
        assert rows[products["gadget"].id]["returnable_quantity"] == 1


class TestReturnsReport:

    def test_totals_by_type_and_top_products(self, db_session, sale, products):
        return_service.process_partial_return(sale.id, {products["widget"].id: 1})
        return_service.process_full_return(sale.id)

        report = return_service.returns_report()
        assert report["total_returns"] == 2
        assert report["total_amount_cents"] == 25707
        assert report["total_items"] == 3
        assert report["by_type"]["partial"] == {"count": 1, "total_cents": 10000}
        assert report["top_products"][0]["name"] == "Widget"
        assert report["top_products"][0]["quantity"] == 2


class TestReturnRoutes:

    def test_partial_route(self, client, cashier_headers, sale, products):
        resp = client.post(
            "/api/returns/partial",
            json={"sale_id": sale.id, "items": [{"product_id": products["gadget"].id, "quantity": 1}]},
            headers=cashier_headers,
        )
        assert resp.status_code == 201
        assert resp.json["total_cents"] == 2550

    def test_partial_route_sums_repeated_items(self, client, cashier_headers, sale, products):
        widget_id = products["widget"].id
        resp = client.post(
            "/api/returns/partial",
            json={"sale_id": sale.id, "items": [
                {"product_id": widget_id, "quantity": 2},
                {"product_id": widget_id, "quantity": 2},
            ]},
            headers=cashier_headers,
        )
        assert resp.status_code == 400
        assert resp.json["details"]["items"][0]["requested_quantity"] == 4
        assert stock_service.get_product_stock(widget_id) == 8

    @pytest.mark.parametrize("item", [
        {"product_id": "1", "quantity": 1},
        {"product_id": True, "quantity": 1},
        {"product_id": 1, "quantity": "1"},
        {"product_id": 1, "quantity": 1.5},
        {"product_id": 1, "quantity": None},
    ])
    def test_partial_route_rejects_non_integer_fields(self, client, cashier_headers, sale, item):
        resp = client.post(
            "/api/returns/partial",
            json={"sale_id": sale.id, "items": [item]},
            headers=cashier_headers,
        )
        assert resp.status_code == 400
        assert return_service.list_returns() == []

    def test_partial_route_rejects_mixed_id_types(self, client, cashier_headers, sale, products):
        widget_id = products["widget"].id
        resp = client.post(
            "/api/returns/partial",
            json={"sale_id": sale.id, "items": [
                {"product_id": widget_id, "quantity": 2},
                {"product_id": str(widget_id), "quantity": 2},
            ]},
            headers=cashier_headers,
        )
        assert resp.status_code == 400
        assert stock_service.get_product_stock(widget_id) == 8

    def test_full_route_unknown_sale(self, client, cashier_headers, db_session):
        resp = client.post("/api/returns/full", json={"sale_id": 999}, headers=cashier_headers)
        assert resp.status_code == 404

    def test_viewer_cannot_return(self, client, viewer_headers, sale):
        resp = client.post("/api/returns/full", json={"sale_id": sale.id}, headers=viewer_headers)
        assert resp.status_code == 403

    def test_return_pdf(self, client, cashier_headers, sale):
        doc = return_service.process_full_return(sale.id)
        resp = client.get(f"/api/returns/{doc.id}/pdf", headers=cashier_headers)
        assert resp.status_code == 200
        assert resp.mimetype == "application/pdf"
        assert resp.data.startswith(b"%PDF")
