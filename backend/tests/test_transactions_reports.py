"""Bookkeeping entries, the polling feed and the financial aggregates."""

from datetime import datetime

import pytest

from shopdesk.services import report_service, transaction_service
from shopdesk.services.currency_service import fallback_rates


def _tx(type_, cents, category, when, currency="EGP"):
    return transaction_service.add_transaction(
        {"type": type_, "amount_cents": cents, "category": category, "date": when, "currency": currency},
        added_by=None,
    )


@pytest.fixture
def ledger(db_session):
    return [
        _tx("income", 50000, "Sales", datetime(2026, 1, 10)),
        _tx("income", 20000, "Services", datetime(2026, 1, 20)),
        _tx("expense", 30000, "Rent", datetime(2026, 1, 31, 23, 0)),
        _tx("expense", 10000, "Utilities", datetime(2026, 2, 3)),
        _tx("income", 1000, "Sales", datetime(2026, 2, 14), currency="USD"),
    ]


class TestTransactions:

    def test_date_defaults_to_now(self, db_session):
        tx = transaction_service.add_transaction({"type": "expense", "amount_cents": 100, "category": "Misc"}, added_by=None)
        assert tx.date is not None
        assert tx.currency == "EGP"

    def test_newest_first_with_filters(self, ledger):
        ids = [t.id for t in transaction_service.get_transactions(type="expense")]
        assert ids == [ledger[3].id, ledger[2].id]

        january = transaction_service.get_transactions(start=datetime(2026, 1, 1), end=datetime(2026, 2, 1))
        assert len(january) == 3

    def test_categories(self, ledger):
        assert transaction_service.get_categories() == ["Rent", "Sales", "Services", "Utilities"]
        assert transaction_service.get_categories("expense") == ["Rent", "Utilities"]

    def test_feed_cursor(self, ledger):
        first = transaction_service.get_transactions_since(None, limit=3)
        assert [t.id for t in first["items"]] == [t.id for t in ledger[:3]]

        rest = transaction_service.get_transactions_since(first["cursor"])
        assert [t.id for t in rest["items"]] == [t.id for t in ledger[3:]]

        idle = transaction_service.get_transactions_since(rest["cursor"])
        assert idle["items"] == []
        assert idle["cursor"] == rest["cursor"]


class TestReports:

    def test_summary_converts_foreign_entries(self, ledger):
        summary = report_service.financial_summary(ledger, "EGP", fallback_rates())
        assert summary["total_income_cents"] == 50000 + 20000 + 50000
        assert summary["total_expenses_cents"] == 40000
        assert summary["net_income_cents"] == 80000
        assert summary["transaction_count"] == 5

    def test_missing_rate_counts_face_value(self, ledger):
        summary = report_service.financial_summary(ledger, "EGP", [])
        assert summary["total_income_cents"] == 71000

    def test_category_summary(self, ledger):
        rows = report_service.category_summary(ledger, "expense")
        assert rows == [
            {"category": "Rent", "amount_cents": 30000, "count": 1, "percentage": 75},
            {"category": "Utilities", "amount_cents": 10000, "count": 1, "percentage": 25},
        ]

    def test_monthly_data(self, ledger):
        rows = report_service.monthly_data(ledger, "EGP", fallback_rates())
        assert [r["month"] for r in rows] == ["2026-01", "2026-02"]
        assert rows[0] == {"month": "2026-01", "income_cents": 70000, "expenses_cents": 30000, "net_cents": 40000}
        assert rows[1]["net_cents"] == 50000 - 10000


class TestTransactionRoutes:

    def test_viewer_reads_but_cannot_write(self, client, viewer_headers, ledger):
        assert client.get("/api/transactions", headers=viewer_headers).status_code == 200
        resp = client.post(
            "/api/transactions",
            json={"type": "income", "amount_cents": 100, "category": "Sales"},
            headers=viewer_headers,
        )
        assert resp.status_code == 403

    def test_admin_creates_entry(self, client, admin_headers):
        resp = client.post(
            "/api/transactions",
            json={"type": "expense", "amount_cents": 2500, "category": "Supplies", "date": "2026-03-01T09:00:00Z"},
            headers=admin_headers,
        )
        assert resp.status_code == 201
        assert resp.json["amount_cents"] == 2500

    def test_rejects_non_positive_amount(self, client, admin_headers):
        resp = client.post(
            "/api/transactions",
            json={"type": "expense", "amount_cents": 0, "category": "Supplies"},
            headers=admin_headers,
        )
        assert resp.status_code == 400

    def test_end_date_is_inclusive(self, client, viewer_headers, ledger):
        resp = client.get("/api/transactions?start=2026-01-01&end=2026-01-31", headers=viewer_headers)
        assert resp.json["count"] == 3

    def test_bad_range(self, client, viewer_headers, ledger):
        assert client.get("/api/transactions?start=yesterday", headers=viewer_headers).status_code == 400

    def test_financial_report_route(self, client, viewer_headers, ledger):
        resp = client.get("/api/reports/financial?currency=EGP", headers=viewer_headers)
        assert resp.status_code == 200
        assert resp.json["summary"]["net_income_cents"] == 80000
        assert resp.json["expense_categories"][0]["category"] == "Rent"

    def test_financial_report_pdf(self, client, viewer_headers, ledger):
        resp = client.get("/api/reports/financial/pdf", headers=viewer_headers)
        assert resp.status_code == 200
        assert resp.data.startswith(b"%PDF")
