"""Currency conversion, formatting and the live-rate fetcher."""

import httpx
import pytest

from shopdesk.services import currency_service
from shopdesk.services.currency_service import (
    CurrencyRate,
    calculate_percentage,
    convert_currency,
    fallback_rates,
    fetch_currency_rates,
    format_cents,
    format_currency,
)


RATES = [
    CurrencyRate("USD", "EGP", 50.0),
    CurrencyRate("EGP", "USD", 0.02),
]


def _client(handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


class TestConvert:

    def test_same_currency_is_identity(self):
        assert convert_currency(123.45, "EGP", "EGP", []) == 123.45

    def test_direct_rate(self):
        assert convert_currency(10, "USD", "EGP", RATES) == 500

    def test_missing_rate_returns_amount(self, caplog):
        with caplog.at_level("WARNING"):
            assert convert_currency(10, "USD", "AED", RATES) == 10
        assert "No conversion rate" in caplog.text

    def test_no_chained_conversion(self):
        assert convert_currency(10, "AED", "EGP", RATES) == 10


class TestFormatting:

    def test_symbols_and_grouping(self):
        assert format_currency(1234.5, "USD") == "$1,234.50"
        assert format_currency(5, "XYZ") == "5.00"

    def test_cents(self):
        assert format_cents(123456, "USD") == "$1,234.56"

    def test_percentage(self):
        assert calculate_percentage(1, 3) == 33
        assert calculate_percentage(5, 0) == 0


class TestFetch:

    def test_success_builds_forward_reverse_and_cross_rates(self):
        def handler(request):
            assert request.url.params["base"] == "USD"
            return httpx.Response(200, json={"rates": {"EGP": 48.0, "AED": 3.6}})

        rates = fetch_currency_rates(client=_client(handler))
        pairs = {(r.from_currency, r.to_currency): r.rate for r in rates}
        assert pairs[("USD", "EGP")] == 48.0
        assert pairs[("EGP", "USD")] == pytest.approx(1 / 48.0)
        assert pairs[("EGP", "AED")] == pytest.approx(3.6 / 48.0)
        assert pairs[("AED", "EGP")] == pytest.approx(48.0 / 3.6)

    def test_http_error_uses_fallback(self):
        rates = fetch_currency_rates(client=_client(lambda request: httpx.Response(503)))
        pairs = {(r.from_currency, r.to_currency): r.rate for r in rates}
        assert pairs[("USD", "EGP")] == currency_service.FALLBACK_USD_RATES["EGP"]
        assert len(rates) == 6

    def test_network_failure_uses_fallback(self):
        def handler(request):
            raise httpx.ConnectError("unreachable", request=request)

        rates = fetch_currency_rates(client=_client(handler))
        assert {(r.from_currency, r.to_currency) for r in rates} == {
            (r.from_currency, r.to_currency) for r in fallback_rates()
        }

    def test_empty_payload_uses_fallback(self):
        rates = fetch_currency_rates(client=_client(lambda request: httpx.Response(200, json={"rates": {}})))
        assert len(rates) == 6


class TestCurrencyRoutes:

    def test_convert_route(self, client, viewer_headers, monkeypatch):
        monkeypatch.setattr("shopdesk.routes.currency.fetch_currency_rates", lambda *a, **kw: fallback_rates())
        resp = client.post(
            "/api/currency/convert",
            json={"amount": 10, "from": "USD", "to": "EGP"},
            headers=viewer_headers,
        )
        assert resp.status_code == 200
        assert resp.json["amount"] == pytest.approx(500)

    def test_requires_auth(self, client, db_session):
        assert client.get("/api/currency").status_code == 401
