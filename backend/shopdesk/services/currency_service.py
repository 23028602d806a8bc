# Overview: Exchange rates, conversion and money formatting.

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable

import httpx
from flask import current_app, has_app_context

from shopdesk.time_utils import utcnow, to_utc_z


logger = logging.getLogger(__name__)

CURRENCY_SYMBOLS = {
    "USD": "$",
    "EGP": "ج.م",
    "AED": "د.إ",
}

CURRENCY_NAMES = {
    "USD": "US Dollar",
    "EGP": "Egyptian Pound",
    "AED": "UAE Dirham",
}

# Used whenever the public API is unreachable or returns nothing usable
FALLBACK_USD_RATES = {"EGP": 50.0, "AED": 13.0}

DEFAULT_API_URL = "https://api.exchangerate.host/latest"
DEFAULT_TIMEOUT = 5.0


@dataclass(frozen=True)
class CurrencyRate:
    from_currency: str
    to_currency: str
    rate: float
    updated_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict:
        return {
            "from": self.from_currency,
            "to": self.to_currency,
            "rate": self.rate,
            "updated_at": to_utc_z(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CurrencyRate":
        return cls(
            from_currency=str(data["from"]).upper(),
            to_currency=str(data["to"]).upper(),
            rate=float(data["rate"]),
        )


def convert_currency(amount: float, from_currency: str, to_currency: str, rates: Iterable[CurrencyRate]) -> float:
    """
    Convert with a direct rate only.

    Same currency returns the amount untouched. A missing rate also returns
    the amount untouched and logs a warning instead of raising.
    """
    if from_currency == to_currency:
        return amount
    for rate in rates:
        if rate.from_currency == from_currency and rate.to_currency == to_currency:
            return amount * rate.rate
    logger.warning("No conversion rate from %s to %s. Returning original amount.", from_currency, to_currency)
    return amount


def format_currency(amount: float, currency: str = "USD") -> str:
    symbol = CURRENCY_SYMBOLS.get(currency, "")
    return f"{symbol}{amount:,.2f}"


def format_cents(amount_cents: int, currency: str = "EGP") -> str:
    return format_currency(amount_cents / 100, currency)


def calculate_percentage(value: float, total: float) -> int:
    if total == 0:
        return 0
    return round(value / total * 100)


def get_exchange_rates() -> dict[str, float]:
    """Static per-USD table for screens that do not need live rates."""
    return {"USD": 1.0, "EGP": 50.0, "AED": 13.67}


def _rates_from_table(base: str, symbols: Iterable[str], table: dict[str, float], now: datetime) -> list[CurrencyRate]:
    rates: list[CurrencyRate] = []
    for to in symbols:
        value = table.get(to)
        if value:
            rates.append(CurrencyRate(base, to, float(value), now))
            rates.append(CurrencyRate(to, base, 1 / float(value), now))
    if table.get("EGP") and table.get("AED"):
        rates.append(CurrencyRate("EGP", "AED", table["AED"] / table["EGP"], now))
        rates.append(CurrencyRate("AED", "EGP", table["EGP"] / table["AED"], now))
    return rates


def fallback_rates(now: datetime | None = None) -> list[CurrencyRate]:
    now = now or utcnow()
    egp, aed = FALLBACK_USD_RATES["EGP"], FALLBACK_USD_RATES["AED"]
    return [
        CurrencyRate("USD", "EGP", egp, now),
        CurrencyRate("USD", "AED", aed, now),
        CurrencyRate("EGP", "USD", 1 / egp, now),
        CurrencyRate("AED", "USD", 1 / aed, now),
        CurrencyRate("EGP", "AED", aed / egp, now),
        CurrencyRate("AED", "EGP", egp / aed, now),
    ]


def fetch_currency_rates(
    base: str = "USD",
    symbols: Iterable[str] = ("EGP", "AED"),
    *,
    client: httpx.Client | None = None,
) -> list[CurrencyRate]:
    """
    Fetch live rates (forward, reverse and EGP<->AED cross rates).

    Any HTTP or parse failure degrades to FALLBACK_USD_RATES.
    """
    symbols = list(symbols)
    url = DEFAULT_API_URL
    timeout = DEFAULT_TIMEOUT
    if has_app_context():
        url = current_app.config.get("CURRENCY_API_URL", url)
        timeout = float(current_app.config.get("CURRENCY_API_TIMEOUT", timeout))

    now = utcnow()

    try:
        params = {"base": base, "symbols": ",".join(symbols)}
        if client is not None:
            resp = client.get(url, params=params, timeout=timeout)
        else:
            with httpx.Client() as http:
                resp = http.get(url, params=params, timeout=timeout)
        resp.raise_for_status()
        payload = resp.json()
        table = {k: float(v) for k, v in (payload.get("rates") or {}).items() if v}
    except (httpx.HTTPError, ValueError, TypeError, AttributeError) as exc:
        logger.warning("Currency API failed, using fallback rates: %s", exc)
        return fallback_rates(now)

    rates = _rates_from_table(base, symbols, table, now)
    if not rates:
        logger.warning("Currency API returned no usable rates, using fallback rates")
        return fallback_rates(now)
    return rates
