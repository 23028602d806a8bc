"""Invoice number generation, validation and parsing."""

from datetime import datetime

from shopdesk.extensions import db
from shopdesk.models import Sale
from shopdesk.services import invoice_service
from shopdesk.services.invoice_service import (
    generate_invoice_number,
    parse_invoice_number,
    validate_invoice_number,
)


NOW = datetime(2026, 3, 5, 12, 30)


def _store_sale(invoice_number: str) -> Sale:
    sale = Sale(invoice_number=invoice_number, date=NOW)
    db.session.add(sale)
    db.session.commit()
    return sale


class TestGenerate:

    def test_first_invoice_of_month(self, db_session):
        number = generate_invoice_number(NOW)
        assert number.startswith("INV-20260305-0001-")
        assert validate_invoice_number(number)

    def test_sequence_follows_highest_stored(self, db_session):
        _store_sale("INV-20260301-0001-00AA")
        _store_sale("INV-20260304-0007-0B12")
        assert generate_invoice_number(NOW).startswith("INV-20260305-0008-")

    def test_sequence_resets_each_month(self, db_session):
        _store_sale("INV-20260228-0042-1234")
        assert generate_invoice_number(NOW).startswith("INV-20260305-0001-")

    def test_same_state_yields_same_sequence(self, db_session):
        first = generate_invoice_number(NOW)
        second = generate_invoice_number(NOW)
        assert first[:18] == second[:18]

    def test_failure_falls_back(self, db_session, monkeypatch):
        def boom(now):
            raise RuntimeError("database unavailable")

        monkeypatch.setattr(invoice_service, "_next_sequence", boom)
        number = generate_invoice_number(NOW)
        assert number.startswith("INV-FALLBACK-")
        assert parse_invoice_number(number)["format"] == "fallback"


class TestChecksum:

    def test_four_uppercase_hex_digits(self):
        checksum = invoice_service.calculate_checksum("2026030500011234")
        assert len(checksum) == 4
        assert checksum == checksum.upper()
        int(checksum, 16)

    def test_short_sums_are_zero_padded(self):
        assert invoice_service.calculate_checksum("A") == "0041"


class TestValidateAndParse:

    def test_validate_shapes(self):
        assert validate_invoice_number("INV-20260305-0001-ABCD")
        assert validate_invoice_number("2026030001")
        assert not validate_invoice_number("INV-20260305-1-ABCD")
        assert not validate_invoice_number("INV-20260305-0001-abcd")
        assert not validate_invoice_number(None)

    def test_parse_new_format(self):
        parsed = parse_invoice_number("INV-20260305-0012-ABCD")
        assert parsed == {"date": datetime(2026, 3, 5), "sequence": 12, "is_valid": True, "format": "new"}

    def test_parse_legacy_format(self):
        parsed = parse_invoice_number("2026030042")
        assert parsed["format"] == "old"
        assert parsed["date"] == datetime(2026, 3, 1)
        assert parsed["sequence"] == 42

    def test_parse_rejects_bad_month_and_garbage(self):
        assert parse_invoice_number("2026130001")["format"] == "invalid"
        assert parse_invoice_number("INV-20261340-0001-ABCD")["is_valid"] is False
        assert parse_invoice_number("hello")["format"] == "invalid"
