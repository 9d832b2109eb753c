"""Tests for currency display formatting."""
import pytest

from src.currency import cfa_to_eur, format_currency


class TestFormatCurrency:

    def test_cfa_grouping(self):
        assert format_currency(25_000_000) == "25\u202f000\u202f000"

    def test_cfa_rounds_to_units(self):
        assert format_currency(555_555.5) == "555\u202f556"
        assert format_currency(999) == "999"

    def test_eur_conversion(self):
        # 25000000 / 655.957 = 38112.26
        assert format_currency(25_000_000, "EUR") == "38\u202f112\u00a0€"

    def test_fixed_rate(self):
        assert cfa_to_eur(655.957) == pytest.approx(1.0)

    def test_unsupported_currency(self):
        with pytest.raises(ValueError):
            format_currency(1000, "USD")
