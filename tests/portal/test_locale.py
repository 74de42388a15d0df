"""Tests for the portal locale adapter."""

from datetime import date
from decimal import Decimal

import pytest
from hypothesis import given
from hypothesis import strategies as st

from clinic_portal.locale import DEFAULT_LOCALE, PortalLocale


class TestParseAmount:
    @pytest.mark.parametrize(
        "text,expected",
        [
            ("1,234,567", Decimal("1234567")),
            ("150,000", Decimal("150000")),
            ("0", Decimal("0")),
            ("Rp 12,500", Decimal("12500")),
            ("Rp. 12,500", Decimal("12500")),
            ("1,234.50", Decimal("1234.50")),
            (" 7,000 ", Decimal("7000")),
        ],
    )
    def test_grouped_amounts(self, text, expected):
        assert DEFAULT_LOCALE.parse_amount(text) == expected

    @pytest.mark.parametrize("text", ["-", "", "   ", None, "abc", "NaN", "Infinity"])
    def test_placeholders_and_garbage_are_zero(self, text):
        assert DEFAULT_LOCALE.parse_amount(text) == Decimal("0")

    @given(st.integers(min_value=0, max_value=10**12))
    def test_grouped_integer_round_trips(self, value):
        assert DEFAULT_LOCALE.parse_amount(f"{value:,}") == Decimal(value)


class TestParseDate:
    @pytest.mark.parametrize(
        "text,expected",
        [
            ("28 January 2026", date(2026, 1, 28)),
            ("28 Januari 2026", date(2026, 1, 28)),
            ("3 Agustus 2025", date(2025, 8, 3)),
            ("1 Mei 2025", date(2025, 5, 1)),
            ("Rabu, 28 Januari 2026", date(2026, 1, 28)),
            ("05 Des 2025", date(2025, 12, 5)),
        ],
    )
    def test_long_form_dates(self, text, expected):
        assert DEFAULT_LOCALE.parse_date(text) == expected

    @pytest.mark.parametrize(
        "text",
        ["", "   ", None, "28 Januari", "tanggal tidak valid 2026", "January 2026", "Januari 2026", "2026"],
    )
    def test_invalid_dates_raise(self, text):
        with pytest.raises(ValueError):
            DEFAULT_LOCALE.parse_date(text)


class TestCalendar:
    @pytest.mark.parametrize(
        "label,expected",
        [
            ("January 2026", (2026, 1)),
            ("Januari 2026", (2026, 1)),
            ("Maret 2025", (2025, 3)),
            ("  December 2025 ", (2025, 12)),
        ],
    )
    def test_parse_calendar_label(self, label, expected):
        assert DEFAULT_LOCALE.parse_calendar_label(label) == expected

    @pytest.mark.parametrize("label", ["", "Minggu", "2026", "Smarch 2026"])
    def test_unreadable_label(self, label):
        assert DEFAULT_LOCALE.parse_calendar_label(label) is None

    def test_month_number(self):
        assert DEFAULT_LOCALE.month_number("Agustus") == 8
        assert DEFAULT_LOCALE.month_number("october") == 10
        assert DEFAULT_LOCALE.month_number("Okt") is None

    def test_month_delta(self):
        assert PortalLocale.month_delta((2026, 1), date(2026, 3, 5)) == 2
        assert PortalLocale.month_delta((2026, 1), date(2025, 12, 31)) == -1
        assert PortalLocale.month_delta((2026, 1), date(2026, 1, 1)) == 0

    def test_input_formats(self):
        assert PortalLocale.day_cell_value(date(2026, 1, 5)) == "05/01/2026"
        assert PortalLocale.fallback_input_value(date(2026, 1, 5)) == "05-01-2026"
