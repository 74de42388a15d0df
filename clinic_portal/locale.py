"""
Locale adapter for the clinic portal.

Everything that depends on the portal's language and number conventions
lives here so it can be unit-tested without a browser: month-name tables
(English and Indonesian), calendar-header parsing and month arithmetic,
the date formats the date picker accepts, and parsing of report amounts
and report dates.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from datetime import date, datetime
from decimal import Decimal, InvalidOperation

from dateutil import parser as date_parser

ENGLISH_MONTHS: tuple[str, ...] = (
    "january", "february", "march", "april", "may", "june",
    "july", "august", "september", "october", "november", "december",
)

INDONESIAN_MONTHS: tuple[str, ...] = (
    "januari", "februari", "maret", "april", "mei", "juni",
    "juli", "agustus", "september", "oktober", "november", "desember",
)

# Indonesian spellings dateutil does not know, mapped to English.
INDONESIAN_DATE_WORDS: Mapping[str, str] = {
    "januari": "January",
    "februari": "February",
    "pebruari": "February",
    "maret": "March",
    "mei": "May",
    "juni": "June",
    "juli": "July",
    "agustus": "August",
    "agu": "Aug",
    "agt": "Aug",
    "oktober": "October",
    "okt": "Oct",
    "desember": "December",
    "des": "Dec",
    "senin": "Monday",
    "selasa": "Tuesday",
    "rabu": "Wednesday",
    "kamis": "Thursday",
    "jumat": "Friday",
    "sabtu": "Saturday",
    "minggu": "Sunday",
}

_WORD = re.compile(r"[A-Za-z]+")
_YEAR = re.compile(r"\b\d{4}\b")

# Two defaults that differ in day and month; a parse that depends on either
# had no day or month token in the text.
_DATE_DEFAULTS = (datetime(2000, 1, 1), datetime(2000, 2, 2))
_CALENDAR_LABEL = re.compile(r"^\s*([A-Za-z]+)\s+(\d{4})\s*$")
_CURRENCY_PREFIX = re.compile(r"^\s*rp\.?\s*", re.IGNORECASE)
_PLACEHOLDERS = frozenset({"", "-"})


class PortalLocale:
    """
    Portal language and number conventions.

    Args:
        thousands_separator: Grouping character in report amounts.
        decimal_separator: Fraction separator in report amounts.
        month_tables: Month-name tuples (January first) recognized in the
            calendar header.
    """

    def __init__(
        self,
        thousands_separator: str = ",",
        decimal_separator: str = ".",
        month_tables: tuple[tuple[str, ...], ...] = (ENGLISH_MONTHS, INDONESIAN_MONTHS),
    ) -> None:
        if thousands_separator == decimal_separator:
            raise ValueError("thousands and decimal separators must differ")
        self.thousands_separator = thousands_separator
        self.decimal_separator = decimal_separator
        self._months: dict[str, int] = {}
        for table in month_tables:
            for index, name in enumerate(table, start=1):
                self._months.setdefault(name.lower(), index)

    # -- calendar ---------------------------------------------------------

    def month_number(self, name: str) -> int | None:
        return self._months.get(name.strip().lower())

    def parse_calendar_label(self, text: str | None) -> tuple[int, int] | None:
        """'January 2026' / 'Januari 2026' -> (2026, 1); None if unrecognized."""
        if not text:
            return None
        match = _CALENDAR_LABEL.match(text)
        if match is None:
            return None
        month = self.month_number(match.group(1))
        if month is None:
            return None
        return int(match.group(2)), month

    @staticmethod
    def month_delta(current: tuple[int, int], target: date) -> int:
        """Signed number of months from the displayed (year, month) to target."""
        year, month = current
        return (target.year - year) * 12 + (target.month - month)

    @staticmethod
    def day_cell_value(target: date) -> str:
        """Value of the date picker's ``data-day`` attribute (dd/mm/yyyy)."""
        return target.strftime("%d/%m/%Y")

    @staticmethod
    def fallback_input_value(target: date) -> str:
        """Text the date input accepts when typed directly (dd-mm-yyyy)."""
        return target.strftime("%d-%m-%Y")

    # -- report values ----------------------------------------------------

    def parse_amount(self, text: str | None) -> Decimal:
        """
        Parse a grouped amount such as ``1,234,567``.

        The placeholder ``-``, empty text, and anything unparsable all
        normalize to zero.
        """
        if text is None:
            return Decimal("0")
        cleaned = _CURRENCY_PREFIX.sub("", str(text)).strip()
        if cleaned in _PLACEHOLDERS:
            return Decimal("0")
        cleaned = cleaned.replace(self.thousands_separator, "").replace(" ", "")
        if self.decimal_separator != ".":
            cleaned = cleaned.replace(self.decimal_separator, ".")
        try:
            value = Decimal(cleaned)
        except InvalidOperation:
            return Decimal("0")
        if not value.is_finite():
            return Decimal("0")
        return value

    def parse_date(self, text: str | None) -> date:
        """
        Parse a long-form report date such as ``28 January 2026``.

        Raises:
            ValueError: if the text is empty, lacks a four-digit year, a
                day or a month, or cannot be parsed.
        """
        if text is None or not str(text).strip():
            raise ValueError("empty date")
        raw = str(text).strip()
        if _YEAR.search(raw) is None:
            raise ValueError(f"no four-digit year in {raw!r}")
        translated = _WORD.sub(
            lambda m: INDONESIAN_DATE_WORDS.get(m.group(0).lower(), m.group(0)),
            raw,
        )
        try:
            first, second = (
                date_parser.parse(translated, dayfirst=True, default=default).date()
                for default in _DATE_DEFAULTS
            )
        except (ValueError, OverflowError) as exc:
            raise ValueError(f"unparsable date {raw!r}") from exc
        if first != second:
            raise ValueError(f"missing day or month in {raw!r}")
        return first


DEFAULT_LOCALE = PortalLocale()
