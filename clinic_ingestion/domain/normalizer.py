"""
RowNormalizer -- report field map to NormalizedRow.

Amounts never fail: placeholders and garbage normalize to zero through the
locale adapter.  The transaction date and the patient record number do
fail, with RowParseError, which invalidates only that row.
"""

from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal

from clinic_kernel.exceptions import RowParseError
from clinic_portal.locale import DEFAULT_LOCALE, PortalLocale

from clinic_ingestion.domain.fields import (
    AMOUNT_COLUMNS,
    DATE_FIELD,
    ERM_NO_FIELD,
    INSURANCE_FIELD,
    PATIENT_NAME_FIELD,
    PAYMENT_METHOD_FIELD,
    POLYCLINIC_FIELD,
    TRX_NO_FIELD,
    VOUCHER_FIELD,
)
from clinic_ingestion.domain.types import NormalizedRow

_EMPTY_MARKERS = frozenset({"", "-"})


def _text(row: Mapping[str, str], label: str) -> str:
    return " ".join(str(row.get(label) or "").split())


def _optional(row: Mapping[str, str], label: str) -> str | None:
    value = _text(row, label)
    return None if value in _EMPTY_MARKERS else value


class RowNormalizer:
    def __init__(self, locale: PortalLocale = DEFAULT_LOCALE) -> None:
        self._locale = locale

    def normalize(self, row: Mapping[str, str]) -> NormalizedRow:
        raw_date = row.get(DATE_FIELD)
        try:
            trx_date = self._locale.parse_date(raw_date)
        except ValueError as exc:
            raise RowParseError(DATE_FIELD, raw_date, str(exc)) from exc

        erm_no = _text(row, ERM_NO_FIELD)
        if erm_no in _EMPTY_MARKERS:
            raise RowParseError(ERM_NO_FIELD, row.get(ERM_NO_FIELD), "record number is empty")

        amounts: dict[str, Decimal] = {
            column: self._locale.parse_amount(row.get(label))
            for column, label in AMOUNT_COLUMNS.items()
        }

        return NormalizedRow(
            trx_date=trx_date,
            erm_no=erm_no,
            patient_name=_text(row, PATIENT_NAME_FIELD),
            trx_no=_optional(row, TRX_NO_FIELD),
            insurance_type=_text(row, INSURANCE_FIELD),
            polyclinic=_text(row, POLYCLINIC_FIELD),
            payment_method=_text(row, PAYMENT_METHOD_FIELD),
            voucher_code=_optional(row, VOUCHER_FIELD),
            amounts=amounts,
            raw={str(k): str(v) for k, v in row.items()},
        )
