"""Tests for RowNormalizer."""

from datetime import date
from decimal import Decimal

import pytest

from clinic_ingestion.domain.fields import (
    DATE_FIELD,
    ERM_NO_FIELD,
    PATIENT_NAME_FIELD,
    TRX_NO_FIELD,
    VOUCHER_FIELD,
)
from clinic_ingestion.domain.normalizer import RowNormalizer
from clinic_kernel.exceptions import RowParseError


@pytest.fixture
def normalizer():
    return RowNormalizer()


class TestNormalize:
    def test_typical_row(self, normalizer, report_row):
        row = normalizer.normalize(report_row())

        assert row.trx_date == date(2026, 1, 28)
        assert row.erm_no == "ERM-0001"
        assert row.trx_no == "TRX-0001"
        assert row.patient_name == "Siti Aminah"
        assert row.polyclinic == "Poli Umum"
        assert row.voucher_code is None
        assert row.bill_total == Decimal("150000")
        assert row.amount("paid_procedure") == Decimal("150000")
        assert row.amount("paid_lab") == Decimal("0")

    def test_raw_payload_keeps_every_field(self, normalizer, report_row):
        raw = report_row()
        row = normalizer.normalize(raw)
        assert row.raw == raw

    def test_text_whitespace_collapsed(self, normalizer, report_row):
        row = normalizer.normalize(report_row({PATIENT_NAME_FIELD: "  Siti \n  Aminah "}))
        assert row.patient_name == "Siti Aminah"

    def test_placeholder_texts_become_none(self, normalizer, report_row):
        row = normalizer.normalize(report_row({TRX_NO_FIELD: "-", VOUCHER_FIELD: "VC-10"}))
        assert row.trx_no is None
        assert row.voucher_code == "VC-10"

    def test_unparsable_amounts_are_zero(self, normalizer, report_row):
        row = normalizer.normalize(report_row(amounts={"paid_lab": "n/a", "paid_tax": ""}))
        assert row.amount("paid_lab") == Decimal("0")
        assert row.amount("paid_tax") == Decimal("0")

    def test_missing_amount_columns_are_zero(self, normalizer):
        row = normalizer.normalize({DATE_FIELD: "28 Januari 2026", ERM_NO_FIELD: "ERM-9"})
        assert row.bill_total == Decimal("0")
        assert row.patient_name == ""
        assert row.polyclinic == ""

    @pytest.mark.parametrize("value", ["", "kemarin", "31 Februari 2026", None])
    def test_bad_date_rejects_row(self, normalizer, report_row, value):
        raw = report_row()
        raw[DATE_FIELD] = value

        with pytest.raises(RowParseError) as exc_info:
            normalizer.normalize(raw)

        assert exc_info.value.field == DATE_FIELD
        assert exc_info.value.raw_value == value

    @pytest.mark.parametrize("value", ["", "-", "   "])
    def test_empty_record_number_rejects_row(self, normalizer, report_row, value):
        with pytest.raises(RowParseError) as exc_info:
            normalizer.normalize(report_row({ERM_NO_FIELD: value}))
        assert exc_info.value.field == ERM_NO_FIELD
