"""
clinic_ingestion.domain.fields -- report column names and payment categories.

The daily revenue report groups its amount columns under five spanning
parents (billed, billed discount, covered, paid, receivable), each with one
leaf per payment category.  After header flattening a leaf column is named
``"<parent> - <leaf>"``; every mapping from those labels to Transaction
columns lives here so a portal header change is a one-line fix.
"""

from __future__ import annotations

from dataclasses import dataclass

from clinic_portal.table_extractor import LABEL_SEPARATOR

# Plain (non-spanned) columns.
DATE_FIELD = "Tanggal"
TRX_NO_FIELD = "No Transaksi"
ERM_NO_FIELD = "No. eRM"
PATIENT_NAME_FIELD = "Nama Pasien"
INSURANCE_FIELD = "Asuransi"
POLYCLINIC_FIELD = "Ruangan / Poli"
PAYMENT_METHOD_FIELD = "Metode Pembayaran"
VOUCHER_FIELD = "Voucher"

# Spanning parents.
BILLED = "Jumlah Tagihan ( Rp. )"
DISCOUNT = "Diskon Tagihan ( Rp. )"
COVERED = "Jumlah Jaminan ( Rp. )"
PAID = "Jumlah Pembayaran ( Rp. )"
RECEIVABLE = "Jumlah Piutang ( Rp. )"

TOTAL_LEAF = "Total"


@dataclass(frozen=True)
class PaymentCategory:
    """One payment dimension of the report."""

    key: str  # Transaction column suffix
    leaf_label: str  # Header text under each spanning parent
    ledger_name: str  # TargetCategory.name used by the ledger fan-out
    discountable: bool = True


CATEGORIES: tuple[PaymentCategory, ...] = (
    PaymentCategory("registration", "Karcis", "Karcis"),
    PaymentCategory("procedure", "Tindakan", "Tindakan"),
    PaymentCategory("lab", "Laboratorium", "Laboratorium"),
    PaymentCategory("pharmacy", "Obat", "Obat-obatan"),
    PaymentCategory("supplies", "Alkes", "Alat Kesehatan"),
    PaymentCategory("checkup", "MCU", "MCU"),
    PaymentCategory("radiology", "Radiologi", "Radiologi"),
)

ROUNDING = PaymentCategory("rounding", "Pembulatan", "Pembulatan", discountable=False)

# Fan-out order: every category plus rounding.
LEDGER_CATEGORIES: tuple[PaymentCategory, ...] = CATEGORIES + (ROUNDING,)


def column_label(parent: str, leaf: str) -> str:
    """Flattened header label of a leaf column under a spanning parent."""
    return f"{parent}{LABEL_SEPARATOR}{leaf}"


def _amount_columns() -> dict[str, str]:
    columns: dict[str, str] = {}
    for cat in CATEGORIES:
        columns[f"bill_{cat.key}"] = column_label(BILLED, cat.leaf_label)
    columns["bill_total"] = column_label(BILLED, TOTAL_LEAF)

    for cat in CATEGORIES:
        columns[f"discount_{cat.key}"] = column_label(DISCOUNT, cat.leaf_label)

    for cat in CATEGORIES:
        columns[f"covered_{cat.key}"] = column_label(COVERED, cat.leaf_label)
    columns["covered_total"] = column_label(COVERED, TOTAL_LEAF)

    for cat in CATEGORIES:
        columns[f"paid_{cat.key}"] = column_label(PAID, cat.leaf_label)
    columns["paid_rounding"] = column_label(PAID, ROUNDING.leaf_label)
    columns["paid_discount"] = column_label(PAID, "Diskon")
    columns["paid_tax"] = column_label(PAID, "PPN")
    columns["paid_voucher"] = column_label(PAID, "Voucher")
    columns["paid_total"] = column_label(PAID, TOTAL_LEAF)

    for cat in CATEGORIES:
        columns[f"receivable_{cat.key}"] = column_label(RECEIVABLE, cat.leaf_label)
    columns["receivable_total"] = column_label(RECEIVABLE, TOTAL_LEAF)
    return columns


# Transaction amount column -> flattened report label.
AMOUNT_COLUMNS: dict[str, str] = _amount_columns()
