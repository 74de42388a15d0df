"""Pure ingestion domain: report fields, typed rows, normalization."""

from clinic_ingestion.domain.fields import (
    AMOUNT_COLUMNS,
    CATEGORIES,
    LEDGER_CATEGORIES,
    PaymentCategory,
    column_label,
)
from clinic_ingestion.domain.normalizer import RowNormalizer
from clinic_ingestion.domain.types import (
    FanoutOutcome,
    IngestionCounts,
    NormalizedRow,
    UpsertOutcome,
)

__all__ = [
    "AMOUNT_COLUMNS",
    "CATEGORIES",
    "FanoutOutcome",
    "IngestionCounts",
    "LEDGER_CATEGORIES",
    "NormalizedRow",
    "PaymentCategory",
    "RowNormalizer",
    "UpsertOutcome",
    "column_label",
]
