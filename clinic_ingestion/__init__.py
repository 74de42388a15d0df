"""
clinic_ingestion -- scraped report rows into patients, transactions and
ledger entries.

    RowNormalizer -> EntityUpserter -> LedgerFanout     (per row)
    AuditLogger                                         (per job attempt)
"""

from clinic_ingestion.domain import IngestionCounts, NormalizedRow, RowNormalizer
from clinic_ingestion.services import (
    AuditLogger,
    EntityUpserter,
    IngestionService,
    LedgerFanout,
)

__all__ = [
    "AuditLogger",
    "EntityUpserter",
    "IngestionCounts",
    "IngestionService",
    "LedgerFanout",
    "NormalizedRow",
    "RowNormalizer",
]
