"""Ingestion services: upserts, ledger fan-out, audit records."""

from clinic_ingestion.services.audit_logger import AuditLogger
from clinic_ingestion.services.ingestion_service import IngestionService
from clinic_ingestion.services.ledger_fanout import LedgerFanout, ledger_amount
from clinic_ingestion.services.upsert_service import EntityUpserter

__all__ = [
    "AuditLogger",
    "EntityUpserter",
    "IngestionService",
    "LedgerFanout",
    "ledger_amount",
]
