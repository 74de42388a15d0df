"""ORM models for the shared relational store."""

from clinic_kernel.models.audit_log import AuditLog
from clinic_kernel.models.clinic import (
    Clinic,
    ClinicInsuranceMapping,
    ClinicPolyMapping,
    PublicHoliday,
    TargetCategory,
)
from clinic_kernel.models.ledger_entry import LedgerEntry
from clinic_kernel.models.patient import Patient
from clinic_kernel.models.transaction import Transaction

__all__ = [
    "AuditLog",
    "Clinic",
    "ClinicInsuranceMapping",
    "ClinicPolyMapping",
    "LedgerEntry",
    "Patient",
    "PublicHoliday",
    "TargetCategory",
    "Transaction",
]
