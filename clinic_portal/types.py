"""
clinic_portal.types -- Frozen DTOs exchanged with the portal layer.

ZERO I/O.  The portal layer never touches the relational store; the job
runner maps a Clinic row into a PortalAccount before scraping.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from uuid import UUID

from clinic_portal.phases import PhaseResult


@dataclass(frozen=True)
class PortalAccount:
    """Login details for one clinic's portal account."""

    clinic_id: UUID
    clinic_label: str  # Text typed into the clinic autocomplete
    login_url: str
    username: str
    password: str = field(repr=False)


@dataclass(frozen=True)
class ScrapeResult:
    """Rows extracted from one report render plus the phase trail."""

    rows: tuple[dict[str, str], ...]
    headers: tuple[str, ...] = ()
    phases: tuple[PhaseResult, ...] = ()

    @property
    def row_count(self) -> int:
        return len(self.rows)
