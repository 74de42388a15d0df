"""
clinic_portal -- browser automation for the clinic management portal.

Public surface:
    PortalScraper         phases composed over one Playwright browser
    ChallengeAwareSession anti-bot interstitial tolerant login page access
    ReportNavigator       clinic selection, login, report filters, results
    TableExtractor        multi-level header flattening into row records
    PortalLocale          month names, calendar math, amount/date parsing
"""

from clinic_portal.locale import DEFAULT_LOCALE, PortalLocale
from clinic_portal.navigator import ReportNavigator
from clinic_portal.phases import PhaseResult, PhaseRunner, PhaseStep, PortalPhase
from clinic_portal.scraper import PortalScraper, ReportScraper
from clinic_portal.selectors import DEFAULT_SELECTORS, PortalSelectors
from clinic_portal.session import ChallengeAwareSession
from clinic_portal.table_extractor import ExtractedTable, TableExtractor, flatten_header
from clinic_portal.types import PortalAccount, ScrapeResult

__all__ = [
    "ChallengeAwareSession",
    "DEFAULT_LOCALE",
    "DEFAULT_SELECTORS",
    "ExtractedTable",
    "PhaseResult",
    "PhaseRunner",
    "PhaseStep",
    "PortalAccount",
    "PortalLocale",
    "PortalPhase",
    "PortalScraper",
    "PortalSelectors",
    "ReportNavigator",
    "ReportScraper",
    "ScrapeResult",
    "TableExtractor",
    "flatten_header",
]
