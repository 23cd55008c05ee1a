from .search import Search
from .company import Company
from .enrichment_source import EnrichmentSource, SourcePriority
from .api_credential import ApiCredential
from .report_settings import ReportSettings
from .report import Report, ReportTier
from .audit_log import AuditLog

__all__ = [
    "Search",
    "Company",
    "EnrichmentSource",
    "SourcePriority",
    "ApiCredential",
    "ReportSettings",
    "Report",
    "ReportTier",
    "AuditLog",
]
