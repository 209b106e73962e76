"""Mailbox synchronization: labels, stub import and enrichment."""

from .enrichment import EnrichmentPool, EnrichmentStats, enrich_all, validate_concurrency
from .labels import refresh_labels
from .source import MailSource
from .stubs import compute_resume_point, import_stubs, listing_query

__all__ = [
    "EnrichmentPool",
    "EnrichmentStats",
    "MailSource",
    "compute_resume_point",
    "enrich_all",
    "import_stubs",
    "listing_query",
    "refresh_labels",
    "validate_concurrency",
]
