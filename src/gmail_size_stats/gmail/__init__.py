"""Gmail API access.

The client returns internal models; callers never see raw API payloads or
``HttpError`` instances for per-message fetches.
"""

from .client import GmailClient

__all__ = ["GmailClient"]
