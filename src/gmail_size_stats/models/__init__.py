"""Data models for gmail-size-stats.

This module contains Pydantic models for stored documents and for the
results handed from the Gmail adapter to the enrichment workers.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from gmail_size_stats.models.records import EPOCH, LabelRecord, MessageRecord, as_utc


class FetchStatus(str, Enum):
    """Classification of a single message metadata fetch."""

    SUCCESS = "success"
    NOT_FOUND = "not_found"
    RATE_LIMITED = "rate_limited"
    OTHER = "other"


class MessagePage(BaseModel):
    """One page of a users.messages.list response."""

    ids: list[str] = Field(default_factory=list, description="Message IDs on this page")
    next_page_token: Optional[str] = Field(
        default=None, description="Continuation token, None on the last page"
    )


class MessageMetadata(BaseModel):
    """The restricted set of fields fetched during enrichment."""

    internal_date: datetime = Field(description="Gmail internal timestamp (UTC)")
    label_ids: list[str] = Field(default_factory=list, description="Gmail label IDs")
    size_estimate: int = Field(default=0, ge=0, description="Estimated size in bytes")


class MetadataResult(BaseModel):
    """Outcome of fetching metadata for one message id."""

    message_id: str = Field(description="Requested Gmail message ID")
    status: FetchStatus = Field(description="Outcome classification")
    metadata: Optional[MessageMetadata] = Field(
        default=None, description="Fetched fields, present only on success"
    )
    error: Optional[str] = Field(default=None, description="Error message if the fetch failed")

    @classmethod
    def success(cls, message_id: str, metadata: MessageMetadata) -> "MetadataResult":
        return cls(message_id=message_id, status=FetchStatus.SUCCESS, metadata=metadata)

    @classmethod
    def failure(cls, message_id: str, status: FetchStatus, error: str) -> "MetadataResult":
        return cls(message_id=message_id, status=status, error=error)


__all__ = [
    "EPOCH",
    "FetchStatus",
    "LabelRecord",
    "MessageMetadata",
    "MessagePage",
    "MessageRecord",
    "MetadataResult",
    "as_utc",
]
