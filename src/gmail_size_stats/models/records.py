"""Stored document models.

Field aliases match the document keys in MongoDB (``labelIds``,
``sizeEstimate``, ``internalDate``) so that records round-trip through
``model_dump(by_alias=True)`` without a separate mapping layer.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Date stored on stubs until enrichment replaces it.
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime.

    pymongo hands back naive datetimes (already in UTC) unless the client is
    created with ``tz_aware=True``.
    """

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class MessageRecord(BaseModel):
    """A mirrored Gmail message, either a stub or an enriched record."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(description="Gmail message ID")
    label_ids: list[str] = Field(
        default_factory=list, alias="labelIds", description="Gmail label IDs"
    )
    processed: bool = Field(default=False, description="Whether enrichment succeeded")
    size_estimate: int = Field(
        default=0, alias="sizeEstimate", description="Estimated size in bytes"
    )
    internal_date: datetime = Field(
        default=EPOCH, alias="internalDate", description="Gmail internal timestamp"
    )

    @field_validator("internal_date", mode="after")
    @classmethod
    def _utc(cls, v: datetime) -> datetime:
        return as_utc(v)

    @classmethod
    def stub(cls, message_id: str) -> MessageRecord:
        """Create a placeholder record awaiting enrichment."""
        return cls(id=message_id)

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> MessageRecord:
        return cls.model_validate(document)

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


class LabelRecord(BaseModel):
    """A Gmail label from the most recent snapshot."""

    model_config = ConfigDict(extra="ignore")

    id: str = Field(description="Gmail label ID")
    name: str = Field(description="Display name")

    def to_document(self) -> dict[str, Any]:
        return self.model_dump()
