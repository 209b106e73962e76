"""The mail source capability consumed by the sync components."""

from __future__ import annotations

from typing import Protocol

from gmail_size_stats.models import LabelRecord, MessagePage, MetadataResult


class MailSource(Protocol):
    """What the sync pipeline needs from a mailbox.

    ``GmailClient`` is the production implementation.
    """

    async def list_message_ids(
        self,
        query: str | None = None,
        page_token: str | None = None,
    ) -> MessagePage: ...

    async def get_message_metadata(self, message_id: str) -> MetadataResult: ...

    async def list_labels(self) -> list[LabelRecord]: ...
