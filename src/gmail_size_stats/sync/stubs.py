"""Incremental import of message ids as stub records.

The resume point is derived from the store itself: the newest enriched
message minus a safety margin. Listing overlaps the previous run instead of
risking a gap, and duplicate ids are absorbed by the unique index.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import structlog

from gmail_size_stats.models import EPOCH
from gmail_size_stats.store import MessageRepository
from gmail_size_stats.sync.source import MailSource

logger = structlog.get_logger()

DEFAULT_RESUME_MARGIN = timedelta(hours=48)


def compute_resume_point(
    latest: datetime | None,
    margin: timedelta = DEFAULT_RESUME_MARGIN,
) -> datetime:
    """Return the lower bound for the next listing query.

    Args:
        latest: Newest internalDate among enriched records, or None.
        margin: Overlap subtracted from ``latest``.
    """

    if latest is None:
        return EPOCH
    if latest.tzinfo is None:
        latest = latest.replace(tzinfo=timezone.utc)
    if latest <= EPOCH:
        return EPOCH
    return latest - margin


def listing_query(resume_point: datetime) -> str | None:
    """Gmail search query selecting messages newer than ``resume_point``.

    Returns None (no filter) when resuming from the sentinel.
    """

    if resume_point <= EPOCH:
        return None
    # Gmail supports `after:<unix_seconds>`.
    return f"after:{int(resume_point.timestamp())}"


async def import_stubs(
    *,
    source: MailSource,
    messages: MessageRepository,
    margin: timedelta = DEFAULT_RESUME_MARGIN,
) -> int:
    """List message ids since the resume point and store a stub for each.

    Returns:
        Number of message ids listed (new and already known).

    Raises:
        GmailAPIError: If listing fails.
        StoreError: If an insert fails for any reason other than a duplicate id.
    """

    latest = await asyncio.to_thread(messages.latest_internal_date)
    resume_point = compute_resume_point(latest, margin)
    query = listing_query(resume_point)

    logger.info("stub_import_started", resume_point=resume_point.isoformat(), query=query)

    listed = 0
    inserted = 0
    page_token: str | None = None
    while True:
        page = await source.list_message_ids(query=query, page_token=page_token)

        for message_id in page.ids:
            if await asyncio.to_thread(messages.insert_stub, message_id):
                inserted += 1
        listed += len(page.ids)

        if page.ids:
            logger.debug("stub_page_imported", page_size=len(page.ids), listed=listed)
            print(f"Processed {listed} messages")

        page_token = page.next_page_token
        if not page_token:
            break

    logger.info("stub_import_done", listed=listed, inserted=inserted)
    return listed
