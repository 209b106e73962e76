"""Full-replace import of the Gmail label catalog."""

from __future__ import annotations

import structlog

from gmail_size_stats.store import LabelRepository
from gmail_size_stats.sync.source import MailSource

logger = structlog.get_logger()


async def refresh_labels(*, source: MailSource, labels: LabelRepository) -> int:
    """Replace the stored label snapshot with the current catalog.

    The remote list is fetched before the collection is dropped, so a failed
    fetch leaves the previous snapshot in place.

    Returns:
        Number of labels imported.
    """

    catalog = await source.list_labels()
    imported = labels.replace_all(catalog)

    logger.info("labels_refreshed", imported=imported)
    print(f"Imported labels: {imported}")
    return imported
