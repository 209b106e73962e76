"""MongoDB connection wiring."""

from __future__ import annotations

from dataclasses import dataclass

import structlog
from pymongo import MongoClient
from pymongo.errors import PyMongoError

from gmail_size_stats.config import Settings
from gmail_size_stats.exceptions import StoreError
from gmail_size_stats.store.repository import LabelRepository, MessageRepository
from gmail_size_stats.utils import retry_on_failure

logger = structlog.get_logger()


@dataclass(frozen=True)
class Store:
    """The two collections the sync reads and writes."""

    messages: MessageRepository
    labels: LabelRepository

    @classmethod
    def from_client(cls, client: MongoClient, settings: Settings) -> Store:
        db = client[settings.mongo_database]
        return cls(
            messages=MessageRepository(db[settings.messages_collection]),
            labels=LabelRepository(db[settings.labels_collection]),
        )


def connect(settings: Settings, connect_string: str | None = None) -> MongoClient:
    """Open a MongoDB client and verify the server is reachable.

    Args:
        settings: Application settings.
        connect_string: Overrides ``settings.mongo_connect_string`` when given.

    Raises:
        StoreError: If the server cannot be reached after retries.
    """

    uri = connect_string or settings.mongo_connect_string
    client: MongoClient = MongoClient(
        uri,
        serverSelectionTimeoutMS=settings.mongo_timeout_ms,
        tz_aware=True,
    )

    @retry_on_failure(max_retries=settings.max_retries, delay=1.0, exceptions=(PyMongoError,))
    def _ping() -> None:
        client.admin.command("ping")

    try:
        _ping()
    except PyMongoError as exc:
        client.close()
        raise StoreError(f"Unable to connect to MongoDB: {exc}") from exc

    logger.info("mongo_connected", database=settings.mongo_database)
    return client
