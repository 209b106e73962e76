"""MongoDB-backed repositories for mirrored messages and labels.

Every message document is keyed by the Gmail message id (``id``, unique).
Writes touch exactly one document, so concurrent enrichment workers never
need in-process locking.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime

import structlog
from pymongo import ASCENDING, DESCENDING
from pymongo.collection import Collection
from pymongo.errors import DuplicateKeyError, PyMongoError

from gmail_size_stats.exceptions import StoreError
from gmail_size_stats.models import LabelRecord, MessageMetadata, MessageRecord, as_utc

logger = structlog.get_logger()


@dataclass(frozen=True)
class SizeStats:
    """Aggregate size and count for a set of enriched messages."""

    total_size: int
    message_count: int


def label_match(label_ids: Sequence[str]) -> dict:
    """Build the ``labelIds`` condition for a label filter.

    One label is a membership test; several labels require all of them.
    """

    if len(label_ids) == 1:
        return {"labelIds": label_ids[0]}
    return {"labelIds": {"$all": list(label_ids)}}


class MessageRepository:
    """Repository for storing and querying message records."""

    def __init__(self, collection: Collection) -> None:
        """Create a repository.

        Args:
            collection: The MongoDB collection holding message documents.
        """

        self._collection = collection

    def initialize(self) -> None:
        """Create the indexes the sync and report queries rely on."""

        try:
            self._collection.create_index([("id", ASCENDING)], unique=True)
            self._collection.create_index([("processed", ASCENDING)])
            self._collection.create_index([("internalDate", DESCENDING)])
            self._collection.create_index([("labelIds", ASCENDING)])
        except PyMongoError as exc:
            raise StoreError(f"Can't create indexes for messages collection: {exc}") from exc

    def insert_stub(self, message_id: str) -> bool:
        """Insert a placeholder record.

        Returns:
            True if the record was created, False if the id was already known.

        Raises:
            StoreError: On any failure other than a duplicate id.
        """

        try:
            self._collection.insert_one(MessageRecord.stub(message_id).to_document())
        except DuplicateKeyError:
            return False
        except PyMongoError as exc:
            raise StoreError(f"Can't insert message {message_id}: {exc}") from exc
        return True

    def latest_internal_date(self) -> datetime | None:
        """Return the newest internalDate among enriched records, if any."""

        try:
            doc = self._collection.find_one(
                {"processed": True},
                projection={"internalDate": 1},
                sort=[("internalDate", DESCENDING)],
            )
        except PyMongoError as exc:
            raise StoreError(f"Can't read latest message date: {exc}") from exc

        if doc is None or doc.get("internalDate") is None:
            return None
        return as_utc(doc["internalDate"])

    def find_unprocessed_ids(self, limit: int, exclude: Iterable[str] = ()) -> list[str]:
        """Return up to ``limit`` ids of records awaiting enrichment."""

        query: dict = {"processed": False}
        excluded = list(exclude)
        if excluded:
            query["id"] = {"$nin": excluded}

        try:
            cursor = self._collection.find(query, projection={"id": 1}).limit(limit)
            return [doc["id"] for doc in cursor]
        except PyMongoError as exc:
            raise StoreError(f"Can't read unprocessed messages: {exc}") from exc

    def mark_enriched(self, message_id: str, metadata: MessageMetadata) -> None:
        """Store fetched fields and flag the record as processed."""

        try:
            self._collection.update_one(
                {"id": message_id},
                {
                    "$set": {
                        "labelIds": list(metadata.label_ids),
                        "sizeEstimate": metadata.size_estimate,
                        "internalDate": metadata.internal_date,
                        "processed": True,
                    }
                },
            )
        except PyMongoError as exc:
            raise StoreError(f"Can't update message {message_id}: {exc}") from exc

    def remove(self, message_id: str) -> None:
        try:
            self._collection.delete_one({"id": message_id})
        except PyMongoError as exc:
            raise StoreError(f"Can't remove message {message_id}: {exc}") from exc

    def get(self, message_id: str) -> MessageRecord | None:
        try:
            doc = self._collection.find_one({"id": message_id})
        except PyMongoError as exc:
            raise StoreError(f"Can't read message {message_id}: {exc}") from exc
        return MessageRecord.from_document(doc) if doc is not None else None

    def count(self, processed: bool | None = None) -> int:
        query = {} if processed is None else {"processed": processed}
        try:
            return self._collection.count_documents(query)
        except PyMongoError as exc:
            raise StoreError(f"Can't count messages: {exc}") from exc

    def size_stats(self, label_ids: Sequence[str]) -> SizeStats:
        """Sum sizeEstimate and count enriched messages matching a label filter."""

        if not label_ids:
            raise ValueError("label_ids must not be empty")

        pipeline = [
            {"$match": {"processed": True, **label_match(label_ids)}},
            {
                "$group": {
                    "_id": None,
                    "total_size": {"$sum": "$sizeEstimate"},
                    "message_count": {"$sum": 1},
                }
            },
        ]

        try:
            rows = list(self._collection.aggregate(pipeline))
        except PyMongoError as exc:
            raise StoreError(f"Can't aggregate message sizes: {exc}") from exc

        if not rows:
            return SizeStats(total_size=0, message_count=0)
        return SizeStats(
            total_size=int(rows[0].get("total_size") or 0),
            message_count=int(rows[0].get("message_count") or 0),
        )


class LabelRepository:
    """Repository for the label snapshot."""

    def __init__(self, collection: Collection) -> None:
        self._collection = collection

    def replace_all(self, labels: Sequence[LabelRecord]) -> int:
        """Drop the previous snapshot and store ``labels`` in its place.

        Returns:
            Number of labels stored.

        Raises:
            StoreError: If the collection cannot be recreated or any insert fails.
        """

        try:
            self._collection.drop()
            self._collection.create_index([("id", ASCENDING)], unique=True)
        except PyMongoError as exc:
            raise StoreError(f"Can't recreate labels collection: {exc}") from exc

        if not labels:
            return 0

        try:
            result = self._collection.insert_many([label.to_document() for label in labels])
        except PyMongoError as exc:
            raise StoreError(f"Can't insert labels: {exc}") from exc
        return len(result.inserted_ids)

    def list_by_name(self) -> list[LabelRecord]:
        try:
            docs = list(self._collection.find({}, projection={"_id": 0}).sort("name", ASCENDING))
        except PyMongoError as exc:
            raise StoreError(f"Can't read labels: {exc}") from exc
        return [LabelRecord.model_validate(doc) for doc in docs]

    def names_for(self, label_ids: Sequence[str]) -> dict[str, str]:
        """Map each known id in ``label_ids`` to its display name."""

        try:
            docs = self._collection.find(
                {"id": {"$in": list(label_ids)}}, projection={"_id": 0, "id": 1, "name": 1}
            )
            return {doc["id"]: doc["name"] for doc in docs}
        except PyMongoError as exc:
            raise StoreError(f"Can't read labels: {exc}") from exc
