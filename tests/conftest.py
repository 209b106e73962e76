"""Pytest configuration and shared fixtures."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timezone

import mongomock
import pytest
import structlog

from gmail_size_stats.models import (
    FetchStatus,
    LabelRecord,
    MessageMetadata,
    MessagePage,
    MetadataResult,
)
from gmail_size_stats.store import LabelRepository, MessageRepository


class FakeMailSource:
    """In-memory mail source.

    ``pages`` is a list of id lists served in order through page tokens.
    ``outcomes`` maps a message id to either MessageMetadata (success) or a
    FetchStatus failure, or to a list of those served one per fetch with the
    last one repeating; unknown ids are reported as not found.
    """

    def __init__(
        self,
        pages: Iterable[Iterable[str]] | None = None,
        outcomes: dict[str, MessageMetadata | FetchStatus | list] | None = None,
        labels: Iterable[LabelRecord] | None = None,
    ) -> None:
        self.pages = [list(p) for p in (pages or [[]])]
        self.outcomes = dict(outcomes or {})
        self.labels = list(labels or [])
        self.list_calls: list[tuple[str | None, str | None]] = []
        self.fetch_calls: list[str] = []

    async def list_message_ids(
        self,
        query: str | None = None,
        page_token: str | None = None,
    ) -> MessagePage:
        self.list_calls.append((query, page_token))
        index = int(page_token) if page_token else 0
        next_token = str(index + 1) if index + 1 < len(self.pages) else None
        return MessagePage(ids=self.pages[index], next_page_token=next_token)

    async def get_message_metadata(self, message_id: str) -> MetadataResult:
        self.fetch_calls.append(message_id)
        outcome = self.outcomes.get(message_id, FetchStatus.NOT_FOUND)
        if isinstance(outcome, list):
            outcome = outcome.pop(0) if len(outcome) > 1 else outcome[0]
        if isinstance(outcome, FetchStatus):
            return MetadataResult.failure(message_id, outcome, outcome.value)
        return MetadataResult.success(message_id, outcome)

    async def list_labels(self) -> list[LabelRecord]:
        return list(self.labels)


@pytest.fixture(autouse=True)
def reset_structlog():
    """Undo logging configuration applied by cli.main()."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def mock_settings(tmp_path):
    """Provide mock settings for testing."""
    from gmail_size_stats.config import Settings

    return Settings(
        gmail_credentials_path=tmp_path / "client_secret.json",
        gmail_token_path=tmp_path / "token.json",
        log_level="DEBUG",
        debug=True,
        rate_limit_backoff_seconds=0,
    )


@pytest.fixture
def mongo_db():
    """Provide an in-memory MongoDB database."""
    client = mongomock.MongoClient()
    yield client["gmail"]
    client.close()


@pytest.fixture
def messages(mongo_db) -> MessageRepository:
    repo = MessageRepository(mongo_db["messages"])
    repo.initialize()
    return repo


@pytest.fixture
def labels(mongo_db) -> LabelRepository:
    return LabelRepository(mongo_db["labels"])


@pytest.fixture
def fake_source_cls() -> type[FakeMailSource]:
    return FakeMailSource


@pytest.fixture
def sample_message_data() -> dict:
    """Gmail API message restricted to internalDate,labelIds,sizeEstimate."""
    return {
        "internalDate": "1700000000000",
        "labelIds": ["INBOX", "UNREAD", "Label_12"],
        "sizeEstimate": 48213,
    }


@pytest.fixture
def enriched(messages):
    """Store a stub and enrich it in one step."""

    def _enrich(message_id: str, label_ids: list[str], size: int, date: datetime | None = None):
        messages.insert_stub(message_id)
        messages.mark_enriched(
            message_id,
            MessageMetadata(
                internal_date=date or datetime(2024, 5, 1, tzinfo=timezone.utc),
                label_ids=label_ids,
                size_estimate=size,
            ),
        )

    return _enrich
