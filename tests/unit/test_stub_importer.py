"""Unit tests for the incremental stub importer."""

from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone

import pytest

from gmail_size_stats.exceptions import StoreError
from gmail_size_stats.models import EPOCH
from gmail_size_stats.sync import compute_resume_point, import_stubs, listing_query


class TestResumePoint:
    def test_empty_store_uses_sentinel(self) -> None:
        assert compute_resume_point(None) == EPOCH

    def test_subtracts_two_days(self) -> None:
        latest = datetime(2024, 6, 10, 8, 0, tzinfo=timezone.utc)

        assert compute_resume_point(latest) == datetime(2024, 6, 8, 8, 0, tzinfo=timezone.utc)

    def test_custom_margin(self) -> None:
        latest = datetime(2024, 6, 10, tzinfo=timezone.utc)

        assert compute_resume_point(latest, timedelta(hours=1)) == latest - timedelta(hours=1)

    def test_naive_dates_are_utc(self) -> None:
        assert compute_resume_point(datetime(2024, 6, 10)) == datetime(
            2024, 6, 8, tzinfo=timezone.utc
        )

    def test_query(self) -> None:
        assert listing_query(EPOCH) is None
        assert listing_query(datetime(2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc)) == (
            "after:1700000000"
        )


@pytest.mark.asyncio
async def test_import_follows_page_tokens(messages, fake_source_cls, capsys) -> None:
    source = fake_source_cls(pages=[["a", "b"], ["c"], ["d", "e"]])

    listed = await import_stubs(source=source, messages=messages)

    assert listed == 5
    assert messages.count(processed=False) == 5
    assert source.list_calls == [(None, None), (None, "1"), (None, "2")]
    assert "Processed 5 messages" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_import_twice_is_idempotent(messages, fake_source_cls) -> None:
    source = fake_source_cls(pages=[["a", "b"], ["b", "c"]])

    await import_stubs(source=source, messages=messages)
    first = sorted(r.id for r in map(messages.get, ["a", "b", "c"]) if r)
    await import_stubs(source=source, messages=messages)

    assert messages.count() == 3
    assert first == ["a", "b", "c"]
    assert all(not messages.get(i).processed for i in first)


@pytest.mark.asyncio
async def test_import_resumes_from_latest_enriched(messages, enriched, fake_source_cls) -> None:
    latest = datetime(2023, 11, 16, 22, 13, 20, tzinfo=timezone.utc)
    enriched("old", ["A"], 1, latest - timedelta(days=30))
    enriched("new", ["A"], 1, latest)
    source = fake_source_cls(pages=[["new", "newer"]])

    await import_stubs(source=source, messages=messages)

    assert source.list_calls == [("after:1700000000", None)]
    # Already-enriched ids listed again stay enriched.
    assert messages.get("new").processed is True
    assert messages.get("newer").processed is False


@pytest.mark.asyncio
async def test_store_failure_is_fatal(fake_source_cls) -> None:
    class FailingRepository:
        def latest_internal_date(self):
            return None

        def insert_stub(self, message_id: str) -> bool:
            raise StoreError("disk full")

    with pytest.raises(StoreError):
        await import_stubs(source=fake_source_cls(pages=[["a"]]), messages=FailingRepository())


@pytest.mark.asyncio
async def test_store_calls_run_off_the_event_loop(fake_source_cls) -> None:
    loop_thread = threading.get_ident()
    threads: list[int] = []

    class RecordingRepository:
        def latest_internal_date(self):
            threads.append(threading.get_ident())
            return None

        def insert_stub(self, message_id: str) -> bool:
            threads.append(threading.get_ident())
            return True

    await import_stubs(source=fake_source_cls(pages=[["a", "b"]]), messages=RecordingRepository())

    assert len(threads) == 3
    assert loop_thread not in threads
