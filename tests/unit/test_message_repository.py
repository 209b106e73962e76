"""Unit tests for the MongoDB message and label repositories."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from gmail_size_stats.models import LabelRecord, MessageMetadata


def test_insert_stub_is_idempotent(messages) -> None:
    assert messages.insert_stub("m1") is True
    assert messages.insert_stub("m1") is False

    assert messages.count() == 1
    record = messages.get("m1")
    assert record is not None
    assert record.processed is False


def test_latest_internal_date_ignores_stubs(messages, enriched) -> None:
    messages.insert_stub("stub")
    assert messages.latest_internal_date() is None

    enriched("old", ["A"], 10, datetime(2024, 1, 1, tzinfo=timezone.utc))
    enriched("new", ["A"], 10, datetime(2024, 3, 1, 12, 30, tzinfo=timezone.utc))

    assert messages.latest_internal_date() == datetime(2024, 3, 1, 12, 30, tzinfo=timezone.utc)


def test_find_unprocessed_ids_honours_limit_and_exclusions(messages, enriched) -> None:
    for i in range(5):
        messages.insert_stub(f"m{i}")
    enriched("done", ["A"], 1)

    assert len(messages.find_unprocessed_ids(limit=3)) == 3
    remaining = messages.find_unprocessed_ids(limit=10, exclude={"m0", "m1"})
    assert sorted(remaining) == ["m2", "m3", "m4"]


def test_mark_enriched_and_remove(messages) -> None:
    messages.insert_stub("m1")
    messages.insert_stub("m2")
    date = datetime(2024, 2, 3, 4, 5, 6, tzinfo=timezone.utc)

    messages.mark_enriched(
        "m1", MessageMetadata(internal_date=date, label_ids=["A", "B"], size_estimate=1000)
    )
    messages.remove("m2")

    record = messages.get("m1")
    assert record.processed is True
    assert record.label_ids == ["A", "B"]
    assert record.size_estimate == 1000
    assert record.internal_date == date
    assert messages.get("m2") is None
    assert messages.count(processed=False) == 0


class TestSizeStats:
    def test_single_label_is_membership(self, messages, enriched) -> None:
        enriched("m1", ["A"], 100)
        enriched("m2", ["A", "B"], 250)

        stats = messages.size_stats(["A"])

        assert (stats.total_size, stats.message_count) == (350, 2)

    def test_several_labels_is_intersection(self, messages, enriched) -> None:
        enriched("m1", ["A"], 100)
        enriched("m2", ["A", "B"], 250)
        enriched("m3", ["B"], 50)

        stats = messages.size_stats(["A", "B"])

        assert (stats.total_size, stats.message_count) == (250, 1)

    def test_stubs_are_not_counted(self, messages, enriched) -> None:
        enriched("m1", ["A"], 100)
        messages.insert_stub("m2")

        assert messages.size_stats(["A"]).message_count == 1

    def test_no_match_is_zero(self, messages, enriched) -> None:
        enriched("m1", ["A"], 100)

        stats = messages.size_stats(["C"])

        assert (stats.total_size, stats.message_count) == (0, 0)

    def test_empty_filter_is_rejected(self, messages) -> None:
        with pytest.raises(ValueError):
            messages.size_stats([])


class TestLabelRepository:
    def test_replace_all_discards_previous_snapshot(self, labels) -> None:
        labels.replace_all([LabelRecord(id="OLD", name="Old")])

        count = labels.replace_all(
            [LabelRecord(id="Label_2", name="Work"), LabelRecord(id="INBOX", name="INBOX")]
        )

        assert count == 2
        assert [l.id for l in labels.list_by_name()] == ["INBOX", "Label_2"]

    def test_replace_all_with_empty_catalog(self, labels) -> None:
        labels.replace_all([LabelRecord(id="OLD", name="Old")])

        assert labels.replace_all([]) == 0
        assert labels.list_by_name() == []

    def test_names_for_skips_unknown_ids(self, labels) -> None:
        labels.replace_all([LabelRecord(id="A", name="Alpha")])

        assert labels.names_for(["A", "Z"]) == {"A": "Alpha"}
