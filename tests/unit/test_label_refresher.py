"""Unit tests for the label refresher."""

import pytest

from gmail_size_stats.exceptions import GmailAPIError, StoreError
from gmail_size_stats.models import LabelRecord
from gmail_size_stats.sync import refresh_labels


@pytest.mark.asyncio
async def test_refresh_replaces_snapshot(labels, fake_source_cls, capsys) -> None:
    labels.replace_all([LabelRecord(id="STALE", name="Stale")])
    source = fake_source_cls(
        labels=[LabelRecord(id="INBOX", name="INBOX"), LabelRecord(id="Label_1", name="Bills")]
    )

    count = await refresh_labels(source=source, labels=labels)

    assert count == 2
    assert {l.id for l in labels.list_by_name()} == {"INBOX", "Label_1"}
    assert "Imported labels: 2" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_duplicate_label_ids_are_fatal(labels, fake_source_cls) -> None:
    source = fake_source_cls(
        labels=[LabelRecord(id="INBOX", name="INBOX"), LabelRecord(id="INBOX", name="Again")]
    )

    with pytest.raises(StoreError):
        await refresh_labels(source=source, labels=labels)


@pytest.mark.asyncio
async def test_failed_fetch_keeps_previous_snapshot(labels) -> None:
    labels.replace_all([LabelRecord(id="KEEP", name="Keep")])

    class BrokenSource:
        async def list_labels(self):
            raise GmailAPIError("unavailable")

    with pytest.raises(GmailAPIError):
        await refresh_labels(source=BrokenSource(), labels=labels)

    assert [l.id for l in labels.list_by_name()] == ["KEEP"]
