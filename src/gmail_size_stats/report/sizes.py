"""Storage usage per label or label combination."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass

import structlog

from gmail_size_stats.store import LabelRepository, MessageRepository

logger = structlog.get_logger()

HEADER = "LabelId;Label name;Messages size;Messages count"


@dataclass(frozen=True)
class LabelFilter:
    """Label ids selected on the command line.

    An empty filter reports every label on its own; a non-empty filter
    reports one combined row for messages carrying all of the ids.
    """

    label_ids: tuple[str, ...] = ()

    @classmethod
    def of(cls, label_ids: Iterable[str] | None) -> LabelFilter:
        seen: dict[str, None] = {}
        for label_id in label_ids or ():
            seen.setdefault(label_id, None)
        return cls(tuple(seen))

    def __bool__(self) -> bool:
        return bool(self.label_ids)


@dataclass(frozen=True)
class SizeReportRow:
    """Aggregate size for one label or label combination."""

    label_ids: tuple[str, ...]
    label_names: tuple[str, ...]
    total_size: int
    message_count: int


class SizeReporter:
    """Computes size/count rows from enriched records."""

    def __init__(self, messages: MessageRepository, labels: LabelRepository) -> None:
        self._messages = messages
        self._labels = labels

    def report(self, label_filter: LabelFilter | None = None) -> list[SizeReportRow]:
        """Return one row per label, or a single row for ``label_filter``."""

        if label_filter:
            return [self._combined_row(label_filter.label_ids)]

        rows = []
        for label in self._labels.list_by_name():
            stats = self._messages.size_stats([label.id])
            rows.append(
                SizeReportRow(
                    label_ids=(label.id,),
                    label_names=(label.name,),
                    total_size=stats.total_size,
                    message_count=stats.message_count,
                )
            )
        logger.info("size_report_computed", rows=len(rows))
        return rows

    def _combined_row(self, label_ids: Sequence[str]) -> SizeReportRow:
        names = self._labels.names_for(label_ids)
        stats = self._messages.size_stats(label_ids)
        logger.info(
            "size_report_computed",
            label_ids=list(label_ids),
            total_size=stats.total_size,
            message_count=stats.message_count,
        )
        return SizeReportRow(
            label_ids=tuple(label_ids),
            label_names=tuple(names.get(label_id, "") for label_id in label_ids),
            total_size=stats.total_size,
            message_count=stats.message_count,
        )


def format_rows(rows: Iterable[SizeReportRow]) -> Iterator[str]:
    """Render rows as the semicolon-delimited table, header first."""

    yield HEADER
    for row in rows:
        yield ";".join(
            [
                ",".join(row.label_ids),
                ",".join(row.label_names),
                str(row.total_size),
                str(row.message_count),
            ]
        )
