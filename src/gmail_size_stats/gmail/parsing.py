"""Helpers for parsing Gmail API responses into internal models."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any

from gmail_size_stats.models import FetchStatus, LabelRecord, MessageMetadata

# Gmail reports per-user quota exhaustion as 403 with one of these reasons.
_RATE_LIMIT_REASONS = frozenset({"rateLimitExceeded", "userRateLimitExceeded"})


def _parse_internal_date(value: Any) -> datetime:
    try:
        internal_ms = int(value) if value is not None else 0
    except (TypeError, ValueError):
        internal_ms = 0
    return datetime.fromtimestamp(internal_ms / 1000.0, tz=timezone.utc)


def message_to_metadata(message: dict[str, Any]) -> MessageMetadata:
    """Convert a Gmail API message restricted to internalDate,labelIds,sizeEstimate.

    Args:
        message: Gmail API message dict.

    Returns:
        MessageMetadata: Parsed enrichment fields.
    """

    label_ids = message.get("labelIds") or []
    if not isinstance(label_ids, list):
        label_ids = []

    try:
        size_estimate = int(message.get("sizeEstimate") or 0)
    except (TypeError, ValueError):
        size_estimate = 0

    return MessageMetadata(
        internal_date=_parse_internal_date(message.get("internalDate")),
        label_ids=[str(x) for x in label_ids if isinstance(x, str)],
        size_estimate=max(size_estimate, 0),
    )


def labels_from_response(response: dict[str, Any]) -> list[LabelRecord]:
    """Convert a users.labels.list response into label records."""

    out: list[LabelRecord] = []
    for label in response.get("labels", []) or []:
        lid = label.get("id")
        name = label.get("name")
        if lid and name is not None:
            out.append(LabelRecord(id=str(lid), name=str(name)))
    return out


def _error_reasons(content: bytes | str | None) -> set[str]:
    if not content:
        return set()
    if isinstance(content, bytes):
        content = content.decode("utf-8", errors="replace")
    try:
        data = json.loads(content)
    except ValueError:
        return set()
    if not isinstance(data, dict):
        return set()
    error = data.get("error")
    if not isinstance(error, dict):
        return set()
    reasons: set[str] = set()
    for item in error.get("errors", []) or []:
        if isinstance(item, dict) and isinstance(item.get("reason"), str):
            reasons.add(item["reason"])
    return reasons


def classify_http_status(status: int | None, content: bytes | str | None = None) -> FetchStatus:
    """Map an HTTP error status (and body) onto a fetch classification."""

    if status == 404:
        return FetchStatus.NOT_FOUND
    if status == 429:
        return FetchStatus.RATE_LIMITED
    if status == 403 and _error_reasons(content) & _RATE_LIMIT_REASONS:
        return FetchStatus.RATE_LIMITED
    return FetchStatus.OTHER
