"""Unit tests for utility helpers."""

import pytest

from gmail_size_stats.utils import retry_on_failure


def test_retry_succeeds_after_transient_failures() -> None:
    calls = []

    @retry_on_failure(max_retries=2, delay=0)
    def flaky() -> str:
        calls.append(1)
        if len(calls) < 3:
            raise ConnectionError("down")
        return "ok"

    assert flaky() == "ok"
    assert len(calls) == 3


def test_retry_gives_up_and_reraises() -> None:
    @retry_on_failure(max_retries=1, delay=0)
    def always_down() -> None:
        raise ConnectionError("down")

    with pytest.raises(ConnectionError):
        always_down()


def test_unlisted_exceptions_are_not_retried() -> None:
    calls = []

    @retry_on_failure(max_retries=3, delay=0, exceptions=(ConnectionError,))
    def broken() -> None:
        calls.append(1)
        raise ValueError("bad input")

    with pytest.raises(ValueError):
        broken()
    assert len(calls) == 1
