"""Concurrent enrichment of stub records.

A dispatcher reads batches of unprocessed records and hands their ids to a
fixed set of worker tasks through a queue holding at most one item, so
dispatch can never run far ahead of the workers. Each worker fetches the
restricted metadata for one id and applies the policy for its outcome:

- success: store labels, size and date and mark the record processed
- not found: delete the record
- rate limited: sleep, leave the record unprocessed for a later dispatch pass
- anything else: the worker stops; the remaining workers carry on

Once dispatch finds nothing left to hand out it sends one stop sentinel per
worker and waits for all of them to exit.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

import structlog

from gmail_size_stats.exceptions import InvalidConcurrencyError, StoreError
from gmail_size_stats.models import FetchStatus
from gmail_size_stats.store import MessageRepository
from gmail_size_stats.sync.source import MailSource

logger = structlog.get_logger()

MIN_CONCURRENCY = 1
MAX_CONCURRENCY = 50
DEFAULT_BATCH_SIZE = 100
DEFAULT_BACKOFF_SECONDS = 5.0

_STOP = object()


def validate_concurrency(concurrency: int) -> int:
    """Return ``concurrency`` if it is an int in [1, 50].

    Raises:
        InvalidConcurrencyError: Otherwise.
    """

    if (
        isinstance(concurrency, bool)
        or not isinstance(concurrency, int)
        or not MIN_CONCURRENCY <= concurrency <= MAX_CONCURRENCY
    ):
        raise InvalidConcurrencyError(
            f"Number of workers must be between {MIN_CONCURRENCY} and {MAX_CONCURRENCY}, "
            f"got {concurrency!r}"
        )
    return concurrency


@dataclass
class EnrichmentStats:
    """Counters for one run of the pool."""

    dispatched: int = 0
    enriched: int = 0
    removed: int = 0
    rate_limited: int = 0
    failed: int = 0
    stopped_workers: int = 0


class EnrichmentPool:
    """Dispatcher plus a fixed number of enrichment workers."""

    def __init__(
        self,
        *,
        source: MailSource,
        messages: MessageRepository,
        concurrency: int,
        batch_size: int = DEFAULT_BATCH_SIZE,
        backoff_seconds: float = DEFAULT_BACKOFF_SECONDS,
    ) -> None:
        """Create a pool.

        Args:
            source: Where message metadata is fetched from.
            messages: Repository holding the stub records.
            concurrency: Number of workers, 1 to 50.
            batch_size: Maximum records read per dispatch pass.
            backoff_seconds: Sleep after a rate-limited fetch.

        Raises:
            InvalidConcurrencyError: If ``concurrency`` is out of range.
        """

        self._concurrency = validate_concurrency(concurrency)
        self._source = source
        self._messages = messages
        self._batch_size = batch_size
        self._backoff_seconds = backoff_seconds

        self.stats = EnrichmentStats()
        # Ids handed to a worker and not yet settled.
        self._pending: set[str] = set()
        # Ids whose worker stopped on an unclassified failure.
        self._abandoned: set[str] = set()
        self._live_workers = 0
        self._all_stopped = asyncio.Event()
        self._fatal: StoreError | None = None

    @property
    def concurrency(self) -> int:
        return self._concurrency

    async def run(self) -> EnrichmentStats:
        """Enrich until a dispatch pass finds no unprocessed records to hand out.

        Raises:
            StoreError: If reading or writing a record fails.
        """

        batch = await self._next_batch()
        if not batch:
            logger.info("enrichment_nothing_to_do")
            return self.stats

        logger.info("enrichment_started", concurrency=self._concurrency)

        queue: asyncio.Queue = asyncio.Queue(maxsize=1)
        self._all_stopped = asyncio.Event()
        self._live_workers = self._concurrency
        workers = [
            asyncio.create_task(self._worker(i, queue), name=f"enrich-worker-{i}")
            for i in range(self._concurrency)
        ]

        try:
            await self._dispatch(queue, batch)
        finally:
            for _ in range(self._concurrency):
                if not await self._hand_off(queue, _STOP):
                    break
            await asyncio.gather(*workers)

        if self._fatal is not None:
            raise self._fatal

        logger.info("enrichment_done", **vars(self.stats))
        return self.stats

    async def _next_batch(self) -> list[str]:
        exclude = self._pending | self._abandoned
        return await asyncio.to_thread(
            self._messages.find_unprocessed_ids, self._batch_size, exclude
        )

    async def _dispatch(self, queue: asyncio.Queue, batch: list[str]) -> None:
        while batch:
            for message_id in batch:
                if self._fatal is not None:
                    return
                if message_id in self._pending:
                    continue
                self._pending.add(message_id)
                if not await self._hand_off(queue, message_id):
                    self._pending.discard(message_id)
                    logger.error("enrichment_all_workers_stopped", dispatched=self.stats.dispatched)
                    return
                self.stats.dispatched += 1

            if self._fatal is not None:
                return
            batch = await self._next_batch()

    async def _hand_off(self, queue: asyncio.Queue, item: object) -> bool:
        """Put ``item`` on the queue unless every worker has stopped."""

        if self._all_stopped.is_set():
            return False

        put = asyncio.ensure_future(queue.put(item))
        stopped = asyncio.ensure_future(self._all_stopped.wait())
        done, _ = await asyncio.wait({put, stopped}, return_when=asyncio.FIRST_COMPLETED)
        stopped.cancel()
        if put in done:
            return True
        put.cancel()
        return False

    async def _worker(self, index: int, queue: asyncio.Queue) -> None:
        log = logger.bind(worker=index)
        try:
            while True:
                item = await queue.get()
                if item is _STOP:
                    return

                message_id = str(item)
                try:
                    keep_going = await self._enrich_one(message_id, log)
                finally:
                    self._pending.discard(message_id)
                if not keep_going:
                    self.stats.stopped_workers += 1
                    return
        except StoreError as exc:
            log.error("enrichment_store_failed", error=str(exc))
            if self._fatal is None:
                self._fatal = exc
        finally:
            self._live_workers -= 1
            if self._live_workers == 0:
                self._all_stopped.set()

    async def _enrich_one(self, message_id: str, log) -> bool:
        """Fetch and apply one id; return False if the worker must stop."""

        result = await self._source.get_message_metadata(message_id)

        if result.status is FetchStatus.SUCCESS and result.metadata is not None:
            await asyncio.to_thread(self._messages.mark_enriched, message_id, result.metadata)
            self.stats.enriched += 1
            if self.stats.enriched % 100 == 0:
                log.info("enrichment_progress", enriched=self.stats.enriched)
            return True

        if result.status is FetchStatus.NOT_FOUND:
            await asyncio.to_thread(self._messages.remove, message_id)
            self.stats.removed += 1
            log.info("enrichment_message_removed", message_id=message_id)
            return True

        if result.status is FetchStatus.RATE_LIMITED:
            self.stats.rate_limited += 1
            log.warning(
                "enrichment_rate_limited",
                message_id=message_id,
                backoff_seconds=self._backoff_seconds,
            )
            # The id stays pending during the backoff, so dispatch skips it until then.
            await asyncio.sleep(self._backoff_seconds)
            return True

        self.stats.failed += 1
        self._abandoned.add(message_id)
        log.warning("enrichment_worker_stopped", message_id=message_id, error=result.error)
        return False


async def enrich_all(
    *,
    source: MailSource,
    messages: MessageRepository,
    concurrency: int,
    batch_size: int = DEFAULT_BATCH_SIZE,
    backoff_seconds: float = DEFAULT_BACKOFF_SECONDS,
) -> EnrichmentStats:
    """Validate ``concurrency`` and run one enrichment pool to completion."""

    pool = EnrichmentPool(
        source=source,
        messages=messages,
        concurrency=concurrency,
        batch_size=batch_size,
        backoff_seconds=backoff_seconds,
    )
    stats = await pool.run()
    print(
        f"Enriched {stats.enriched}, removed {stats.removed}, "
        f"rate limited {stats.rate_limited}"
    )
    return stats
