"""Command-line interface for gmail-size-stats.

This module provides the main entry point for the CLI application. The
action flags may be combined; they always run in the order labels,
messages, enrichment, report.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta

import pydantic
import structlog

from gmail_size_stats import __version__
from gmail_size_stats.config import Settings, get_settings
from gmail_size_stats.exceptions import GmailSizeStatsError
from gmail_size_stats.gmail import GmailClient
from gmail_size_stats.report import LabelFilter, SizeReporter, format_rows
from gmail_size_stats.store import Store, connect
from gmail_size_stats.sync import enrich_all, import_stubs, refresh_labels, validate_concurrency

logger = structlog.get_logger()


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gmail-size-stats",
        description="Mirror Gmail message metadata into MongoDB and report size per label",
    )
    parser.add_argument(
        "--importLabels",
        dest="import_labels",
        action="store_true",
        help="Import labels from Gmail (replaces the stored snapshot)",
    )
    parser.add_argument(
        "--importMessages",
        dest="import_messages",
        action="store_true",
        help="Import message ids from Gmail since the last sync",
    )
    parser.add_argument(
        "--processMessages",
        dest="process_messages",
        action="store_true",
        help="Fetch size, labels and date for every unprocessed message",
    )
    parser.add_argument(
        "--showSizes",
        dest="show_sizes",
        action="store_true",
        help="Print messages size and count per label",
    )
    parser.add_argument(
        "--procNum",
        dest="proc_num",
        type=int,
        default=None,
        help="Number of concurrent enrichment workers, 1-50 (default: settings default_concurrency)",
    )
    parser.add_argument(
        "--mongoConnectString",
        dest="mongo_connect_string",
        default=None,
        help="MongoDB connection string (default: settings mongo_connect_string)",
    )
    parser.add_argument(
        "-l",
        dest="label_ids",
        action="append",
        default=None,
        metavar="LABEL_ID",
        help="Label id for --showSizes; repeat to require several labels at once",
    )
    return parser


async def _run(args: argparse.Namespace, settings: Settings, concurrency: int) -> int:
    # asyncio.to_thread shares the default executor; give every worker a thread.
    asyncio.get_running_loop().set_default_executor(
        ThreadPoolExecutor(max_workers=concurrency + 4, thread_name_prefix="gmail-size-stats")
    )

    client = connect(settings, args.mongo_connect_string)
    try:
        store = Store.from_client(client, settings)
        store.messages.initialize()

        gmail: GmailClient | None = None
        if args.import_labels or args.import_messages or args.process_messages:
            gmail = GmailClient(settings)
            await gmail.authenticate()

        if args.import_labels:
            assert gmail is not None
            await refresh_labels(source=gmail, labels=store.labels)

        if args.import_messages:
            assert gmail is not None
            await import_stubs(
                source=gmail,
                messages=store.messages,
                margin=timedelta(hours=settings.resume_margin_hours),
            )

        if args.process_messages:
            assert gmail is not None
            await enrich_all(
                source=gmail,
                messages=store.messages,
                concurrency=concurrency,
                batch_size=settings.dispatch_batch_size,
                backoff_seconds=settings.rate_limit_backoff_seconds,
            )

        if args.show_sizes:
            reporter = SizeReporter(store.messages, store.labels)
            for line in format_rows(reporter.report(LabelFilter.of(args.label_ids))):
                print(line)
    finally:
        client.close()

    return 0


def _configure_logging(settings: Settings) -> None:
    level = logging.DEBUG if settings.debug else getattr(logging, settings.log_level, logging.INFO)
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(level),
        # Keep stdout for progress lines and the size table.
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )


def main(args: list[str] | None = None) -> int:
    """Main entry point for the gmail-size-stats CLI.

    Args:
        args: Command-line arguments. If None, uses sys.argv.

    Returns:
        Exit code (0 for success, 1 for a fatal error, 2 for usage errors).
    """
    if args is None:
        args = sys.argv[1:]

    try:
        settings = get_settings()
    except pydantic.ValidationError as exc:
        # Logging is not configured yet.
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return 1
    _configure_logging(settings)

    parser = _build_parser()
    parsed = parser.parse_args(args)

    if not (
        parsed.import_labels or parsed.import_messages or parsed.process_messages or parsed.show_sizes
    ):
        parser.print_help()
        return 2

    logger.info("gmail_size_stats_started", version=__version__, debug=settings.debug)

    try:
        concurrency = validate_concurrency(
            parsed.proc_num if parsed.proc_num is not None else settings.default_concurrency
        )
        return asyncio.run(_run(parsed, settings, concurrency))
    except GmailSizeStatsError as exc:
        logger.error("fatal_error", error_type=type(exc).__name__, error=str(exc))
        return 1


if __name__ == "__main__":
    sys.exit(main())
