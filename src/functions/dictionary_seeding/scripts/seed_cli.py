#!/usr/bin/env python3
"""
CLI for the dictionary seeding job.

Usage:
    python seed_cli.py run                      # Process one seed batch
    python seed_cli.py recover --limit 50       # Retry or dead-letter failed items
    python seed_cli.py requeue ID [ID ...]      # Move dead-letter items back to the queue
    python seed_cli.py init [--clear-pending]   # Queue the built-in seed terms
    python seed_cli.py status [--days 7]        # Queue, budget and recovery stats
    python seed_cli.py enhance --limit 10       # Improve low-scoring entries
"""

import argparse
import json
import logging
import sys

# Bootstrap path
from _bootstrap import *  # noqa

from src.shared.utils.env import load_env
from src.shared.utils.logging import setup_logging
from src.shared.utils.config_validator import ConfigurationError
from src.functions.dictionary_seeding.core.data import high_priority_terms
from src.functions.dictionary_seeding.core.factory import build_components

logger = logging.getLogger(__name__)


def _print(payload: dict) -> None:
    print(json.dumps(payload, indent=2, default=str, ensure_ascii=False))


def cmd_run(components, args) -> int:
    result = components.seed_processor().run_batch()
    _print(result.to_dict())
    return 1 if result.failed and not result.succeeded else 0


def cmd_recover(components, args) -> int:
    result = components.recovery_service().recover_failed_items(args.limit)
    _print(result.to_dict())
    return 1 if result.errors else 0


def cmd_requeue(components, args) -> int:
    result = components.recovery_service().retry_from_dead_letter_queue(args.ids)
    _print(result.to_dict())
    return 1 if result.errors else 0


def cmd_init(components, args) -> int:
    terms = high_priority_terms(args.min_priority) if args.min_priority else None
    _print(components.seed_processor().initialize_backlog(terms, clear_pending=args.clear_pending))
    return 0


def cmd_status(components, args) -> int:
    processor = components.seed_processor()
    _print({
        "queue": processor.get_queue_status(),
        "processing": processor.get_processing_stats(args.days),
        "usage": components.ledger.get_usage_stats(args.days),
        "recovery": components.recovery_service().get_recovery_stats().to_dict(),
    })
    return 0


def cmd_enhance(components, args) -> int:
    result = components.enhancement_runner().run(args.limit)
    _print(result.to_dict())
    return 1 if result.errors else 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Seed the music dictionary from the prioritized backlog",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging (DEBUG level)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Process one seed batch")
    run_parser.set_defaults(handler=cmd_run)

    recover_parser = subparsers.add_parser("recover", help="Recover failed backlog items")
    recover_parser.add_argument("--limit", type=int, default=50, help="Maximum items to examine")
    recover_parser.set_defaults(handler=cmd_recover)

    requeue_parser = subparsers.add_parser("requeue", help="Re-queue dead-letter items")
    requeue_parser.add_argument("ids", nargs="+", help="Dead-letter item IDs")
    requeue_parser.set_defaults(handler=cmd_requeue)

    init_parser = subparsers.add_parser("init", help="Queue the built-in seed terms")
    init_parser.add_argument(
        "--clear-pending",
        action="store_true",
        help="Delete pending backlog items before queueing",
    )
    init_parser.add_argument(
        "--min-priority",
        type=int,
        help="Only queue catalog terms at or above this priority",
    )
    init_parser.set_defaults(handler=cmd_init)

    status_parser = subparsers.add_parser("status", help="Show queue and budget statistics")
    status_parser.add_argument("--days", type=int, default=7, help="Reporting window in days")
    status_parser.set_defaults(handler=cmd_status)

    enhance_parser = subparsers.add_parser("enhance", help="Enhance low-scoring entries")
    enhance_parser.add_argument("--limit", type=int, default=10, help="Maximum entries to enhance")
    enhance_parser.set_defaults(handler=cmd_enhance)

    return parser


def main() -> int:
    args = build_parser().parse_args()

    load_env()
    setup_logging(level="DEBUG" if args.verbose else None)

    try:
        components = build_components()
    except (ConfigurationError, ValueError) as e:
        logger.error(f"Configuration error: {e}")
        return 2

    try:
        return args.handler(components, args)
    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        return 130
    except Exception as e:
        logger.error(f"Command '{args.command}' failed: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
