"""
Cloud Function entry points for dictionary seeding.

This module provides handlers for:
1. Running a seed batch (scheduled)
2. Recovering failed backlog items (scheduled)
3. Re-queueing dead-letter items (on demand)
4. Enhancing low-scoring entries (scheduled, weekly)
5. Queue and processing status
6. Health check
"""

import logging
from typing import Any, Callable, Dict, Optional

import flask
import functions_framework

from src.shared.utils.env import load_env
from src.shared.utils.logging import setup_logging
from src.functions.dictionary_seeding.core.factory import SeedingComponents, build_components
from src.functions.dictionary_seeding import __version__

load_env()
setup_logging()
logger = logging.getLogger(__name__)

_components: Optional[SeedingComponents] = None


def get_components() -> SeedingComponents:
    """Build components once per warm instance."""
    global _components
    if _components is None:
        _components = build_components()
    return _components


def _run(action: str, job: Callable[[SeedingComponents], Dict[str, Any]]):
    try:
        payload = job(get_components())
        return {"status": "success", **payload}, 200
    except Exception as e:
        logger.exception(f"Error in {action}")
        return {"status": "error", "message": str(e)}, 500


def _limit(request: flask.Request, default: int) -> int:
    request_json = request.get_json(silent=True) or {}
    value = request_json.get("limit", request.args.get("limit", default))
    return max(1, int(value))


@functions_framework.http
def run_seed_batch(request: flask.Request):
    """Process the next batch of backlog items."""
    return _run(
        "run_seed_batch",
        lambda components: {"result": components.seed_processor().run_batch().to_dict()},
    )


@functions_framework.http
def recover_failed(request: flask.Request):
    """
    Classify failed backlog items and retry or dead-letter them.

    Accepts an optional JSON body with:
    - limit: int (default 50)
    """
    try:
        limit = _limit(request, 50)
    except (TypeError, ValueError):
        return {"status": "error", "message": "limit must be an integer"}, 400
    return _run(
        "recover_failed",
        lambda components: {"result": components.recovery_service().recover_failed_items(limit).to_dict()},
    )


@functions_framework.http
def retry_dead_letters(request: flask.Request):
    """
    Re-queue dead-letter items.

    Accepts a JSON body with:
    - ids: list[str] (required)
    """
    request_json = request.get_json(silent=True)
    if not request_json:
        return {"status": "error", "message": "Invalid JSON provided"}, 400

    ids = request_json.get("ids")
    if not isinstance(ids, list) or not ids:
        return {"status": "error", "message": "Missing required field: ids"}, 400

    return _run(
        "retry_dead_letters",
        lambda components: {
            "result": components.recovery_service().retry_from_dead_letter_queue(
                [str(dlq_id) for dlq_id in ids]
            ).to_dict()
        },
    )


@functions_framework.http
def enhance_entries(request: flask.Request):
    """Improve low-scoring entries. Optional JSON body: ``{"limit": int}``."""
    try:
        limit = _limit(request, 10)
    except (TypeError, ValueError):
        return {"status": "error", "message": "limit must be an integer"}, 400
    return _run(
        "enhance_entries",
        lambda components: {"result": components.enhancement_runner().run(limit).to_dict()},
    )


@functions_framework.http
def seed_status(request: flask.Request):
    """Queue counts, processing stats, budget usage and recovery stats."""
    try:
        days = int(request.args.get("days", 7))
    except (TypeError, ValueError):
        return {"status": "error", "message": "days must be an integer"}, 400

    def job(components: SeedingComponents) -> Dict[str, Any]:
        processor = components.seed_processor()
        return {
            "queue": processor.get_queue_status(),
            "processing": processor.get_processing_stats(days),
            "budget": {
                "tokens_used_today": components.ledger.tokens_used_today(),
                "daily_limit": components.ledger.daily_limit,
                "usage_percentage": components.ledger.usage_percentage(),
            },
            "recovery": components.recovery_service().get_recovery_stats().to_dict(),
        }

    return _run("seed_status", job)


@functions_framework.http
def health_check(request: flask.Request):
    """Simple health check endpoint."""
    return flask.jsonify({
        "status": "healthy",
        "service": "dictionary-seeding",
        "version": __version__,
    }), 200
