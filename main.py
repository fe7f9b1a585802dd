"""Deployment wrapper for the dictionary seeding Cloud Function."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict

import flask

project_root = Path(__file__).resolve().parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from src.functions.dictionary_seeding.functions.main import (
    enhance_entries,
    health_check,
    recover_failed,
    retry_dead_letters,
    run_seed_batch,
    seed_status,
)

logger = logging.getLogger(__name__)

_ACTIONS = {
    "run": run_seed_batch,
    "recover": recover_failed,
    "requeue": retry_dead_letters,
    "enhance": enhance_entries,
    "status": seed_status,
    "health": health_check,
}


def dictionary_seeding_handler(request: flask.Request) -> flask.Response:
    """Route ``?action=`` (default ``run``) to the matching seeding handler."""
    if request.method == "OPTIONS":
        return _cors_response({}, status=204)

    action = request.args.get("action", "run")
    handler = _ACTIONS.get(action)
    if handler is None:
        return _cors_response(
            {"status": "error", "message": f"Unknown action '{action}'. Use one of: {', '.join(_ACTIONS)}"},
            status=400,
        )

    try:
        body, status_code = handler(request)
        if isinstance(body, flask.Response):
            body = body.get_json()
        return _cors_response(body, status=status_code)
    except Exception as exc:
        logger.exception("Unexpected error in dictionary seeding handler")
        return _cors_response(
            {"status": "error", "message": f"Internal error: {exc}"},
            status=500
        )


def _cors_response(body: Dict[str, Any], status: int = 200) -> flask.Response:
    response = flask.make_response(json.dumps(body, ensure_ascii=False, default=str), status)
    headers = response.headers
    headers["Content-Type"] = "application/json; charset=utf-8"
    headers["Access-Control-Allow-Origin"] = "*"
    headers["Access-Control-Allow-Methods"] = "GET,POST,OPTIONS"
    headers["Access-Control-Allow-Headers"] = "Content-Type,Authorization"
    return response
