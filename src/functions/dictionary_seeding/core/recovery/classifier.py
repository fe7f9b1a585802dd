"""Failure classification and retry timing.

Pure functions over a failed backlog item's stored state; the recovery
service decides what to do with the result.
"""

from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone
from typing import Optional

from ..config import RetryPolicy
from ..contracts import BacklogItem, FailureAnalysis, utc_now

TOKEN_LIMIT = "token_limit"
QUALITY_FAILURE = "quality_failure"
API_ERROR = "api_error"
DATABASE_ERROR = "database_error"
UNKNOWN = "unknown"

# Checked in order; the first kind whose keywords appear wins. Rate-limit
# replies mention tokens per minute, so they are matched before the budget words.
_KEYWORDS = (
    (API_ERROR, ("rate limit",)),
    (TOKEN_LIMIT, ("token", "budget")),
    (QUALITY_FAILURE, ("quality", "score")),
    (API_ERROR, ("api", "timeout")),
    (DATABASE_ERROR, ("database", "constraint", "sql")),
)

DEFAULT_POLICY = RetryPolicy()


def calculate_backoff_minutes(attempts: int, policy: RetryPolicy = DEFAULT_POLICY) -> float:
    """base * multiplier^(attempts - 1), capped at the policy maximum."""
    exponent = max(attempts, 1) - 1
    delay_seconds = policy.base_delay_seconds * (policy.backoff_multiplier ** exponent)
    return min(delay_seconds, policy.max_delay_seconds) / 60


def minutes_until_token_reset(now: Optional[datetime] = None) -> int:
    """Whole minutes until the next UTC midnight, rounded up."""
    now = (now or utc_now()).astimezone(timezone.utc)
    midnight = (now + timedelta(days=1)).replace(hour=0, minute=0, second=0, microsecond=0)
    return math.ceil((midnight - now).total_seconds() / 60)


def error_kind(message: Optional[str]) -> str:
    text = (message or "").lower()
    for kind, keywords in _KEYWORDS:
        if any(keyword in text for keyword in keywords):
            return kind
    return UNKNOWN


def classify(
    item: BacklogItem,
    policy: RetryPolicy = DEFAULT_POLICY,
    now: Optional[datetime] = None,
) -> FailureAnalysis:
    kind = error_kind(item.error_message)

    if kind == TOKEN_LIMIT:
        return FailureAnalysis(
            error_type=kind,
            is_retryable=True,
            suggested_action="Wait for daily token budget reset",
            estimated_recovery_minutes=minutes_until_token_reset(now),
        )
    if kind == QUALITY_FAILURE:
        return FailureAnalysis(
            error_type=kind,
            is_retryable=item.attempts < 2,
            suggested_action="Retry with enhanced prompting or manual review",
        )
    if kind == API_ERROR:
        return FailureAnalysis(
            error_type=kind,
            is_retryable=True,
            suggested_action="Retry with exponential backoff",
            estimated_recovery_minutes=calculate_backoff_minutes(item.attempts, policy),
        )
    if kind == DATABASE_ERROR:
        return FailureAnalysis(
            error_type=kind,
            is_retryable=False,
            suggested_action="Manual investigation required",
        )
    return FailureAnalysis(
        error_type=UNKNOWN,
        is_retryable=item.attempts < 2,
        suggested_action="Retry once more before manual review",
    )
