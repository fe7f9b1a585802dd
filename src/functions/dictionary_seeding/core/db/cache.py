"""Downstream cache invalidation for freshly written terms."""

from __future__ import annotations

import logging
from typing import Optional

import requests

logger = logging.getLogger(__name__)


class CacheInvalidator:
    """POSTs a purge request for a normalized term.

    Invalidation is advisory: any failure is logged and the write that
    triggered it still stands.
    """

    def __init__(
        self,
        purge_url: Optional[str] = None,
        token: Optional[str] = None,
        timeout_seconds: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        self.purge_url = purge_url
        self.token = token
        self.timeout_seconds = timeout_seconds
        self._session = session or requests.Session()

    def invalidate_term(self, normalized_term: str) -> bool:
        if not self.purge_url:
            logger.debug(f"No purge URL configured; skipping cache invalidation for '{normalized_term}'")
            return False

        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        try:
            response = self._session.post(
                self.purge_url,
                json={"term": normalized_term},
                headers=headers,
                timeout=self.timeout_seconds,
            )
        except requests.RequestException as e:
            logger.warning(f"Cache invalidation failed for '{normalized_term}': {e}")
            return False

        if response.status_code >= 400:
            logger.warning(
                f"Cache invalidation for '{normalized_term}' returned {response.status_code}: "
                f"{response.text[:200]}"
            )
            return False
        return True
