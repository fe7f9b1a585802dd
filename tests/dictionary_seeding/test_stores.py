from datetime import date

import pytest
from postgrest.exceptions import APIError

from src.functions.dictionary_seeding.core.contracts import BacklogStatus
from src.functions.dictionary_seeding.core.db import (
    BacklogStore,
    DeadLetterStore,
    DictionaryStore,
    UsageStore,
    is_duplicate_error,
)
from src.functions.dictionary_seeding.core.errors import DuplicateEntryError, StoreError
from tests.dictionary_seeding.fakes import NOW, make_entry


class _FakeQuery:
    """Records builder calls and returns a canned response on execute."""

    def __init__(self, client):
        self._client = client
        self.calls = []

    def __getattr__(self, name):
        def record(*args, **kwargs):
            self.calls.append((name, args, kwargs))
            return self
        return record

    def execute(self):
        outcome = self._client.responses.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        data, count = outcome
        return type("Resp", (), {"data": data, "count": count})()


class _FakeSupabaseClient:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.queries = []

    def table(self, name):
        query = _FakeQuery(self)
        self.queries.append((name, query))
        return query


def _calls(client, index=0):
    return client.queries[index][1].calls


def test_claim_is_conditional_on_pending():
    row = {"id": "q1", "term": "Allegro", "languages": ["en"], "status": "processing", "priority": 10}
    client = _FakeSupabaseClient(([row], None))

    item = BacklogStore(client).claim("q1", NOW)

    assert item.status == BacklogStatus.PROCESSING
    assert client.queries[0][0] == "seed_queue"
    calls = _calls(client)
    assert calls[0][0] == "update"
    assert calls[0][1][0]["status"] == "processing"
    assert ("eq", ("id", "q1"), {}) in calls
    assert ("eq", ("status", "pending"), {}) in calls


def test_lost_claim_returns_none():
    client = _FakeSupabaseClient(([], None))

    assert BacklogStore(client).claim("q1", NOW) is None


def test_fetch_pending_filters_retry_after_and_orders():
    rows = [{"id": "q1", "term": "Forte", "languages": '["en", "es"]', "priority": 10}]
    client = _FakeSupabaseClient((rows, None))

    items = BacklogStore(client).fetch_pending(5, 8, NOW)

    assert items[0].languages == ["en", "es"]
    calls = _calls(client)
    assert ("gte", ("priority", 8), {}) in calls
    assert ("or_", ("retry_after.is.null,retry_after.lte.2026-10-19T12:00:00Z",), {}) in calls
    assert ("order", ("priority",), {"desc": True}) in calls
    assert ("limit", (5,), {}) in calls


def test_fetch_pending_with_zero_limit_skips_the_query():
    client = _FakeSupabaseClient()

    assert BacklogStore(client).fetch_pending(0, 8, NOW) == []
    assert client.queries == []


def test_count_by_status_uses_exact_counts():
    client = _FakeSupabaseClient(([], 3), ([], 1), ([], 7), ([], 2))

    counts = BacklogStore(client).count_by_status()

    assert counts == {"pending": 3, "processing": 1, "completed": 7, "failed": 2}


def test_unique_violation_becomes_duplicate_error():
    error = APIError({"code": "23505", "message": "duplicate key value violates unique constraint"})
    client = _FakeSupabaseClient(error)

    with pytest.raises(DuplicateEntryError):
        DictionaryStore(client).create(make_entry("Allegro"))


def test_other_api_errors_become_store_errors():
    error = APIError({"code": "42P01", "message": "relation does not exist"})
    client = _FakeSupabaseClient(error)

    with pytest.raises(StoreError, match="database error"):
        UsageStore(client).sum_tokens(date(2026, 10, 19), "-seed")


def test_update_keeps_identity_columns_out_of_the_payload():
    client = _FakeSupabaseClient(([], None))
    entry = make_entry("Allegro")

    DictionaryStore(client).update(entry)

    name, args, _ = _calls(client)[0]
    assert name == "update"
    assert "id" not in args[0]
    assert "created_at" not in args[0]
    assert args[0]["overall_score"] == entry.quality_score.overall


def test_sum_tokens_only_counts_matching_models():
    client = _FakeSupabaseClient(([{"tokens_used": 400}, {"tokens_used": None}, {"tokens_used": 350}], None))

    total = UsageStore(client).sum_tokens(date(2026, 10, 19), "-seed")

    assert total == 750
    assert ("like", ("model", "%-seed"), {}) in _calls(client)


def test_failure_kind_counts_reads_stored_analysis():
    rows = [
        {"failure_analysis": {"error_type": "timeout"}},
        {"failure_analysis": '{"error_type": "timeout"}'},
        {"failure_analysis": {"error_type": "quality_threshold"}},
        {"failure_analysis": None},
    ]
    client = _FakeSupabaseClient((rows, None))

    kinds = DeadLetterStore(client).failure_kind_counts()

    assert kinds[0] == {"type": "timeout", "count": 2}
    assert {"type": "unknown", "count": 1} in kinds


def test_is_duplicate_error_matches_message_text():
    assert is_duplicate_error(Exception("duplicate key value violates unique constraint"))
    assert not is_duplicate_error(Exception("connection reset"))
