"""In-memory stand-ins for the seeding stores and backend."""

from dataclasses import replace
from datetime import date, datetime, timedelta, timezone

from src.functions.dictionary_seeding.core.contracts import (
    BacklogItem,
    BacklogStatus,
    Definition,
    DictionaryEntry,
    QualityScore,
    normalize_term,
)
from src.functions.dictionary_seeding.core.errors import DuplicateEntryError, StoreError
from src.functions.dictionary_seeding.core.llm import BackendResponse

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


def make_entry(term, language="en", score=90, **definition_fields):
    definition = {"concise": f"{term} concise", "detailed": f"{term} detailed", **definition_fields}
    return DictionaryEntry(
        term=term,
        normalized_term=normalize_term(term),
        language=language,
        definition=Definition(**definition),
        quality_score=QualityScore(overall=score),
        created_at=NOW,
        updated_at=NOW,
    )


def make_item(term, languages=("en",), priority=10, **fields):
    values = {
        "id": f"item-{normalize_term(term)}",
        "term": term,
        "languages": list(languages),
        "priority": priority,
        "created_at": NOW - timedelta(days=1),
    }
    values.update(fields)
    return BacklogItem(**values)


class FakeBacklogStore:
    def __init__(self, items=()):
        self.items = {item.id: item for item in items}
        self.stolen = set()
        self.fail_fetch = False

    def fetch_pending(self, limit, priority_threshold, now=None):
        if self.fail_fetch:
            raise StoreError("fetch pending items on seed_queue failed: connection refused")
        now = now or NOW
        eligible = [
            item
            for item in self.items.values()
            if item.status == BacklogStatus.PENDING
            and item.priority >= priority_threshold
            and (item.retry_after is None or item.retry_after <= now)
        ]
        eligible.sort(key=lambda item: (-item.priority, item.created_at))
        return [replace(item) for item in eligible[:limit]]

    def claim(self, item_id, now=None):
        item = self.items.get(item_id)
        if item_id in self.stolen and item is not None:
            item.status = BacklogStatus.PROCESSING
            return None
        if item is None or item.status != BacklogStatus.PENDING:
            return None
        item.status = BacklogStatus.PROCESSING
        item.last_attempt_at = now or NOW
        return replace(item, languages=list(item.languages))

    def mark_completed(self, item_id, now=None):
        item = self.items[item_id]
        item.status = BacklogStatus.COMPLETED
        item.completed_at = now or NOW
        item.error_message = None

    def mark_partial(self, item_id, remaining_languages, message=None, now=None):
        item = self.items[item_id]
        item.languages = list(remaining_languages)
        item.status = BacklogStatus.PENDING
        item.last_attempt_at = now or NOW
        item.error_message = message

    def mark_failed(self, item, message, now=None):
        stored = self.items[item.id]
        stored.status = BacklogStatus.FAILED
        stored.error_message = message
        stored.attempts = item.attempts + 1
        stored.last_attempt_at = now or NOW

    def reset_for_retry(self, item_id):
        item = self.items[item_id]
        item.status = BacklogStatus.PENDING
        item.error_message = None
        item.retry_after = None

    def set_retry_after(self, item_id, retry_after):
        self.items[item_id].retry_after = retry_after

    def fetch_failed(self, limit, cooldown_minutes, now=None):
        cutoff = (now or NOW) - timedelta(minutes=cooldown_minutes)
        failed = [
            item
            for item in self.items.values()
            if item.status == BacklogStatus.FAILED
            and (item.last_attempt_at is None or item.last_attempt_at <= cutoff)
        ]
        failed.sort(key=lambda item: (-item.priority, item.created_at))
        return [replace(item) for item in failed[:limit]]

    def insert(self, item):
        self.items[item.id] = item
        return item

    def delete(self, item_id):
        self.items.pop(item_id, None)

    def queued_terms(self, terms):
        wanted = set(terms)
        return {item.term for item in self.items.values() if item.term in wanted}

    def count_by_status(self):
        counts = {status.value: 0 for status in BacklogStatus}
        for item in self.items.values():
            counts[item.status.value] += 1
        return counts

    def retry_outcomes(self):
        retried = [item for item in self.items.values() if item.attempts > 1]
        recovered = [item for item in retried if item.status == BacklogStatus.COMPLETED]
        return len(retried), len(recovered)

    def attempt_outcomes_since(self, since):
        attempted = [
            item for item in self.items.values()
            if item.last_attempt_at is not None and item.last_attempt_at >= since
        ]
        completed = [item for item in attempted if item.status == BacklogStatus.COMPLETED]
        return len(attempted), len(completed)

    def clear(self, status=BacklogStatus.PENDING):
        doomed = [item_id for item_id, item in self.items.items() if item.status == status]
        for item_id in doomed:
            del self.items[item_id]
        return len(doomed)


class FakeDeadLetterStore:
    def __init__(self, items=()):
        self.items = {item.id: item for item in items}
        self.fail_deletes = False

    def insert(self, item):
        self.items[item.id] = item

    def get(self, item_id):
        return self.items.get(item_id)

    def delete(self, item_id):
        if self.fail_deletes:
            raise StoreError("delete dead letter on dead_letter_queue failed: connection reset")
        return self.items.pop(item_id, None) is not None

    def delete_older_than(self, cutoff):
        doomed = [item_id for item_id, item in self.items.items() if item.moved_to_dlq_at < cutoff]
        for item_id in doomed:
            del self.items[item_id]
        return len(doomed)

    def count(self):
        return len(self.items)

    def failure_kind_counts(self, limit=5):
        counts = {}
        for item in self.items.values():
            kind = item.failure_analysis.get("error_type", "unknown")
            counts[kind] = counts.get(kind, 0) + 1
        ranked = sorted(counts.items(), key=lambda pair: -pair[1])[:limit]
        return [{"type": kind, "count": count} for kind, count in ranked]


class FakeReviewStore:
    def __init__(self):
        self.items = []

    def insert(self, item):
        self.items.append(item)

    def count_since(self, since):
        return sum(1 for item in self.items if item.created_at >= since)


class FakeUsageStore:
    def __init__(self, rows=(), fail=False):
        self.rows = [dict(row) for row in rows]
        self.fail = fail
        self.fail_inserts = False

    def insert(self, record):
        if self.fail or self.fail_inserts:
            raise StoreError("record usage on token_usage failed: connection reset")
        self.rows.append(record.to_dict())

    def sum_tokens(self, day, model_suffix):
        if self.fail:
            raise StoreError("sum usage on token_usage failed: connection reset")
        return sum(
            row["tokens_used"]
            for row in self.rows
            if row["date"] == day.isoformat() and row["model"].endswith(model_suffix)
        )

    def rows_since(self, day, model_suffix):
        if self.fail:
            raise StoreError("read usage history on token_usage failed: connection reset")
        return [
            row for row in self.rows
            if date.fromisoformat(row["date"]) >= day and row["model"].endswith(model_suffix)
        ]


def usage_row(tokens, day=None, model="gpt-4o-mini-seed", terms=1):
    return {
        "date": (day or NOW.date()).isoformat(),
        "model": model,
        "tokens_used": tokens,
        "terms_processed": terms,
    }


class FakeDictionaryStore:
    def __init__(self, entries=()):
        self.entries = {(entry.normalized_term, entry.language): entry for entry in entries}
        self.duplicate_on_create = set()
        self.created = []
        self.updated = []

    def find_by_term(self, normalized_term, language):
        return self.entries.get((normalized_term, language))

    def create(self, entry):
        key = (entry.normalized_term, entry.language)
        if key in self.duplicate_on_create or key in self.entries:
            raise DuplicateEntryError("create entry on dictionary_entries: duplicate key")
        self.entries[key] = entry
        self.created.append(entry)
        return entry

    def update(self, entry):
        self.entries[(entry.normalized_term, entry.language)] = entry
        self.updated.append(entry)
        return entry

    def enhancement_candidates(self, max_score, older_than_days, limit, now=None):
        weak = [entry for entry in self.entries.values() if entry.quality_score.overall < max_score]
        weak.sort(key=lambda entry: entry.quality_score.overall)
        return weak[:limit]

    def average_quality_since(self, since):
        scores = [entry.quality_score.overall for entry in self.created]
        return round(sum(scores) / len(scores)) if scores else 0


class FakeCache:
    def __init__(self):
        self.invalidated = []

    def invalidate_term(self, normalized_term):
        self.invalidated.append(normalized_term)
        return True


class _TokenCounter:
    def __init__(self):
        self.tokens_used = 0


class FakeGenerator:
    """Returns an entry with a scripted score, or raises a scripted error."""

    def __init__(self, outcomes=None, tokens_per_call=100):
        self.outcomes = dict(outcomes or {})
        self.tokens_per_call = tokens_per_call
        self.backend = _TokenCounter()
        self.calls = []
        self.enhanced = {}

    def generate(self, term, language="en", context=None, term_type="general"):
        self.calls.append((term, language, term_type, context))
        self.backend.tokens_used += self.tokens_per_call
        outcome = self.outcomes[(term, language)]
        if isinstance(outcome, Exception):
            raise outcome
        return make_entry(term, language, outcome)

    def enhance(self, entry, focus_areas=None):
        self.backend.tokens_used += self.tokens_per_call
        return self.enhanced.get((entry.normalized_term, entry.language))


class FakeBackend:
    """Replays canned response texts in order; exceptions are raised."""

    model = "gpt-test"

    def __init__(self, responses=(), tokens_per_call=50):
        self.responses = list(responses)
        self.tokens_per_call = tokens_per_call
        self.tokens_used = 0
        self.prompts = []

    def complete_json(self, prompt, *, max_output_tokens=500, temperature=0.3, model=None):
        self.prompts.append(prompt)
        self.tokens_used += self.tokens_per_call
        outcome = self.responses.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return BackendResponse(text=outcome, tokens_used=self.tokens_used, model=model or self.model)
