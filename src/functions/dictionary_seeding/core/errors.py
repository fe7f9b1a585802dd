"""Exceptions raised by the dictionary seeding components.

Messages matter: the recovery classifier works on the stored error text, so
backend failures mention "API" and storage failures mention "database".
"""


class SeedingError(RuntimeError):
    """Base class for seeding failures."""


class BackendError(SeedingError):
    """The generative backend failed, timed out or returned nothing usable."""

    def __init__(self, message: str, *, timeout: bool = False) -> None:
        prefix = "API timeout" if timeout else "API error"
        super().__init__(f"{prefix}: {message}")
        self.timeout = timeout


class GenerationError(SeedingError):
    """The engine could not produce an entry of acceptable quality."""


class BudgetLedgerUnavailable(SeedingError):
    """The token usage store could not be read."""


class StoreError(SeedingError):
    """A datastore operation failed."""

    def __init__(self, message: str) -> None:
        super().__init__(f"database error: {message}")


class DuplicateEntryError(StoreError):
    """A unique constraint rejected an insert; the row already exists."""
