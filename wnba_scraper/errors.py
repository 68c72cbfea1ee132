"""Error taxonomy for ingestion runs.

Fetch, parse, persist and store errors abort a run. Per-table reset
problems are not errors: they are reported as ``ResetWarning`` values (see
persistence/reset.py).
"""

from __future__ import annotations

from .models import Category


class IngestionError(RuntimeError):
    """Base class for errors that abort an ingestion run."""

    category: Category | None = None


class FetchError(IngestionError):
    """Raised when the provider cannot deliver a category payload."""

    def __init__(
        self,
        category: Category,
        url: str,
        reason: str,
        *,
        status_code: int | None = None,
    ) -> None:
        self.category = category
        self.url = url
        self.reason = reason
        self.status_code = status_code
        status = f" (HTTP {status_code})" if status_code is not None else ""
        super().__init__(f"Failed to fetch {category.value} from {url}{status}: {reason}")


class ParseError(IngestionError):
    """Raised when a payload record violates the expected structure."""

    def __init__(
        self,
        category: Category,
        index: int | None,
        field: str | None,
        reason: str,
    ) -> None:
        self.category = category
        self.index = index
        self.field = field
        self.reason = reason
        where = f"record {index}" if index is not None else "payload"
        if field:
            where = f"{where}, field '{field}'"
        super().__init__(f"Invalid {category.value} {where}: {reason}")


class PersistError(IngestionError):
    """Raised when records cannot be written without violating a constraint."""

    def __init__(self, category: Category, identifier: str | None, reason: str) -> None:
        self.category = category
        self.identifier = identifier
        self.reason = reason
        target = f" record {identifier}" if identifier else ""
        super().__init__(f"Failed to persist {category.value}{target}: {reason}")


class RunCancelled(IngestionError):
    """Raised at a stage boundary when the run was asked to stop."""

    def __init__(self, stage: str) -> None:
        self.stage = stage
        super().__init__(f"Run cancelled before {stage}")


class StoreError(IngestionError):
    """Raised when a run-level store operation (reset, row counts) fails."""

    def __init__(self, operation: str, reason: str) -> None:
        self.operation = operation
        self.reason = reason
        super().__init__(f"Store {operation} failed: {reason}")
