"""Structured errors raised by queries and the Atlas management helper."""
from __future__ import annotations

from typing import Any, Dict

from .models import DocumentStatus


class SearchError(Exception):
    """Base error carrying a numeric code and a human-readable message."""

    code: int = 500

    def __init__(self, message: str, code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "error": self.message}

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


class ManagementApiError(SearchError):
    """The Atlas admin API rejected or failed a request."""


class QueryExecutionError(SearchError):
    """The aggregation against the document store failed."""

    code = 500


class ResultShapeError(SearchError):
    """The aggregation did not return exactly one docs+meta record."""

    code = 500


class DocumentUpsertError(SearchError):
    """A single document could not be written. Collected, never fatal to a batch."""

    code = 500
    status = "BAD"

    def to_status(self) -> DocumentStatus:
        return DocumentStatus(status=self.status, error=self.message)


__all__ = [
    "SearchError",
    "ManagementApiError",
    "QueryExecutionError",
    "ResultShapeError",
    "DocumentUpsertError",
]
