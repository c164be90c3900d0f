"""Paginated, scored MongoDB Atlas Search queries and index management."""
from .errors import (
    DocumentUpsertError,
    ManagementApiError,
    QueryExecutionError,
    ResultShapeError,
    SearchError,
)
from .manager import AtlasSearchManager
from .models import ClauseSet, PageEnvelope, PreparedDocument, SearchRequest
from .query import BaseQuery, SearchDomain, run_search

__all__ = [
    "AtlasSearchManager",
    "BaseQuery",
    "ClauseSet",
    "DocumentUpsertError",
    "ManagementApiError",
    "PageEnvelope",
    "PreparedDocument",
    "QueryExecutionError",
    "ResultShapeError",
    "SearchDomain",
    "SearchError",
    "SearchRequest",
    "run_search",
]
