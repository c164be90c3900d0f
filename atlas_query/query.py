"""Paginated Atlas Search queries.

A search domain supplies the clause-building and document-formatting logic for
one collection; ``run_search`` does the rest. ``BaseQuery`` is the convenience
base class most domains subclass.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Protocol, Sequence

from motor.motor_asyncio import AsyncIOMotorCollection

from .errors import QueryExecutionError
from .logging_utils import (
    LogSink,
    SearchLog,
    clear_request_context,
    new_request_id,
    set_request_context,
)
from .manager import AtlasSearchManager
from .models import ClauseSet, PageEnvelope, SearchRequest, TextSearchClauses
from .pipeline import build_search_pipeline, build_sort, build_text_search_query, format_results


logger = logging.getLogger("uvicorn.error")


class SearchDomain(Protocol):
    async def build_search_options(self) -> ClauseSet: ...

    def format_documents(self, docs: List[Dict[str, Any]]) -> List[Any]: ...


async def run_search(
    domain: SearchDomain,
    request: SearchRequest,
    collection: AsyncIOMotorCollection,
    *,
    index_name: Optional[str] = None,
    log: LogSink | None = None,
) -> PageEnvelope:
    """Build the pipeline for ``domain``, run it once and shape the page."""
    log = log or SearchLog(verbose=request.verbose)
    set_request_context(new_request_id(), collection.name, request.page_num)
    try:
        clauses = await domain.build_search_options()
        pipeline = build_search_pipeline(clauses, request, index_name or collection.name, log)
        try:
            results = [doc async for doc in collection.aggregate(pipeline)]
        except Exception as exc:
            logger.error("Mongo query error on %s: %s", collection.name, exc)
            raise QueryExecutionError(f"Mongodb Query Error: {exc}") from exc
        return format_results(results, request, domain.format_documents, log)
    finally:
        clear_request_context()


class BaseQuery(ABC):
    """Subclass per collection and implement the two abstract hooks."""

    def __init__(
        self,
        collection_name: str,
        request: SearchRequest,
        *,
        manager: Optional[AtlasSearchManager] = None,
        index_name: Optional[str] = None,
        log: LogSink | None = None,
    ) -> None:
        self.collection_name = collection_name
        self.request = request
        self.manager = manager or AtlasSearchManager()
        self.index_name = index_name or collection_name
        self.log = log or SearchLog(verbose=request.verbose)

    @abstractmethod
    async def build_search_options(self) -> ClauseSet:
        """Clauses for this request. Return empty arrays rather than omitting them."""

    @abstractmethod
    def format_documents(self, docs: List[Dict[str, Any]]) -> List[Any]:
        """Map raw search documents to the public output shape."""

    def build_sort(self, sort_field: str, order: Optional[str]) -> Dict[str, int]:
        return build_sort(sort_field, order, self.log)

    def build_text_search_query(self, query: str, sort: Dict[str, int], paths: Sequence[str]) -> TextSearchClauses:
        return build_text_search_query(query, sort, paths)

    async def run(self) -> PageEnvelope:
        database = await self.manager.connect()
        return await run_search(
            self,
            self.request,
            database[self.collection_name],
            index_name=self.index_name,
            log=self.log,
        )


__all__ = ["SearchDomain", "run_search", "BaseQuery"]
