"""Example search domain: fuzzy name/description search with an optional numeric id filter."""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from .config import settings
from .models import ClauseSet, SearchRequest
from .normalize import normalize_query_text, sanitize_document
from .query import BaseQuery


class ExampleQuery(BaseQuery):
    def __init__(self, collection_name: str, request: SearchRequest, *, paths: Optional[Sequence[str]] = None, **kwargs: Any) -> None:
        super().__init__(collection_name, request, **kwargs)
        self.paths = list(paths) if paths is not None else list(settings.text_search_paths)

    async def build_search_options(self) -> ClauseSet:
        clauses = ClauseSet(sort=self.build_sort(self.request.sort_field, self.request.sort_order))

        # must: AND, scored. must_not: AND NOT. should: OR, scored.
        # filter: AND without affecting the score.
        search_text = normalize_query_text(self.request.search_text)
        if search_text:
            text = self.build_text_search_query(search_text, clauses.sort, self.paths)
            clauses.must.extend(text.search_must)
            clauses.should.extend(text.search_should)
            clauses.sort = text.search_sort

        # exact match on a numeric field has to be expressed as a closed range
        if self.request.numeric_id is not None:
            clauses.filter.append(
                {
                    "range": {
                        "path": "id",
                        "gte": self.request.numeric_id,
                        "lte": self.request.numeric_id,
                    }
                }
            )

        return clauses

    def format_documents(self, docs: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        return [
            {
                "objectId": sanitize_document(doc.get("primaryKeyId")),
                "score": doc.get("score"),
                "source": sanitize_document(doc) if self.request.include_source else None,
            }
            for doc in docs
        ]


__all__ = ["ExampleQuery"]
