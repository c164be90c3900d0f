"""Atlas Search aggregation pipeline construction and result shaping.

A query run produces a single pipeline of four stages:

    $search   compound must/mustNot/should/filter, or a match-all wildcard
    $sort     resolved sort mapping
    $project  drops _id/_source, adds the search score
    $facet    docs (skip/limit page) and meta ($$SEARCH_META count)

The aggregation returns exactly one record ``{"docs": [...], "meta": [...]}``
which ``format_results`` turns into a page envelope.
"""
from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Sequence

from .errors import ResultShapeError
from .logging_utils import LogSink, SearchLog
from .models import ClauseSet, PageEnvelope, PageMeta, SearchRequest, TextSearchClauses
from .normalize import split_terms

FUZZY_OPTIONS: Dict[str, int] = {
    "maxEdits": 2,
    "prefixLength": 1,  # leading characters that must match exactly
    "maxExpansions": 100,
}
WILDCARD_BOOST = 10

SEARCH_SCORE_FIELD = "score"


def match_all_clause() -> Dict[str, Any]:
    return {"query": "*", "path": {"wildcard": "*"}, "allowAnalyzedField": True}


def convert_order(order: Optional[str], log: LogSink | None = None) -> int:
    """Map ``asc`` to 1 and ``desc`` to -1. Unknown values sort descending."""
    value = order.strip() if isinstance(order, str) else ""
    if value == "asc":
        return 1
    if value == "desc":
        return -1
    (log or SearchLog()).warning("Unexpected order type: %r. Reassigning order to desc", order)
    return -1


def build_sort(sort_field: str, order: Optional[str], log: LogSink | None = None) -> Dict[str, int]:
    return {sort_field: convert_order(order, log)}


def build_text_search_query(query: str, sort: Dict[str, int], paths: Sequence[str]) -> TextSearchClauses:
    """Fuzzy should clause plus one boosted ``*term*`` wildcard must per term.

    The returned sort puts the search score ahead of the base sort keys.
    """
    path_list = list(paths)
    search_should = [
        {
            "text": {
                "path": path_list,
                "query": query,
                "fuzzy": dict(FUZZY_OPTIONS),
            }
        }
    ]

    # wildcard terms catch partial matches the fuzzy clause misses
    search_must = [
        {
            "wildcard": {
                "path": path_list,
                "query": f"*{term}*",
                "allowAnalyzedField": True,
                "score": {"boost": {"value": WILDCARD_BOOST}},
            }
        }
        for term in split_terms(query)
    ]

    search_sort = {SEARCH_SCORE_FIELD: -1, **sort}
    return TextSearchClauses(search_must=search_must, search_should=search_should, search_sort=search_sort)


def is_text_clause(clause: Dict[str, Any]) -> bool:
    return bool(clause.get("text"))


def resolve_minimum_should_match(should: Sequence[Dict[str, Any]]) -> Optional[int]:
    """Return 0, 1, or None when there are no should clauses.

    Text-only should clauses relax to 0 for broad scored matching. Any
    non-text should clause keeps OR semantics enforced at 1.
    """
    if not should:
        return None
    has_text = any(is_text_clause(clause) for clause in should)
    has_other = any(not is_text_clause(clause) for clause in should)
    if has_text and not has_other:
        return 0
    return 1


def has_compound_clauses(clauses: ClauseSet) -> bool:
    return bool(clauses.must or clauses.must_not or clauses.should or clauses.filter)


def build_search_stage(
    clauses: ClauseSet,
    index_name: str,
    include_source: bool = False,
    log: LogSink | None = None,
) -> Dict[str, Any]:
    search: Dict[str, Any] = {"index": index_name}

    if has_compound_clauses(clauses):
        compound: Dict[str, Any] = {
            "must": list(clauses.must),
            "mustNot": list(clauses.must_not),
            "should": list(clauses.should),
            "filter": list(clauses.filter),
        }
        minimum = resolve_minimum_should_match(clauses.should)
        if minimum is not None:
            compound["minimumShouldMatch"] = minimum
        search["compound"] = compound
    else:
        if log is not None:
            log.stage("compound_removed", "No compound filters detected, matching all documents")
        search["wildcard"] = match_all_clause()

    search["count"] = {"type": "total"}
    search["returnStoredSource"] = include_source
    return {"$search": search}


def build_search_pipeline(
    clauses: ClauseSet,
    request: SearchRequest,
    index_name: str,
    log: LogSink | None = None,
) -> List[Dict[str, Any]]:
    if not clauses.sort:
        raise ValueError("ClauseSet.sort must name at least one field, an empty $sort is rejected by MongoDB")
    log = log or SearchLog(verbose=request.verbose)
    pipeline: List[Dict[str, Any]] = [
        build_search_stage(clauses, index_name, request.include_source, log),
        {"$sort": dict(clauses.sort)},
        {"$project": {"_id": 0, "_source": 0, SEARCH_SCORE_FIELD: {"$meta": "searchScore"}}},
        {
            "$facet": {
                "docs": [
                    {"$skip": request.page_num * request.page_size},
                    {"$limit": request.page_size},
                ],
                "meta": [
                    {"$replaceWith": "$$SEARCH_META"},
                    {"$limit": 1},
                ],
            }
        },
    ]
    log.stage("params", request.model_dump())
    log.stage("pipeline", pipeline)
    return pipeline


def extract_total(meta: Any) -> int:
    """Total from ``meta[0].count.total``; any other shape counts as 0."""
    if not isinstance(meta, list) or not meta:
        return 0
    first = meta[0]
    if not isinstance(first, dict):
        return 0
    count = first.get("count")
    if not isinstance(count, dict):
        return 0
    total = count.get("total")
    if isinstance(total, int) and not isinstance(total, bool):
        return total
    return 0


def format_results(
    results: Sequence[Dict[str, Any]],
    request: SearchRequest,
    format_documents: Callable[[List[Dict[str, Any]]], List[Any]],
    log: LogSink | None = None,
) -> PageEnvelope:
    if len(results) != 1:
        raise ResultShapeError("Unexpected Atlas Search return format")

    result = results[0]
    if log is not None:
        log.stage("results", result)

    total = extract_total(result.get("meta"))
    items = format_documents(list(result.get("docs") or []))

    return PageEnvelope(
        meta=PageMeta(
            count=len(items),
            page=request.page_num,
            page_size=request.page_size,
            total=total,
            verbose=request.verbose,
        ),
        items=items,
    )


__all__ = [
    "FUZZY_OPTIONS",
    "WILDCARD_BOOST",
    "match_all_clause",
    "convert_order",
    "build_sort",
    "build_text_search_query",
    "resolve_minimum_should_match",
    "has_compound_clauses",
    "build_search_stage",
    "build_search_pipeline",
    "extract_total",
    "format_results",
]
