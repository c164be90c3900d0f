"""Utilities for normalizing query text and MongoDB records."""
from __future__ import annotations

import re
from typing import Any, Dict, List

from bson import ObjectId


def normalize_query_text(text: str | None) -> str:
    """Flatten whitespace and stray quote characters in free-text queries."""
    if not text:
        return ""
    cleaned = text.replace("\t", " ").replace("\n", " ").replace("\r", " ")
    cleaned = re.sub(r'["“”]+', " ", cleaned)
    cleaned = re.sub(r"\s+", " ", cleaned)
    return cleaned.strip()


def split_terms(text: str | None) -> List[str]:
    """Whitespace-delimited terms; empty input yields no terms."""
    if not text:
        return []
    return text.split()


def index_collection_name(index_name: str) -> str:
    """Collection behind a versioned index name such as ``content__2022_7_22__14_57_40``."""
    return index_name.split("__")[0]


def sanitize_document(obj: Any) -> Any:
    """Recursively convert Mongo-specific types to JSON-safe forms."""
    if isinstance(obj, dict):
        out: Dict[str, Any] = {}
        for key, value in obj.items():
            out[key] = sanitize_document(value)
        return out
    if isinstance(obj, list):
        return [sanitize_document(item) for item in obj]
    if isinstance(obj, ObjectId):
        return str(obj)
    if isinstance(obj, (str, int, float, bool)) or obj is None:
        return obj
    return str(obj)


__all__ = [
    "normalize_query_text",
    "split_terms",
    "index_collection_name",
    "sanitize_document",
]
