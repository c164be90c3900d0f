"""Logging helpers and request context for structured query instrumentation."""
from __future__ import annotations

import contextvars
import datetime as _dt
import json
import logging
import uuid
from typing import Any, Dict, Protocol

_logger = logging.getLogger("uvicorn.error")

_request_context: contextvars.ContextVar[Dict[str, Any]] = contextvars.ContextVar("request_context", default={})


def new_request_id() -> str:
    return str(uuid.uuid4())


def set_request_context(request_id: str, collection: str, page: int) -> None:
    _request_context.set({"request_id": request_id, "collection": collection, "page": page})


def clear_request_context() -> None:
    _request_context.set({})


def get_request_context() -> Dict[str, Any]:
    return _request_context.get() or {}


class LogSink(Protocol):
    def stage(self, stage: str, payload: Any = None) -> None: ...

    def warning(self, message: str, *args: Any) -> None: ...


class SearchLog:
    """Structured log sink for query runs.

    Stage entries (request params, the assembled pipeline, raw results) are
    only written when ``verbose`` is set. Warnings are always written.
    """

    def __init__(self, verbose: bool = False, logger: logging.Logger | None = None) -> None:
        self.verbose = verbose
        self.logger = logger or _logger

    def stage(self, stage: str, payload: Any = None) -> None:
        if not self.verbose:
            return
        ctx = get_request_context()
        entry: Dict[str, Any] = {
            "timestamp": _dt.datetime.now(_dt.timezone.utc).isoformat(timespec="milliseconds"),
            "request_id": ctx.get("request_id") or new_request_id(),
            "collection": ctx.get("collection"),
            "page": ctx.get("page"),
            "stage": stage,
            "payload": payload,
        }
        self.logger.info("%s", json.dumps(entry, default=str))

    def warning(self, message: str, *args: Any) -> None:
        self.logger.warning(message, *args)


__all__ = [
    "new_request_id",
    "set_request_context",
    "clear_request_context",
    "get_request_context",
    "LogSink",
    "SearchLog",
]
