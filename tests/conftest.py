"""In-memory stand-ins for Motor collections used across the test suite."""

from typing import Any

import bson
import pytest
from bson import ObjectId
from pymongo.errors import OperationFailure


class FakeCursor:
    def __init__(self, docs: list[dict[str, Any]], error: Exception | None = None) -> None:
        self.docs = docs
        self.error = error

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        if self.error is not None:
            raise self.error
        for doc in self.docs:
            yield doc


class FakeCollection:
    def __init__(self, name: str) -> None:
        self.name = name
        self.docs: list[dict[str, Any]] = []
        self.pipelines: list[list[dict[str, Any]]] = []
        self.aggregate_results: list[dict[str, Any]] = []
        self.aggregate_error: Exception | None = None
        self.fail_on: set[str] = set()

    def _check(self, operation: str) -> None:
        if operation in self.fail_on:
            raise OperationFailure(f"{operation} failed")

    def _matches(self, doc: dict[str, Any], query: dict[str, Any]) -> bool:
        return all(doc.get(key) == value for key, value in query.items())

    def aggregate(self, pipeline):
        self.pipelines.append(pipeline)
        return FakeCursor(self.aggregate_results, self.aggregate_error)

    def find(self, query):
        if "find" in self.fail_on:
            return FakeCursor([], OperationFailure("find failed"))
        return FakeCursor([dict(d) for d in self.docs if self._matches(d, query)])

    async def insert_one(self, document):
        self._check("insert_one")
        bson.encode(document)
        stored = dict(document)
        stored.setdefault("_id", ObjectId())
        self.docs.append(stored)

    async def update_one(self, query, update, upsert=False):
        self._check("update_one")
        bson.encode(update["$set"])
        for doc in self.docs:
            if self._matches(doc, query):
                doc.update(update["$set"])
                return
        if upsert:
            self.docs.append({**query, **update["$set"]})

    async def delete_one(self, query):
        self._check("delete_one")
        for idx, doc in enumerate(self.docs):
            if self._matches(doc, query):
                del self.docs[idx]
                return

    async def delete_many(self, query):
        self._check("delete_many")
        self.docs = [d for d in self.docs if not self._matches(d, query)]


class FakeDatabase:
    def __init__(self) -> None:
        self.collections: dict[str, FakeCollection] = {}

    def __getitem__(self, name: str) -> FakeCollection:
        if name not in self.collections:
            self.collections[name] = FakeCollection(name)
        return self.collections[name]

    async def list_collection_names(self) -> list[str]:
        return list(self.collections)


class FakeConnection:
    def __init__(self, database: FakeDatabase) -> None:
        self.database = database
        self.connect_calls = 0

    async def connect(self) -> FakeDatabase:
        self.connect_calls += 1
        return self.database


class RecordingLog:
    def __init__(self) -> None:
        self.stages: list[tuple[str, Any]] = []
        self.warnings: list[str] = []

    def stage(self, stage: str, payload: Any = None) -> None:
        self.stages.append((stage, payload))

    def warning(self, message: str, *args: Any) -> None:
        self.warnings.append(message % args if args else message)

    def stage_names(self) -> list[str]:
        return [name for name, _ in self.stages]


@pytest.fixture
def fake_db() -> FakeDatabase:
    return FakeDatabase()


@pytest.fixture
def fake_connection(fake_db: FakeDatabase) -> FakeConnection:
    return FakeConnection(fake_db)


@pytest.fixture
def recording_log() -> RecordingLog:
    return RecordingLog()


def search_result(docs: list[dict[str, Any]], total: int | None = None) -> list[dict[str, Any]]:
    """The single docs+meta record a $facet stage returns."""
    meta = [] if total is None else [{"count": {"total": total}}]
    return [{"docs": docs, "meta": meta}]


@pytest.fixture
def make_search_result():
    return search_result
