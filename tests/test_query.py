"""Tests for running paginated searches against a store."""

import pytest
from pymongo.errors import OperationFailure

from atlas_query.errors import QueryExecutionError, ResultShapeError
from atlas_query.example import ExampleQuery
from atlas_query.manager import AtlasSearchManager
from atlas_query.models import ClauseSet, SearchRequest
from atlas_query.query import BaseQuery, run_search


class CategoryDomain:
    """Minimal SearchDomain implementation without subclassing."""

    def __init__(self, category: str | None = None) -> None:
        self.category = category

    async def build_search_options(self) -> ClauseSet:
        clauses = ClauseSet(sort={"name": 1})
        if self.category:
            clauses.filter.append({"equals": {"path": "category", "value": self.category}})
        return clauses

    def format_documents(self, docs):
        return [doc["name"] for doc in docs]


def _widgets(count: int):
    return [{"primaryKeyId": f"w{i}", "name": f"widget {i}", "score": 10.0 - i} for i in range(count)]


class TestRunSearch:
    @pytest.mark.asyncio
    async def test_domain_without_inheritance(self, fake_db, make_search_result) -> None:
        collection = fake_db["products"]
        collection.aggregate_results = make_search_result([{"name": "a"}, {"name": "b"}], total=2)

        envelope = await run_search(CategoryDomain("tools"), SearchRequest(), collection)

        assert envelope.items == ["a", "b"]
        assert envelope.meta.total == 2
        assert len(collection.pipelines) == 1
        search = collection.pipelines[0][0]["$search"]
        assert search["index"] == "products"
        assert search["compound"]["filter"] == [{"equals": {"path": "category", "value": "tools"}}]

    @pytest.mark.asyncio
    async def test_index_name_override(self, fake_db, make_search_result) -> None:
        collection = fake_db["products"]
        collection.aggregate_results = make_search_result([], total=0)

        await run_search(CategoryDomain(), SearchRequest(), collection, index_name="products_v2")

        assert collection.pipelines[0][0]["$search"]["index"] == "products_v2"

    @pytest.mark.asyncio
    async def test_store_failure_is_wrapped(self, fake_db) -> None:
        collection = fake_db["products"]
        collection.aggregate_error = OperationFailure("index not found")

        with pytest.raises(QueryExecutionError) as excinfo:
            await run_search(CategoryDomain(), SearchRequest(), collection)

        assert excinfo.value.code == 500
        assert "index not found" in excinfo.value.message
        assert len(collection.pipelines) == 1

    @pytest.mark.asyncio
    async def test_unexpected_result_count(self, fake_db) -> None:
        collection = fake_db["products"]
        collection.aggregate_results = []

        with pytest.raises(ResultShapeError):
            await run_search(CategoryDomain(), SearchRequest(), collection)


class TestExampleQuery:
    def _query(self, fake_connection, recording_log=None, **request):
        manager = AtlasSearchManager(connection=fake_connection)
        return ExampleQuery(
            "products", SearchRequest(**request), manager=manager, paths=["name"], log=recording_log
        )

    @pytest.mark.asyncio
    async def test_widget_scenario(self, fake_db, fake_connection, make_search_result) -> None:
        fake_db["products"].aggregate_results = make_search_result(_widgets(5), total=5)
        query = self._query(
            fake_connection, sortField="name", sortOrder="asc", pageNum=0, pageSize=20, searchText="widget"
        )

        envelope = await query.run()

        assert envelope.model_dump(by_alias=True)["meta"] == {
            "count": 5,
            "page": 0,
            "pageSize": 20,
            "total": 5,
            "verbose": False,
        }
        assert [item["objectId"] for item in envelope.items] == ["w0", "w1", "w2", "w3", "w4"]
        assert all(item["source"] is None for item in envelope.items)

        pipeline = fake_db["products"].pipelines[0]
        compound = pipeline[0]["$search"]["compound"]
        assert compound["should"][0]["text"]["query"] == "widget"
        assert [c["wildcard"]["query"] for c in compound["must"]] == ["*widget*"]
        assert compound["minimumShouldMatch"] == 0
        assert list(pipeline[1]["$sort"].items()) == [("score", -1), ("name", 1)]

    @pytest.mark.asyncio
    async def test_no_criteria_matches_everything(self, fake_db, fake_connection, make_search_result) -> None:
        fake_db["products"].aggregate_results = make_search_result(_widgets(2), total=2)

        await self._query(fake_connection, sortField="name").run()

        search = fake_db["products"].pipelines[0][0]["$search"]
        assert "compound" not in search
        assert search["wildcard"]["query"] == "*"

    @pytest.mark.asyncio
    async def test_numeric_id_with_text(self, fake_db, fake_connection, make_search_result) -> None:
        fake_db["products"].aggregate_results = make_search_result(_widgets(1), total=1)

        await self._query(fake_connection, searchText="widget", numericId=42).run()

        compound = fake_db["products"].pipelines[0][0]["$search"]["compound"]
        assert compound["filter"] == [{"range": {"path": "id", "gte": 42, "lte": 42}}]
        assert compound["minimumShouldMatch"] == 0

    @pytest.mark.asyncio
    async def test_include_source(self, fake_db, fake_connection, make_search_result) -> None:
        fake_db["products"].aggregate_results = make_search_result(_widgets(1), total=1)

        envelope = await self._query(fake_connection, includeSource=True).run()

        assert envelope.items[0]["source"]["name"] == "widget 0"
        assert fake_db["products"].pipelines[0][0]["$search"]["returnStoredSource"] is True

    @pytest.mark.asyncio
    async def test_unknown_order_warns(self, fake_db, fake_connection, recording_log, make_search_result) -> None:
        fake_db["products"].aggregate_results = make_search_result([], total=0)

        await self._query(fake_connection, recording_log, sortOrder="sideways").run()

        assert fake_db["products"].pipelines[0][1] == {"$sort": {"name": -1}}
        assert len(recording_log.warnings) == 1


def test_base_query_requires_hooks() -> None:
    with pytest.raises(TypeError):
        BaseQuery("products", SearchRequest())
