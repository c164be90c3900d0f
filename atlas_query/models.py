from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from .config import settings


class SearchRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    sort_field: str = Field("name", alias="sortField", min_length=1)
    sort_order: Optional[str] = Field("desc", alias="sortOrder", description="asc or desc; anything else sorts desc")
    search_text: Optional[str] = Field(None, alias="searchText", description="Free text for fuzzy/wildcard matching")
    numeric_id: Optional[Union[int, float]] = Field(None, alias="numericId")
    include_source: bool = Field(False, alias="includeSource")
    page_num: int = Field(0, alias="pageNum", ge=0)
    page_size: int = Field(settings.default_page_size, alias="pageSize", ge=1, le=settings.max_page_size)
    verbose: bool = False


@dataclass
class ClauseSet:
    """Compound clause arrays and sort mapping built fresh for one query run."""

    must: List[Dict[str, Any]] = field(default_factory=list)
    must_not: List[Dict[str, Any]] = field(default_factory=list)
    should: List[Dict[str, Any]] = field(default_factory=list)
    filter: List[Dict[str, Any]] = field(default_factory=list)
    sort: Dict[str, int] = field(default_factory=dict)


@dataclass
class TextSearchClauses:
    search_must: List[Dict[str, Any]] = field(default_factory=list)
    search_should: List[Dict[str, Any]] = field(default_factory=list)
    search_sort: Dict[str, int] = field(default_factory=dict)


class PageMeta(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    count: int
    page: int
    page_size: int = Field(..., alias="pageSize")
    total: int = 0
    verbose: bool = False


class PageEnvelope(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    meta: PageMeta
    items: List[Any] = Field(default_factory=list)


class IndexDescriptor(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    collection_name: str = Field(..., alias="collectionName")
    database_name: str = Field(..., alias="database")
    settings: Dict[str, Any] = Field(default_factory=dict)

    def to_request_body(self) -> Dict[str, Any]:
        return {
            "collectionName": self.collection_name,
            "database": self.database_name,
            "name": self.name,
            **self.settings,
        }


class PreparedDocument(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    index_name: str = Field(..., alias="indexName", description="e.g. content__2022_7_22__14_57_40")
    indexed_document_id: str = Field(..., alias="indexedDocumentId")
    document: Dict[str, Any] = Field(default_factory=dict)


class IndexFormat(BaseModel):
    index: str
    indexed_document_id: str
    document: Dict[str, Any]


class DocumentStatus(BaseModel):
    status: Literal["OK", "BAD"] = "OK"
    error: Optional[str] = None


class BulkIndexResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    document_count: int = Field(0, alias="documentCount")
    success_count: int = Field(0, alias="successCount")
    errors: List[str] = Field(default_factory=list)
