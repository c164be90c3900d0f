"""Atlas Search index management and document indexing helpers."""
from __future__ import annotations

import asyncio
import json
import logging
from functools import partial
from typing import Any, Dict, List, Optional, Sequence

import requests
from bson.errors import BSONError
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import PyMongoError
from requests.auth import HTTPDigestAuth

from .config import settings
from .db import MongoDB, mongo
from .errors import DocumentUpsertError, ManagementApiError
from .models import BulkIndexResult, DocumentStatus, IndexDescriptor, IndexFormat, PreparedDocument
from .normalize import index_collection_name


logger = logging.getLogger("uvicorn.error")


class AtlasSearchManager:
    def __init__(
        self,
        public_key: Optional[str] = None,
        private_key: Optional[str] = None,
        database_name: Optional[str] = None,
        cluster_name: Optional[str] = None,
        group_id: Optional[str] = None,
        *,
        api_base: Optional[str] = None,
        timeout: Optional[float] = None,
        connection: Optional[MongoDB] = None,
    ) -> None:
        self.public_key = public_key if public_key is not None else settings.atlas_public_key
        self.private_key = private_key if private_key is not None else settings.atlas_private_key
        self.database_name = database_name or settings.db_name
        self.cluster_name = cluster_name if cluster_name is not None else settings.atlas_cluster_name
        self.group_id = group_id if group_id is not None else settings.atlas_group_id
        self.api_base = (api_base or settings.atlas_api_base).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.atlas_api_timeout_seconds
        self.connection = connection or mongo

    async def connect(self) -> AsyncIOMotorDatabase:
        return await self.connection.connect()

    @property
    def _indexes_path(self) -> str:
        return f"/groups/{self.group_id}/clusters/{self.cluster_name}/fts/indexes"

    async def create_index(self, name: str, collection_name: str, index_settings: Optional[Dict[str, Any]] = None) -> Any:
        descriptor = IndexDescriptor(
            name=name,
            collection_name=collection_name,
            database_name=self.database_name,
            settings=index_settings or {},
        )
        logger.info("Creating Atlas Search index %s on %s.%s", name, self.database_name, collection_name)
        return await self._perform_request(self._indexes_path, "POST", body=descriptor.to_request_body())

    async def find_index_by_name(self, name: str, collection_name: str) -> Optional[str]:
        """Id of the first index on the collection with this name, if any. Never cached."""
        url = f"{self._indexes_path}/{self.database_name}/{collection_name}"
        indexes = await self._perform_request(url, "GET")
        for index in indexes or []:
            if index.get("name") == name:
                return index.get("indexID")
        return None

    async def delete_index(self, name: str, collection_name: str) -> None:
        index_id = await self.find_index_by_name(name, collection_name)
        if not index_id:
            logger.debug("No Atlas Search index %s on %s, nothing to delete", name, collection_name)
            return
        await self._perform_request(f"{self._indexes_path}/{index_id}", "DELETE")
        logger.info("Deleted Atlas Search index %s (%s)", name, index_id)

    async def bulk_index(self, documents: Sequence[PreparedDocument]) -> BulkIndexResult:
        if not documents:
            return BulkIndexResult()

        pending: List[IndexFormat] = []
        for doc in documents:
            body = {**doc.document, "indexedDocumentId": doc.indexed_document_id, "indexName": doc.index_name}
            pending.append(
                IndexFormat(
                    index=index_collection_name(doc.index_name),
                    indexed_document_id=doc.indexed_document_id,
                    document=body,
                )
            )

        result = await self.index_documents(pending)
        if result.errors:
            logger.warning("Errors on bulk index: %s", json.dumps(result.errors, indent=2))
        else:
            logger.info(
                "Mongodb indexing results - documents sent: %d, successfully indexed: %d",
                result.document_count,
                result.success_count,
            )
        return result

    async def index_documents(self, data_set: Sequence[IndexFormat]) -> BulkIndexResult:
        database = await self.connect()
        errors: List[str] = []
        success_count = 0
        for data in data_set:
            status = await self.index_single_document(database, data)
            if status.error:
                errors.append(status.error)
            elif status.status == "OK":
                success_count += 1
        return BulkIndexResult(document_count=len(data_set), success_count=success_count, errors=errors)

    async def index_single_document(self, database: AsyncIOMotorDatabase, data: IndexFormat) -> DocumentStatus:
        """Upsert by indexedDocumentId, collapsing duplicates onto the first match."""
        collection = database[data.index]
        try:
            existing = [doc async for doc in collection.find({"indexedDocumentId": data.indexed_document_id})]
            if not existing:
                await collection.insert_one(data.document)
            else:
                first, duplicates = existing[0], existing[1:]
                await collection.update_one({"_id": first["_id"]}, {"$set": data.document}, upsert=True)
                for duplicate in duplicates:
                    await collection.delete_one({"_id": duplicate["_id"]})
            return DocumentStatus(status="OK")
        except (PyMongoError, BSONError) as exc:
            logger.warning("index_single_document error for %s in %s: %s", data.indexed_document_id, data.index, exc)
            return DocumentUpsertError(
                f"Error indexing documentId: {data.indexed_document_id} for index: {data.index}"
            ).to_status()

    async def delete_indexed_document(
        self, index_name: str, indexed_document_id: str, ignore_not_found: bool = False
    ) -> DocumentStatus:
        database = await self.connect()
        status = await self._delete_document(database, index_name, indexed_document_id, ignore_not_found)
        logger.info("Deleted %s document %s with status %s", index_name, indexed_document_id, status.status)
        return status

    async def _delete_document(
        self, database: AsyncIOMotorDatabase, collection: str, indexed_document_id: str, ignore_not_found: bool
    ) -> DocumentStatus:
        try:
            await database[collection].delete_many({"indexedDocumentId": indexed_document_id})
            return DocumentStatus(status="OK")
        except (PyMongoError, BSONError) as exc:
            if ignore_not_found:
                logger.info("Delete of %s in %s failed, ignoring: %s", indexed_document_id, collection, exc)
                return DocumentStatus(status="OK")
            logger.warning("Delete of %s in %s failed: %s", indexed_document_id, collection, exc)
            return DocumentUpsertError(
                f"Error deleting documentId: {indexed_document_id} for index: {collection}"
            ).to_status()

    async def _perform_request(self, url_suffix: str, method: str, body: Optional[Dict[str, Any]] = None) -> Any:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, partial(self._request_sync, url_suffix, method, body))

    def _request_sync(self, url_suffix: str, method: str, body: Optional[Dict[str, Any]] = None) -> Any:
        url = self.api_base + url_suffix
        try:
            resp = requests.request(
                method,
                url,
                headers={"Content-Type": "application/json", "Accept": "application/json"},
                auth=HTTPDigestAuth(self.public_key, self.private_key),
                json=body,
                timeout=self.timeout,
            )
            resp.raise_for_status()
        except requests.HTTPError as exc:
            raise _map_http_error(exc) from exc
        except requests.RequestException as exc:
            logger.warning("Error communicating with Atlas Search API %s %s: %s", method, url, exc)
            raise ManagementApiError("Failed to communicate with Mongo Atlas Search API", code=500) from exc

        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as exc:
            logger.warning("Non-JSON response from Atlas Search API %s %s: %s", method, url, exc)
            raise ManagementApiError("Failed to communicate with Mongo Atlas Search API", code=500) from exc


def _map_http_error(exc: requests.HTTPError) -> ManagementApiError:
    response = exc.response
    status = response.status_code if response is not None else None
    logger.warning("Atlas Search API responded with status %s: %s", status, exc)

    if status == 400:
        detail = None
        try:
            data = response.json()
            detail = data.get("detail") if isinstance(data, dict) else None
        except ValueError:
            pass
        return ManagementApiError(detail or "Bad Mongodb Atlas Search API Request", code=400)
    if status == 500:
        return ManagementApiError("Communication Failure with Atlas Search API", code=400)
    if status == 404:
        return ManagementApiError("Mongodb Atlas Search API Request Not Found Error", code=400)
    return ManagementApiError("Failed to communicate with Mongo Atlas Search API", code=500)


__all__ = ["AtlasSearchManager"]
