import asyncio
from typing import Optional

from fastapi import FastAPI
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from .config import settings


class MongoDB:
    """Lazily created Motor client, shared by queries and the index manager."""

    def __init__(self, url: Optional[str] = None, db_name: Optional[str] = None) -> None:
        self.url = url
        self.db_name = db_name
        self.client: Optional[AsyncIOMotorClient] = None
        self._lock = asyncio.Lock()

    async def connect(self) -> AsyncIOMotorDatabase:
        """Return the database handle, creating the client exactly once."""
        if self.client is None:
            async with self._lock:
                if self.client is None:
                    self.client = AsyncIOMotorClient(
                        self.url or settings.mongo_url,
                        maxPoolSize=settings.mongo_max_pool_size,
                        serverSelectionTimeoutMS=settings.mongo_server_selection_timeout_ms,
                        tz_aware=True,
                    )
        return self.client[self.db_name or settings.db_name]

    def close(self) -> None:
        if self.client is not None:
            self.client.close()
            self.client = None


mongo = MongoDB()


async def connect_to_mongo(app: FastAPI) -> None:
    """Create Motor client and attach to app.state for reuse."""
    await mongo.connect()
    app.state.mongo_client = mongo.client


async def close_mongo_connection(app: FastAPI) -> None:
    mongo.close()
    app.state.mongo_client = None


async def get_database() -> AsyncIOMotorDatabase:
    return await mongo.connect()
