"""
Connection management for MDB_CASBIN.

StoreConnection owns the motor client used by the model store and the
policy adapter. The client is opened by initialize() and released only by
an explicit shutdown(), or by leaving an ``async with`` block.

This module is part of MDB_CASBIN.
"""

from __future__ import annotations

import logging
import time
from typing import Any

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from .constants import DEFAULT_MAX_POOL_SIZE, DEFAULT_SERVER_SELECTION_TIMEOUT_MS
from .exceptions import StoreError
from .observability import get_logger as get_contextual_logger
from .observability import record_operation

logger = logging.getLogger(__name__)
contextual_logger = get_contextual_logger(__name__)


class StoreConnection:
    """
    Manages the MongoDB client lifecycle.

    Usage:
        async with StoreConnection("mongodb://localhost:27017", "authz") as conn:
            adapter = MongoAdapter(conn.database)
            ...
    """

    def __init__(
        self,
        mongo_uri: str,
        db_name: str,
        max_pool_size: int = DEFAULT_MAX_POOL_SIZE,
        **client_options: Any,
    ) -> None:
        """
        Initialize the connection.

        Args:
            mongo_uri: MongoDB connection URI
            db_name: Database name
            max_pool_size: Maximum MongoDB connection pool size
            **client_options: Extra keyword arguments for AsyncIOMotorClient
        """
        self.mongo_uri = mongo_uri
        self.db_name = db_name
        self.max_pool_size = max_pool_size
        self.client_options = client_options

        self._mongo_client: AsyncIOMotorClient | None = None
        self._mongo_db: AsyncIOMotorDatabase | None = None
        self._initialized: bool = False

    async def initialize(self) -> None:
        """
        Open the client and verify the server is reachable.

        Raises:
            StoreError: If the connection cannot be established
        """
        if self._initialized:
            logger.warning("StoreConnection already initialized. Skipping re-initialization.")
            return

        start_time = time.time()
        contextual_logger.info(
            "Opening MongoDB connection",
            extra={"db_name": self.db_name, "max_pool_size": self.max_pool_size},
        )

        options = {
            "serverSelectionTimeoutMS": DEFAULT_SERVER_SELECTION_TIMEOUT_MS,
            "appname": "MDB_CASBIN",
            "maxPoolSize": self.max_pool_size,
            "retryWrites": True,
            "retryReads": True,
            **self.client_options,
        }

        try:
            client = AsyncIOMotorClient(self.mongo_uri, **options)
            try:
                await client.admin.command("ping")
            except PyMongoError:
                client.close()
                raise
        except PyMongoError as e:
            duration_ms = (time.time() - start_time) * 1000
            record_operation("connection.initialize", duration_ms, success=False)
            contextual_logger.critical(
                "MongoDB connection failed",
                extra={"error_type": type(e).__name__, "error": str(e)},
                exc_info=True,
            )
            raise StoreError(
                f"Failed to connect to MongoDB: {e}",
                operation="connection.initialize",
                context={"db_name": self.db_name, "error_type": type(e).__name__},
            ) from e

        self._mongo_client = client
        self._mongo_db = client[self.db_name]
        self._initialized = True

        duration_ms = (time.time() - start_time) * 1000
        record_operation("connection.initialize", duration_ms, success=True)
        contextual_logger.info(
            "MongoDB connection initialized",
            extra={"db_name": self.db_name, "duration_ms": round(duration_ms, 2)},
        )

    async def shutdown(self) -> None:
        """
        Close the client. Safe to call more than once.
        """
        if not self._initialized:
            return

        if self._mongo_client is not None:
            self._mongo_client.close()
            contextual_logger.info("MongoDB connection closed.")

        self._initialized = False
        self._mongo_client = None
        self._mongo_db = None

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def client(self) -> AsyncIOMotorClient:
        """
        The open motor client.

        Raises:
            StoreError: If the connection is not initialized
        """
        if not self._initialized or self._mongo_client is None:
            raise StoreError(
                "StoreConnection not initialized. Call initialize() first.",
                operation="connection.client",
            )
        return self._mongo_client

    @property
    def database(self) -> AsyncIOMotorDatabase:
        """
        The configured database.

        Raises:
            StoreError: If the connection is not initialized
        """
        if not self._initialized or self._mongo_db is None:
            raise StoreError(
                "StoreConnection not initialized. Call initialize() first.",
                operation="connection.database",
            )
        return self._mongo_db

    async def __aenter__(self) -> StoreConnection:
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.shutdown()
