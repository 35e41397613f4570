"""
MongoDB helpers shared by the model store and the policy adapter.

Provides transaction execution on a motor database handle and translation
of driver errors into StoreError.
"""

import logging
from collections.abc import Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, TypeVar

from pymongo.errors import PyMongoError

from ..config import StoreConfig
from ..exceptions import StoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@asynccontextmanager
async def store_errors(operation: str, config: StoreConfig) -> AsyncIterator[None]:
    """
    Re-raise driver errors raised inside the block as StoreError.

    Example:
        async with store_errors("adapter.add_policy", self._config):
            await collection.insert_one(doc)
    """
    try:
        yield
    except PyMongoError as e:
        logger.error(
            f"{operation} failed on '{config.collection}' "
            f"(namespace={config.namespace!r}): {e}",
            exc_info=True,
        )
        raise StoreError(
            f"{operation} failed: {e}",
            operation=operation,
            context={**config.log_context(), "error_type": type(e).__name__},
        ) from e


async def run_in_transaction(database: Any, callback: Callable[[Any], Awaitable[T]]) -> T:
    """
    Run ``callback(session)`` inside a MongoDB transaction.

    The driver's with_transaction helper retries the callback and the commit
    on transient transaction errors; any other failure propagates.

    Args:
        database: AsyncIOMotorDatabase the callback writes to
        callback: Coroutine function receiving the session to pass to every
            operation of the transaction

    Returns:
        The callback's return value
    """
    async with await database.client.start_session() as session:
        return await session.with_transaction(callback)
