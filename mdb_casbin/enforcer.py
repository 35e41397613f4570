"""
Casbin Enforcer Factory

Builds a casbin AsyncEnforcer whose model comes from the model store and
whose policies are persisted through MongoAdapter.

This module is part of MDB_CASBIN.
"""

from __future__ import annotations

import logging
from typing import Any

import casbin
from casbin.model import Model

from .adapter import MongoAdapter
from .config import StoreConfig, resolve_config
from .model_store import load_model, parse_model

logger = logging.getLogger(__name__)


async def create_enforcer(
    database: Any,
    config: StoreConfig | None = None,
    model: str | Model | None = None,
) -> casbin.AsyncEnforcer:
    """
    Create a Casbin AsyncEnforcer with the MongoDB adapter and load its policies.

    Args:
        database: AsyncIOMotorDatabase holding the model and policies
        config: Store scope shared by the model and the policies
        model: Model definition text or parsed Model; loaded from the model
            store when None

    Returns:
        AsyncEnforcer with policies loaded

    Raises:
        NotFoundError: If model is None and no model is stored
        ValidationError: If the model text does not parse
        StoreError: If reading the model or the policies fails
    """
    config = resolve_config(config)

    if model is None:
        casbin_model = await load_model(database, config)
        logger.debug("Using Casbin model from the model store")
    elif isinstance(model, str):
        casbin_model = parse_model(model)
    else:
        casbin_model = model

    adapter = MongoAdapter(database, config)
    enforcer = casbin.AsyncEnforcer(casbin_model, adapter)
    await enforcer.load_policy()

    logger.info(
        f"Casbin enforcer created for collection '{config.collection}' "
        f"(namespace={config.namespace!r})"
    )
    return enforcer
