"""
Casbin Model Store

Persists the Casbin model definition as a single document per namespace
and loads it back as a casbin Model.

Model text is always parsed before it is written, so the store never holds
a definition the enforcer cannot load.

This module is part of MDB_CASBIN.
"""

from __future__ import annotations

import logging
from os import PathLike
from typing import Any

import aiofiles
from casbin.model import Model

from .config import StoreConfig, resolve_config
from .constants import KEY_FIELD, MODEL_DOCUMENT_KEY, NAMESPACE_FIELD, TEXT_FIELD
from .exceptions import NotFoundError, ValidationError
from .observability import get_logger as get_contextual_logger
from .observability import timed_operation
from .utils import run_in_transaction, store_errors

logger = logging.getLogger(__name__)
contextual_logger = get_contextual_logger(__name__)

# Exceptions casbin raises on malformed model text
_MODEL_PARSE_ERRORS = (RuntimeError, ValueError, KeyError, IndexError)

# Sections every model must define, in the order they are reported
_REQUIRED_SECTIONS = (
    ("r", "request_definition"),
    ("p", "policy_definition"),
    ("e", "policy_effect"),
    ("m", "matchers"),
)


def parse_model(text: str) -> Model:
    """
    Parse model definition text.

    Raises:
        ValidationError: If the text is not a valid Casbin model
    """
    if not isinstance(text, str) or not text.strip():
        raise ValidationError("model definition is empty")

    model = Model()
    try:
        model.load_model_from_text(text)
    except _MODEL_PARSE_ERRORS as e:
        raise ValidationError(
            f"invalid model definition: {e}", context={"error_type": type(e).__name__}
        ) from e

    missing = [name for sec, name in _REQUIRED_SECTIONS if sec not in model.model]
    if missing:
        raise ValidationError(
            f"missing required sections: {', '.join(missing)}",
            context={"missing_sections": missing},
        )
    return model


def _model_filter(config: StoreConfig) -> dict[str, Any]:
    return {KEY_FIELD: MODEL_DOCUMENT_KEY, NAMESPACE_FIELD: config.namespace}


async def save_model(
    database: Any, path: str | PathLike[str], config: StoreConfig | None = None
) -> None:
    """
    Read a model definition file and store it.

    Args:
        database: AsyncIOMotorDatabase to write to
        path: Path of the model definition (.conf) file
        config: Store scope (default collection and root namespace if None)

    Raises:
        OSError: If the file cannot be read
        ValidationError: If the file does not hold a valid model
        StoreError: If the write fails
    """
    async with aiofiles.open(path, encoding="utf-8") as f:
        text = await f.read()
    logger.debug(f"Read model definition from {path} ({len(text)} chars)")
    await save_model_text(database, text, config)


@timed_operation("model_store.save")
async def save_model_text(database: Any, text: str, config: StoreConfig | None = None) -> None:
    """
    Validate model definition text and overwrite the stored model document.

    The overwrite runs in a transaction; nothing is written when validation
    fails.

    Raises:
        ValidationError: If the text is not a valid Casbin model
        StoreError: If the transaction fails
    """
    config = resolve_config(config)
    parse_model(text)

    collection = database[config.collection]
    document = {**_model_filter(config), TEXT_FIELD: text}

    async def _write(session: Any) -> None:
        await collection.replace_one(
            _model_filter(config), document, upsert=True, session=session
        )

    async with store_errors("model_store.save", config):
        await run_in_transaction(database, _write)

    contextual_logger.info("Stored Casbin model definition", extra=config.log_context())


@timed_operation("model_store.load")
async def load_model_text(database: Any, config: StoreConfig | None = None) -> str:
    """
    Fetch the stored model definition text.

    Raises:
        NotFoundError: If no model document exists in the namespace
        StoreError: If the read fails
    """
    config = resolve_config(config)
    collection = database[config.collection]

    async with store_errors("model_store.load", config):
        doc = await collection.find_one(_model_filter(config))

    if doc is None:
        raise NotFoundError(
            "no Casbin model stored",
            collection=config.collection,
            namespace=config.namespace,
        )
    return doc.get(TEXT_FIELD) or ""


async def load_model(database: Any, config: StoreConfig | None = None) -> Model:
    """
    Load and parse the stored model definition.

    Args:
        database: AsyncIOMotorDatabase to read from
        config: Store scope (default collection and root namespace if None)

    Returns:
        Parsed casbin Model

    Raises:
        NotFoundError: If no model document exists in the namespace
        ValidationError: If the stored text does not parse
        StoreError: If the read fails
    """
    text = await load_model_text(database, config)
    return parse_model(text)
