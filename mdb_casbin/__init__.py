"""
MDB_CASBIN - Casbin model and policy storage on MongoDB.

Provides:
- MongoAdapter: casbin AsyncAdapter persisting policy rules as documents
- Model store: save_model / load_model for the model definition
- StoreConnection: explicit motor client lifecycle
- create_enforcer: AsyncEnforcer bootstrap from the stored model

Usage:
    from mdb_casbin import StoreConfig, StoreConnection, create_enforcer, save_model

    async with StoreConnection("mongodb://localhost:27017", "authz") as conn:
        config = StoreConfig(namespace="tenantA")
        await save_model(conn.database, "rbac_model.conf", config)
        enforcer = await create_enforcer(conn.database, config)
        await enforcer.add_policy("alice", "data1", "read")
"""

from .adapter import MongoAdapter
from .config import StoreConfig
from .connection import StoreConnection
from .constants import DEFAULT_COLLECTION, DEFAULT_RBAC_MODEL, SIMPLE_ACL_MODEL
from .enforcer import create_enforcer
from .exceptions import (
    CasbinStoreError,
    ConfigurationError,
    NotFoundError,
    StoreError,
    ValidationError,
)
from .model_store import load_model, load_model_text, parse_model, save_model, save_model_text
from .rules import CasbinRule

__version__ = "0.1.0"

__all__ = [
    # Adapter
    "MongoAdapter",
    "CasbinRule",
    # Model store
    "save_model",
    "save_model_text",
    "load_model",
    "load_model_text",
    "parse_model",
    # Bootstrap
    "StoreConnection",
    "create_enforcer",
    # Configuration
    "StoreConfig",
    "DEFAULT_COLLECTION",
    "DEFAULT_RBAC_MODEL",
    "SIMPLE_ACL_MODEL",
    # Exceptions
    "CasbinStoreError",
    "ValidationError",
    "NotFoundError",
    "StoreError",
    "ConfigurationError",
]
