"""
Casbin Policy Adapter for MongoDB

Implements casbin's AsyncAdapter interface on top of a motor database.
Each policy rule is stored as one document with a ``p_type`` discriminator
and positional ``v0``..``v5`` fields, scoped by the configured namespace.

The adapter keeps no policy state between calls: every method is an
independent request against the store.

This module is part of MDB_CASBIN.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from casbin.model import Model
from casbin.persist.adapters.asyncio import AsyncAdapter
from pymongo import ASCENDING

from .config import StoreConfig, resolve_config
from .constants import NAMESPACE_FIELD, POLICY_SECTIONS, PTYPE_FIELD
from .observability import get_logger as get_contextual_logger
from .observability import timed_operation
from .rules import (
    CasbinRule,
    remove_filtered_policy_filter,
    remove_policy_filter,
    rules_filter,
)
from .utils import run_in_transaction, store_errors

logger = logging.getLogger(__name__)
contextual_logger = get_contextual_logger(__name__)

RULE_INDEX_NAME = "casbin_namespace_ptype"


class MongoAdapter(AsyncAdapter):
    """
    Casbin policy adapter backed by a MongoDB collection.

    The adapter does not own the client; close it through the component
    that opened it (see StoreConnection).

    Usage:
        async with StoreConnection(mongo_uri, "authz") as conn:
            adapter = MongoAdapter(conn.database, StoreConfig(namespace="tenantA"))
            enforcer = casbin.AsyncEnforcer(model, adapter)
            await enforcer.load_policy()
    """

    def __init__(self, database: Any, config: StoreConfig | None = None):
        """
        Initialize the adapter.

        Args:
            database: AsyncIOMotorDatabase holding the policy collection
            config: Store scope (default collection and root namespace if None)

        Raises:
            ConfigurationError: If the config is invalid
        """
        self._database = database
        self._config = resolve_config(config)
        self._collection = database[self._config.collection]
        logger.debug(f"MongoAdapter created for {self._config!r}")

    @property
    def config(self) -> StoreConfig:
        return self._config

    @property
    def namespace(self) -> str:
        return self._config.namespace

    async def ensure_indexes(self) -> None:
        """Create the (namespace, p_type) index used by every rule query."""
        async with store_errors("adapter.ensure_indexes", self._config):
            await self._collection.create_index(
                [(NAMESPACE_FIELD, ASCENDING), (PTYPE_FIELD, ASCENDING)],
                name=RULE_INDEX_NAME,
            )
        logger.debug(f"Ensured index '{RULE_INDEX_NAME}' on '{self._config.collection}'")

    @timed_operation("adapter.load_policy")
    async def load_policy(self, model: Model) -> None:
        """
        Load every stored rule of the namespace into the model.

        Rules are appended in store iteration order. Rows whose section or
        policy type the model does not define are skipped.

        Raises:
            StoreError: If the scan fails
        """
        async with store_errors("adapter.load_policy", self._config):
            cursor = self._collection.find(rules_filter(self.namespace))
            docs = await cursor.to_list(length=None)

        loaded = 0
        for doc in docs:
            if self._load_rule(CasbinRule.from_document(doc), model):
                loaded += 1

        contextual_logger.debug(
            f"Loaded {loaded} of {len(docs)} policy rules", extra=self._config.log_context()
        )

    def _load_rule(self, rule: CasbinRule, model: Model) -> bool:
        tokens = rule.to_tokens()
        if not tokens:
            logger.warning(f"Skipping stored '{rule.p_type}' rule with an empty v0")
            return False

        assertions = model.model.get(rule.section)
        if not assertions or rule.p_type not in assertions:
            logger.warning(
                f"Skipping stored rule with policy type '{rule.p_type}' "
                f"not defined in the model"
            )
            return False

        assertions[rule.p_type].policy.append(tokens)
        return True

    @timed_operation("adapter.save_policy")
    async def save_policy(self, model: Model) -> bool:
        """
        Replace every stored rule of the namespace with the model's rules.

        With ``atomic_save`` enabled the delete and the insert share one
        transaction. Otherwise existing rows are deleted first, outside any
        transaction, and the inserts then run in their own transaction; a
        failure between the two phases leaves the namespace empty.

        Raises:
            ValidationError: If a rule has more than six fields
            StoreError: If either phase fails
        """
        documents = [
            CasbinRule.from_policy(ptype, rule).to_document(self.namespace)
            for sec in POLICY_SECTIONS
            for ptype, assertion in model.model.get(sec, {}).items()
            for rule in assertion.policy
        ]
        query = rules_filter(self.namespace)

        async def _insert(session: Any) -> None:
            if documents:
                await self._collection.insert_many(documents, session=session)

        async def _replace(session: Any) -> None:
            await self._collection.delete_many(query, session=session)
            await _insert(session)

        async with store_errors("adapter.save_policy", self._config):
            if self._config.atomic_save:
                await run_in_transaction(self._database, _replace)
            else:
                result = await self._collection.delete_many(query)
                logger.debug(f"Deleted {result.deleted_count} rules before insert")
                await run_in_transaction(self._database, _insert)

        contextual_logger.info(
            f"Saved {len(documents)} policy rules", extra=self._config.log_context()
        )
        return True

    @timed_operation("adapter.add_policy")
    async def add_policy(self, sec: str, ptype: str, rule: Sequence[str]) -> bool:
        """
        Insert one rule as a new row. Existing identical rows are kept.

        Raises:
            ValidationError: If the rule has more than six fields
            StoreError: If the insert fails
        """
        document = CasbinRule.from_policy(ptype, rule).to_document(self.namespace)
        async with store_errors("adapter.add_policy", self._config):
            await self._collection.insert_one(document)
        logger.debug(f"Added {ptype} rule {list(rule)}")
        return True

    @timed_operation("adapter.add_policies")
    async def add_policies(self, sec: str, ptype: str, rules: Sequence[Sequence[str]]) -> bool:
        """Insert several rules of one policy type in a single transaction."""
        documents = [
            CasbinRule.from_policy(ptype, rule).to_document(self.namespace) for rule in rules
        ]
        if not documents:
            return True

        async def _insert(session: Any) -> None:
            await self._collection.insert_many(documents, session=session)

        async with store_errors("adapter.add_policies", self._config):
            await run_in_transaction(self._database, _insert)
        logger.debug(f"Added {len(documents)} {ptype} rules")
        return True

    @timed_operation("adapter.remove_policy")
    async def remove_policy(self, sec: str, ptype: str, rule: Sequence[str]) -> bool:
        """
        Delete every row matching the rule on ``p_type`` and ``v0``..``v4``.

        Succeeds when nothing matches.

        Raises:
            StoreError: If the delete fails
        """
        query = remove_policy_filter(self.namespace, ptype, rule)
        async with store_errors("adapter.remove_policy", self._config):
            result = await self._collection.delete_many(query)
        logger.debug(f"Removed {result.deleted_count} {ptype} rows matching {list(rule)}")
        return True

    @timed_operation("adapter.remove_policies")
    async def remove_policies(
        self, sec: str, ptype: str, rules: Sequence[Sequence[str]]
    ) -> bool:
        """Remove several rules of one policy type in a single transaction."""
        queries = [remove_policy_filter(self.namespace, ptype, rule) for rule in rules]
        if not queries:
            return True

        async def _delete(session: Any) -> None:
            for query in queries:
                await self._collection.delete_many(query, session=session)

        async with store_errors("adapter.remove_policies", self._config):
            await run_in_transaction(self._database, _delete)
        logger.debug(f"Removed {len(queries)} {ptype} rules")
        return True

    @timed_operation("adapter.remove_filtered_policy")
    async def remove_filtered_policy(
        self, sec: str, ptype: str, field_index: int, *field_values: str
    ) -> bool:
        """
        Delete rows whose fields match ``field_values`` from ``field_index`` on.

        Empty strings in ``field_values`` match any value at their position.

        Raises:
            ValidationError: If field_index is negative
            StoreError: If the delete fails
        """
        query = remove_filtered_policy_filter(self.namespace, ptype, field_index, field_values)
        if query is None:
            logger.debug(f"No {ptype} row can match values past v5, nothing removed")
            return True
        async with store_errors("adapter.remove_filtered_policy", self._config):
            result = await self._collection.delete_many(query)
        logger.debug(
            f"Removed {result.deleted_count} {ptype} rows "
            f"(field_index={field_index}, values={list(field_values)})"
        )
        return True
