"""
Configuration management for MDB_CASBIN.

StoreConfig scopes both the model store and the policy adapter to one
collection and namespace. Values not passed directly fall back to
environment variables, then to the built-in defaults.
"""

import os

from .constants import (
    DEFAULT_COLLECTION,
    DEFAULT_NAMESPACE,
    MAX_COLLECTION_NAME_LENGTH,
    RESERVED_COLLECTION_PREFIX,
)
from .exceptions import ConfigurationError

_TRUE_VALUES = ("1", "true", "yes", "on")


class StoreConfig:
    """
    Storage scope shared by the model store and the policy adapter.

    Example:
        # Defaults: collection "casbin", root namespace
        config = StoreConfig()

        # Isolated tenant store in the same database
        config = StoreConfig(collection="authz", namespace="tenantA")
    """

    def __init__(
        self,
        collection: str | None = None,
        namespace: str | None = None,
        atomic_save: bool | None = None,
    ):
        """
        Initialize configuration.

        Args:
            collection: Collection name (defaults to CASBIN_COLLECTION env var,
                then "casbin")
            namespace: Namespace partition (defaults to CASBIN_NAMESPACE env var,
                then the root namespace "")
            atomic_save: Run save_policy's delete and insert phases in one
                transaction (defaults to CASBIN_ATOMIC_SAVE env var, then True)
        """
        self.collection = collection or os.getenv("CASBIN_COLLECTION", DEFAULT_COLLECTION)
        if namespace is None:
            namespace = os.getenv("CASBIN_NAMESPACE", DEFAULT_NAMESPACE)
        self.namespace = namespace
        if atomic_save is None:
            atomic_save = os.getenv("CASBIN_ATOMIC_SAVE", "true").lower() in _TRUE_VALUES
        self.atomic_save = atomic_save

    def validate(self) -> None:
        """
        Validate configuration values.

        Raises:
            ConfigurationError: If the collection name or namespace is invalid
        """
        if not self.collection:
            raise ConfigurationError("collection must not be empty", config_key="collection")

        if len(self.collection) > MAX_COLLECTION_NAME_LENGTH:
            raise ConfigurationError(
                f"collection name exceeds {MAX_COLLECTION_NAME_LENGTH} characters",
                config_key="collection",
                config_value=self.collection,
            )

        if self.collection.startswith(RESERVED_COLLECTION_PREFIX):
            raise ConfigurationError(
                f"collection name must not start with '{RESERVED_COLLECTION_PREFIX}'",
                config_key="collection",
                config_value=self.collection,
            )

        if "$" in self.collection or "\0" in self.collection:
            raise ConfigurationError(
                "collection name must not contain '$' or NUL characters",
                config_key="collection",
                config_value=self.collection,
            )

        if not isinstance(self.namespace, str):
            raise ConfigurationError(
                "namespace must be a string",
                config_key="namespace",
                config_value=self.namespace,
            )

    def log_context(self) -> dict[str, str]:
        return {"collection": self.collection, "namespace": self.namespace}

    def __repr__(self) -> str:
        return (
            f"StoreConfig(collection={self.collection!r}, namespace={self.namespace!r}, "
            f"atomic_save={self.atomic_save!r})"
        )


def resolve_config(config: StoreConfig | None) -> StoreConfig:
    """Return a validated config, building the default one when None."""
    config = config or StoreConfig()
    config.validate()
    return config
