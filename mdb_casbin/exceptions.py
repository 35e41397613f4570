"""
Custom exceptions for MDB_CASBIN.

All errors raised by the model store and the policy adapter derive from
CasbinStoreError, which stays compatible with RuntimeError.
"""

from typing import Any, Dict, Optional


class CasbinStoreError(RuntimeError):
    """
    Base exception for MDB_CASBIN errors.

    Attributes:
        message: Error message
        context: Optional dictionary with additional context (collection,
                 namespace, operation, etc.)
    """

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        """
        Initialize the exception.

        Args:
            message: Error message
            context: Optional dictionary with additional context information
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        """Return formatted error message with context if available."""
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} (context: {context_str})"
        return self.message


class ValidationError(CasbinStoreError):
    """
    Raised when a model definition fails to parse or a rule does not fit
    the row schema.

    Nothing is written to the store when this is raised on a save path.
    """


class NotFoundError(CasbinStoreError):
    """
    Raised when no model document exists for the configured collection
    and namespace.

    Attributes:
        collection: Collection that was searched
        namespace: Namespace that was searched
    """

    def __init__(
        self,
        message: str,
        collection: Optional[str] = None,
        namespace: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        if collection is not None:
            context["collection"] = collection
        if namespace is not None:
            context["namespace"] = namespace
        super().__init__(message, context=context)
        self.collection = collection
        self.namespace = namespace


class StoreError(CasbinStoreError):
    """
    Raised when the backing MongoDB store fails (network, permission,
    transaction commit).

    Attributes:
        operation: Name of the store operation that failed
        context: Additional context information
    """

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Initialize the store error.

        Args:
            message: Error message
            operation: Store operation that failed (e.g. "adapter.load_policy")
            context: Additional context information
        """
        context = context or {}
        if operation:
            context["operation"] = operation
        super().__init__(message, context=context)
        self.operation = operation


class ConfigurationError(CasbinStoreError):
    """
    Raised when configuration is invalid or missing.

    Attributes:
        config_key: Configuration key that caused the error (if available)
        config_value: Configuration value that caused the error (if available)
    """

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        config_value: Optional[Any] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        if config_key:
            context["config_key"] = config_key
        if config_value is not None:
            context["config_value"] = config_value
        super().__init__(message, context=context)
        self.config_key = config_key
        self.config_value = config_value
