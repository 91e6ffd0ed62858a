"""
Custom exceptions for MDB_INDEX_SYNC.

All exceptions derive from IndexSyncError, which keeps compatibility with
RuntimeError and carries an optional context dictionary.
"""

from typing import Any, Dict, List, Optional


class IndexSyncError(RuntimeError):
    """
    Base exception for index synchronization errors.

    Attributes:
        message: Error message
        context: Optional dictionary with additional context (type_id,
                 collection, index_name, etc.)
    """

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        """Return formatted error message with context if available."""
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} (context: {context_str})"
        return self.message


class IndexDefinitionParseError(IndexSyncError):
    """
    Raised when a compound index key expression is not a well-formed document.

    Fatal for the one index it belongs to only. The engine logs it and keeps
    going with the remaining indexes of the entity.

    Attributes:
        message: Error message
        definition: The raw key expression that failed to parse
        index_name: Declared index name (if available)
        context: Additional context information
    """

    def __init__(
        self,
        message: str,
        definition: Optional[str] = None,
        index_name: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        if definition is not None:
            context["definition"] = definition
        if index_name:
            context["index_name"] = index_name
        super().__init__(message, context=context)
        self.definition = definition
        self.index_name = index_name


class StoreUnavailableError(IndexSyncError):
    """
    Raised when the store rejects or cannot receive an index request.

    Covers connectivity failures as well as server-side rejections. The
    engine never retries; the error propagates to the caller of
    ``process_entity``.

    Attributes:
        message: Error message
        collection: Target collection of the failed request
        index_name: Name of the index being ensured
        context: Additional context information
    """

    def __init__(
        self,
        message: str,
        collection: Optional[str] = None,
        index_name: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        if collection:
            context["collection"] = collection
        if index_name:
            context["index_name"] = index_name
        super().__init__(message, context=context)
        self.collection = collection
        self.index_name = index_name


class ConfigurationError(IndexSyncError):
    """
    Raised when configuration is invalid or missing.

    Attributes:
        message: Error message
        config_key: Configuration key that caused the error (if available)
        config_value: Configuration value that caused the error (if available)
        context: Additional context information
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


class ManifestValidationError(IndexSyncError):
    """
    Raised when an entity manifest fails schema validation.

    Attributes:
        message: Error message
        error_paths: List of JSON paths with validation errors
        context: Additional context information
    """

    def __init__(
        self,
        message: str,
        error_paths: Optional[List[str]] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        if error_paths:
            context["error_paths"] = error_paths
        super().__init__(message, context=context)
        self.error_paths = error_paths
