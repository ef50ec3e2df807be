"""
Custom exceptions for MDB_GATEWAY.

Every gateway failure derives from GatewayError, which remains a
RuntimeError so callers can catch it broadly.
"""

from typing import Any, Dict, Optional


class GatewayError(RuntimeError):
    """
    Base exception for gateway errors.

    Attributes:
        message: Error message
        context: Optional dictionary with additional context (tenant_id,
                 collection_name, etc.)
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


class InitializationError(GatewayError):
    """
    Raised when the MongoDB connection cannot be initialized.

    Attributes:
        message: Error message
        mongo_uri: MongoDB connection URI (if available)
        db_name: Database name (if available)
        context: Additional context information
    """

    def __init__(
        self,
        message: str,
        mongo_uri: Optional[str] = None,
        db_name: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        if mongo_uri:
            context["mongo_uri"] = mongo_uri
        if db_name:
            context["db_name"] = db_name
        super().__init__(message, context=context)
        self.mongo_uri = mongo_uri
        self.db_name = db_name


class ConfigurationError(GatewayError):
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


class ValidationError(GatewayError):
    """
    Raised when request parameters are missing or malformed.

    Raised before any store access.

    Attributes:
        message: Error message
        param: Name of the offending parameter (if available)
        context: Additional context information
    """

    def __init__(
        self,
        message: str,
        param: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        if param:
            context["param"] = param
        super().__init__(message, context=context)
        self.param = param


class QueryValidationError(ValidationError):
    """
    Raised when a query cannot be translated or fails safety checks.

    Attributes:
        message: Error message
        query_type: Part of the query that failed (filter, regex, sort, geo)
        operator: Operator involved (if available)
        path: Field path involved (if available)
        context: Additional context information
    """

    def __init__(
        self,
        message: str,
        query_type: Optional[str] = None,
        operator: Optional[str] = None,
        path: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        if query_type:
            context["query_type"] = query_type
        if operator:
            context["operator"] = operator
        if path:
            context["path"] = path
        super().__init__(message, context=context)
        self.query_type = query_type
        self.operator = operator
        self.path = path


class TenantIsolationError(GatewayError):
    """
    Raised when a tenant identifier fails the shape check or does not
    match the dedicated database.
    """

    def __init__(
        self,
        message: str,
        tenant_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        if tenant_id:
            context["tenant_id"] = tenant_id
        super().__init__(message, context=context)
        self.tenant_id = tenant_id


class NotFoundError(GatewayError):
    """Raised when there is nothing to operate on (no collections to export or import)."""


class StoreError(GatewayError):
    """
    Raised when the document store reports a failure.

    The message carries the driver's own error text.

    Attributes:
        message: Error message
        collection_name: Physical collection involved (if available)
        operation: Store operation that failed (if available)
        context: Additional context information
    """

    def __init__(
        self,
        message: str,
        collection_name: Optional[str] = None,
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        if collection_name:
            context["collection"] = collection_name
        if operation:
            context["operation"] = operation
        super().__init__(message, context=context)
        self.collection_name = collection_name
        self.operation = operation


class StoreConnectionError(StoreError):
    """Raised when the store cannot be reached."""


class DeleteError(StoreError):
    """
    Raised when a removal fails after the pre-delete read succeeded.

    Attributes:
        snapshot: Normalized record captured before the removal
    """

    def __init__(
        self,
        message: str,
        snapshot: Optional[Dict[str, Any]] = None,
        collection_name: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message,
            collection_name=collection_name,
            operation="remove",
            context=context,
        )
        self.snapshot = snapshot if snapshot is not None else {}


class DuplicateImportError(StoreError):
    """Raised when an import collides with data already in the target collections."""


class ArchiveError(GatewayError):
    """
    Raised when an archive cannot be encoded or decoded.

    Attributes:
        message: Error message
        archive_format: Entry format involved (if available)
        filename: File involved (if available)
        context: Additional context information
    """

    def __init__(
        self,
        message: str,
        archive_format: Optional[str] = None,
        filename: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        if archive_format:
            context["format"] = archive_format
        if filename:
            context["filename"] = filename
        super().__init__(message, context=context)
        self.archive_format = archive_format
        self.filename = filename
