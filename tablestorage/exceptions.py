"""
Table Storage Exception Hierarchy

Error types raised by the paged repository and its storage backend. Every
error carries a machine-readable code and a details dictionary.
"""

from typing import Optional, Dict, Any


class TableStorageError(Exception):
    """
    Base exception for all table storage errors.

    Attributes:
        message: Human-readable error message
        error_code: Machine-readable error code (e.g., 'InvalidArgument')
        details: Additional context (argument, table_name, keys, etc.)
    """

    error_code: str = "TableStorageError"

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.error_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary format."""
        return {
            "error": {
                "code": self.error_code,
                "message": self.message,
                "details": self.details
            }
        }


# ========== Caller Errors ==========

class InvalidArgumentError(TableStorageError, ValueError):
    """Raised when a precondition on an argument is violated."""
    error_code = "InvalidArgument"

    def __init__(self, argument: str, message: Optional[str] = None):
        message = message or f"{argument} is invalid."
        super().__init__(message, details={"argument": argument})
        self.argument = argument


class EmptyResultError(TableStorageError, LookupError):
    """Raised when first() finds no entity matching the query."""
    error_code = "EmptyResult"

    def __init__(self, table_name: str, message: Optional[str] = None):
        message = message or f"No entity in table '{table_name}' matches the query."
        super().__init__(message, details={"table_name": table_name})


class CorruptContinuationTokenError(TableStorageError, ValueError):
    """Raised when a continuation token string cannot be decoded."""
    error_code = "CorruptContinuationToken"

    def __init__(self, reason: str, token: Optional[str] = None):
        message = f"Continuation token is corrupt: {reason}"
        details: Dict[str, Any] = {"reason": reason}
        if token is not None:
            details["token"] = token
        super().__init__(message, details=details)


# ========== Storage Errors ==========

class StorageError(TableStorageError):
    """Base class for faults raised by the storage backend."""
    error_code = "StorageError"


class TableNotFoundError(StorageError):
    """Raised when a table is not found."""
    error_code = "TableNotFound"

    def __init__(self, table_name: str, message: Optional[str] = None):
        message = message or f"Table '{table_name}' not found"
        super().__init__(message, details={"table_name": table_name})


class TableAlreadyExistsError(StorageError):
    """Raised when attempting to create a table that already exists."""
    error_code = "TableAlreadyExists"

    def __init__(self, table_name: str, message: Optional[str] = None):
        message = message or f"Table '{table_name}' already exists"
        super().__init__(message, details={"table_name": table_name})


class EntityNotFoundError(StorageError):
    """Raised when an entity is not found."""
    error_code = "ResourceNotFound"

    def __init__(self, partition_key: str, row_key: str, message: Optional[str] = None):
        message = message or (
            f"Entity with PartitionKey '{partition_key}' "
            f"and RowKey '{row_key}' not found"
        )
        details = {"partition_key": partition_key, "row_key": row_key}
        super().__init__(message, details=details)


class EntityAlreadyExistsError(StorageError):
    """Raised when attempting to insert an entity that already exists."""
    error_code = "EntityAlreadyExists"

    def __init__(self, partition_key: str, row_key: str, message: Optional[str] = None):
        message = message or (
            f"Entity with PartitionKey '{partition_key}' "
            f"and RowKey '{row_key}' already exists"
        )
        details = {"partition_key": partition_key, "row_key": row_key}
        super().__init__(message, details=details)


class ETagMismatchError(StorageError):
    """Raised when ETag doesn't match for optimistic concurrency."""
    error_code = "UpdateConditionNotSatisfied"

    def __init__(self, expected: str, actual: str):
        message = f"ETag mismatch: expected '{expected}', got '{actual}'"
        super().__init__(message, details={"expected": expected, "actual": actual})
