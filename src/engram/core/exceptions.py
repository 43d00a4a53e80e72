"""
Core Exceptions for the Engram memory engine.

This module defines the exception hierarchy shared by the storage layer, the
recall engine and the lifecycle stages. Every exception derives from
``EngramError`` and carries a human-readable message, an optional error code
for programmatic handling and a context dictionary for debugging.

The exceptions are organized into categories:
- Memory Store Exceptions (missing documents, corrupt frontmatter, bad paths)
- Concurrency Exceptions (per-path locks)
- Capability Exceptions (model failures)
- Configuration Exceptions

Malformed access-log lines and malformed short-term memory content are
tolerated by the storage layer and never surface as exceptions.
"""

import logging
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class EngramError(Exception):
    """Base exception class for all Engram errors."""

    def __init__(self, message: str, error_code: Optional[str] = None, context: Optional[Dict[str, Any]] = None):
        """
        Initialize an Engram error.

        Args:
            message: Human-readable error message
            error_code: Optional error code for programmatic handling
            context: Optional context information for debugging
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.context = context or {}

        logger.debug(f"EngramError: {message}", extra={
            "error_code": error_code,
            "context": context
        })


# Memory Store Exceptions

class MemoryStoreError(EngramError):
    """Base exception for memory store errors."""
    pass


class MemoryNotFoundError(MemoryStoreError):
    """Raised when a requested long-term memory document does not exist."""

    def __init__(self, path: str, message: Optional[str] = None):
        """
        Initialize a memory not found error.

        Args:
            path: Relative path of the document that was not found
            message: Optional custom message
        """
        self.path = path
        default_message = f"Memory document '{path}' not found"
        super().__init__(
            message or default_message,
            error_code="MEMORY_NOT_FOUND",
            context={"path": path}
        )


class MemoryFormatError(MemoryStoreError):
    """Raised when a persisted document cannot be decoded."""

    def __init__(self, path: str, reason: str):
        """
        Initialize a memory format error.

        Args:
            path: Path of the document that failed to decode
            reason: Description of what was wrong with the content
        """
        self.path = path
        self.reason = reason
        super().__init__(
            f"Malformed memory document '{path}': {reason}",
            error_code="MEMORY_FORMAT_ERROR",
            context={"path": path, "reason": reason}
        )


class MemoryPathError(MemoryStoreError):
    """Raised when a relative path is empty or escapes the store root."""

    def __init__(self, path: str, message: Optional[str] = None):
        self.path = path
        super().__init__(
            message or f"Invalid memory path '{path}'",
            error_code="MEMORY_PATH_INVALID",
            context={"path": path}
        )


class DocumentExistsError(MemoryStoreError):
    """Raised when a move would overwrite an unrelated document."""

    def __init__(self, path: str, existing_uuid: str):
        self.path = path
        self.existing_uuid = existing_uuid
        super().__init__(
            f"Memory document '{path}' already exists with uuid '{existing_uuid}'",
            error_code="MEMORY_DOCUMENT_EXISTS",
            context={"path": path, "uuid": existing_uuid}
        )


# Concurrency Exceptions

class LockHeldError(EngramError):
    """Raised when a lock for a path is already held by this process."""

    def __init__(self, path: str):
        """
        Initialize a lock held error.

        Args:
            path: Absolute path whose lock is already acquired
        """
        self.path = path
        super().__init__(
            f"Lock already acquired for path: {path}",
            error_code="LOCK_HELD",
            context={"path": path}
        )


# Capability Exceptions

class ModelFailureError(EngramError):
    """Raised when an injected model capability call fails."""

    def __init__(self, operation: str, message: Optional[str] = None, cause: Optional[Exception] = None):
        """
        Initialize a model failure error.

        Args:
            operation: The lifecycle operation that issued the model call
            message: Optional custom message
            cause: Optional underlying exception raised by the model client
        """
        self.operation = operation
        self.cause = cause
        default_message = f"Model call for '{operation}' failed"
        if cause:
            default_message += f": {str(cause)}"

        super().__init__(
            message or default_message,
            error_code="MODEL_FAILURE",
            context={"operation": operation, "cause": str(cause) if cause else None}
        )


# Configuration Exceptions

class ConfigurationError(EngramError):
    """Raised when configuration cannot be loaded or validated."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code="CONFIGURATION_ERROR", context=context)


__all__ = [
    "ConfigurationError",
    "DocumentExistsError",
    "EngramError",
    "LockHeldError",
    "MemoryFormatError",
    "MemoryNotFoundError",
    "MemoryPathError",
    "MemoryStoreError",
    "ModelFailureError",
]
