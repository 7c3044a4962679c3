"""
Shared error handling for the entity cache.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error response format."""

    code: str
    message: str
    details: Dict[str, Any] = {}


class EntityCacheException(Exception):
    """Base exception for the entity cache."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            code=self.code,
            message=self.message,
            details=self.details
        )


class ConfigurationError(EntityCacheException):
    """Invalid entity or cache configuration."""

    def __init__(self, message: str = "Invalid cache configuration", details: Optional[Dict[str, Any]] = None):
        super().__init__("CONFIGURATION_ERROR", message, details)


class BackendError(EntityCacheException):
    """Cache backend errors."""

    def __init__(self, backend: str, message: str = "Cache backend error", details: Optional[Dict[str, Any]] = None):
        super().__init__("BACKEND_ERROR", f"{backend}: {message}", details)
        self.backend = backend


class EnumerationNotSupportedError(EntityCacheException):
    """The cache backend cannot enumerate keys by pattern."""

    def __init__(self, backend: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            "ENUMERATION_NOT_SUPPORTED",
            f"{backend}: key enumeration is not supported",
            details
        )
        self.backend = backend


class SerializationError(EntityCacheException):
    """A stored cache value could not be encoded or decoded."""

    def __init__(self, message: str = "Cache entry serialization failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("SERIALIZATION_ERROR", message, details)
