"""
Custom exceptions for better error handling.
"""
from typing import Any, Dict, Optional


class OfxConverterException(Exception):
    """Base exception for all statement conversion errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        """
        Initialize exception.

        Args:
            message: Error message
            details: Additional error details
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(OfxConverterException):
    """Raised when configuration is invalid."""
    pass


class FileProcessingError(OfxConverterException):
    """Raised when a statement file cannot be read into text."""
    pass


class ChunkingError(OfxConverterException):
    """Reserved for chunking failures. Chunking is total, so nothing raises it."""
    pass


class ExtractionError(OfxConverterException):
    """Raised when the extraction model call fails."""
    pass


class TransientExtractionError(ExtractionError):
    """Rate-limit or throttling failure; eligible for retry."""
    pass


class PermanentExtractionError(ExtractionError):
    """Malformed response or non-retryable failure."""
    pass


class ConversionError(OfxConverterException):
    """Raised when the conversion pipeline fails as a whole."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        part: Optional[int] = None,
    ):
        super().__init__(message, details)
        self.part = part


class EmptyResultError(ConversionError):
    """Raised when extraction succeeds but finds no transactions."""
    pass
