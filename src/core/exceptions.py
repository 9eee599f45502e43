#!/usr/bin/env python3
"""
Standardized exception hierarchy for PulseWatch.

Provides specific exception types for the failure classes the ingestion and
analysis engine distinguishes: transient external errors (retried or counted),
terminal external errors (never retried), validation errors (rejected before
any side effect) and resource exhaustion (rate limits).
"""

from datetime import datetime, timezone
from typing import Optional, Dict, Any


class PulseWatchError(Exception):
    """Base exception for all PulseWatch errors."""

    def __init__(self, message: str, error_code: Optional[str] = None, context: Optional[Dict[str, Any]] = None):
        """
        Initialize base exception.

        Args:
            message: Human-readable error message
            error_code: Machine-readable error code
            context: Additional error context
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.context = context or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            'error_type': self.__class__.__name__,
            'error_code': self.error_code,
            'message': self.message,
            'context': self.context
        }


# Classifier-related exceptions
class ClassifierError(PulseWatchError):
    """Base exception for sentiment classifier errors."""
    pass


class TransientClassifierError(ClassifierError):
    """Classifier call failed in a way that may succeed on retry."""

    def __init__(self, provider: str, original_error: Exception):
        message = f"Classifier call to {provider} failed: {original_error}"
        context = {
            'provider': provider,
            'original_error': str(original_error)
        }
        super().__init__(message, context=context)


class ClassifierResponseError(TransientClassifierError):
    """Classifier returned a response that could not be parsed."""

    def __init__(self, provider: str, detail: str, raw_response: Optional[str] = None):
        super().__init__(provider, ValueError(detail))
        self.message = f"Invalid response format from {provider}: {detail}"
        self.args = (self.message,)
        self.context['raw_response'] = (raw_response or '')[:500]


class TerminalClassifierError(ClassifierError):
    """Classifier rejected the request in a way retrying cannot fix."""

    def __init__(self, provider: str, reason: str, original_error: Optional[Exception] = None):
        message = f"Classifier {provider} rejected request: {reason}"
        context = {
            'provider': provider,
            'reason': reason,
            'original_error': str(original_error) if original_error else None
        }
        super().__init__(message, context=context)
        self.reason = reason


# Record store exceptions
class RecordStoreError(PulseWatchError):
    """Base exception for record store errors."""
    pass


class RecordStoreConnectionError(RecordStoreError):
    """Failed to connect to the record store."""

    def __init__(self, connection_type: str, original_error: Exception):
        message = f"Failed to connect to record store via {connection_type}"
        context = {
            'connection_type': connection_type,
            'original_error': str(original_error)
        }
        super().__init__(message, context=context)


class RecordStoreOperationError(RecordStoreError):
    """Record store operation failed."""

    def __init__(self, operation: str, table: str, original_error: Exception):
        message = f"Record store {operation} failed on table {table}: {original_error}"
        context = {
            'operation': operation,
            'table': table,
            'original_error': str(original_error)
        }
        super().__init__(message, context=context)


# Workflow exceptions
class AnalysisRunError(PulseWatchError):
    """A batch-analysis run could not complete."""

    def __init__(self, phase: str, original_error: Exception):
        message = f"Analysis run failed during {phase}: {original_error}"
        context = {
            'phase': phase,
            'original_error': str(original_error)
        }
        super().__init__(message, context=context)
        self.phase = phase


class OperationCancelled(PulseWatchError):
    """A suspended operation was interrupted by process shutdown."""

    def __init__(self, operation: str = "sleep"):
        super().__init__(f"{operation} interrupted by shutdown", context={'operation': operation})


# Rate limiting
class RateLimitExceededError(PulseWatchError):
    """Caller exceeded a named rate-limit policy."""

    def __init__(self, policy: str, identity: str, limit: int, reset_at: float, retry_after_seconds: float):
        message = f"Rate limit exceeded for {policy}, retry after {int(retry_after_seconds)}s"
        context = {
            'policy': policy,
            'identity': identity,
            'limit': limit,
            'reset_at': reset_at,
            'retry_after_seconds': retry_after_seconds
        }
        super().__init__(message, context=context)
        self.policy = policy
        self.limit = limit
        self.reset_at = reset_at
        self.retry_after_seconds = retry_after_seconds

    @property
    def retry_after_iso(self) -> str:
        """Reset time as an ISO-8601 UTC timestamp."""
        return datetime.fromtimestamp(self.reset_at, tz=timezone.utc).isoformat()


# Configuration-related exceptions
class ConfigurationError(PulseWatchError):
    """Configuration is invalid or missing."""

    def __init__(self, config_key: str, issue: str):
        message = f"Configuration error for {config_key}: {issue}"
        context = {
            'config_key': config_key,
            'issue': issue
        }
        super().__init__(message, context=context)


# Validation-related exceptions
class ValidationError(PulseWatchError):
    """Input validation failed."""

    def __init__(self, field: str, value: Any, expected: str):
        message = f"Validation failed for {field}: expected {expected}, got {value!r}"
        context = {
            'field': field,
            'value': str(value),
            'expected': expected,
            'actual_type': type(value).__name__
        }
        super().__init__(message, context=context)
        self.field = field


# Messages the classifier uses for errors that retrying cannot fix
TERMINAL_ERROR_MARKERS = (
    'Invalid API key',
    'invalid_api_key',
    'context_length_exceeded',
)


# Recovery utilities
class ErrorRecovery:
    """Utilities for error recovery and retry logic."""

    @staticmethod
    def is_terminal_error(error: Exception) -> bool:
        """Check if an error can never succeed on retry."""
        if isinstance(error, TerminalClassifierError):
            return True
        if isinstance(error, (ValidationError, ConfigurationError)):
            return True
        message = str(error)
        return any(marker in message for marker in TERMINAL_ERROR_MARKERS)

    @staticmethod
    def is_retryable_error(error: Exception) -> bool:
        """Check if an error is potentially retryable."""
        if isinstance(error, OperationCancelled):
            return False
        return not ErrorRecovery.is_terminal_error(error)

    @staticmethod
    def get_retry_delay(attempt: int, base_delay: float = 1.0) -> float:
        """
        Get delay in seconds before retry number ``attempt`` (1-based).

        Exponential backoff: 2^attempt * base_delay, i.e. 2s, 4s, 8s for the
        default base.
        """
        return (2 ** attempt) * base_delay
