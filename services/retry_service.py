"""
Retry Service with Enhanced Error Handling
Implements exponential backoff and intelligent retry mechanisms for provider calls.
Retries wrap only the upstream model call, never JSON extraction.
"""

import time
import random
from typing import Callable, Any, Optional, List
from enum import Enum

from openai import APIError, RateLimitError, APIConnectionError, AuthenticationError, BadRequestError


class RetryError(Exception):
    """Raised when every retry attempt failed"""

    def __init__(self, message: str, errors: Optional[List[Exception]] = None):
        super().__init__(message)
        self.errors = errors or []

    @property
    def last_error(self) -> Optional[Exception]:
        return self.errors[-1] if self.errors else None

    def __str__(self) -> str:
        base = super().__str__()
        if not self.errors:
            return base
        error_details = "\n".join(
            f"  Attempt {i + 1}: {e}" for i, e in enumerate(self.errors)
        )
        return f"{base}\nPrevious errors:\n{error_details}"


class ErrorType(Enum):
    """Classification of different error types for retry strategies"""
    RATE_LIMIT = "rate_limit"
    NETWORK = "network"
    SERVER_ERROR = "server_error"
    AUTHENTICATION = "authentication"
    QUOTA_EXCEEDED = "quota_exceeded"
    CONTENT_FILTER = "content_filter"
    UNKNOWN = "unknown"


_QUOTA_TERMS = ['quota', 'insufficient_quota', 'billing', 'payment required', '402']
_CONTENT_FILTER_TERMS = ['content_filter', 'safety', 'policy', 'moderation']


class RetryConfig:
    """Configuration for retry behavior"""

    def __init__(self,
                 max_retries: int = 3,
                 base_delay: float = 1.0,
                 max_delay: float = 60.0,
                 exponential_base: float = 2.0,
                 jitter: bool = True):
        """Initialize retry configuration

        Args:
            max_retries: Maximum number of retry attempts
            base_delay: Base delay in seconds for exponential backoff
            max_delay: Maximum delay between retries
            exponential_base: Base for exponential backoff calculation
            jitter: Whether to add random jitter to delays
        """
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base
        self.jitter = jitter

    @classmethod
    def from_config(cls, config: Optional[dict]) -> "RetryConfig":
        """Build from the `retry` section of config.yaml"""
        section = (config or {}).get("retry", {}) or {}
        return cls(
            max_retries=int(section.get("max_retries", 3)),
            base_delay=float(section.get("base_delay", 1.0)),
            max_delay=float(section.get("max_delay", 60.0)),
        )


class ErrorClassifier:
    """Classifies errors and determines retry strategies"""

    @staticmethod
    def classify_error(error: Exception) -> ErrorType:
        """Classify an error to determine retry strategy

        Uses isinstance() checks for OpenAI exceptions, falls back to string matching
        for other error types.

        Args:
            error: The exception to classify

        Returns:
            ErrorType classification
        """
        # A RetryError is as bad as the last failure it wraps
        if isinstance(error, RetryError) and error.last_error is not None:
            return ErrorClassifier.classify_error(error.last_error)

        error_msg = str(error).lower()

        if isinstance(error, RateLimitError):
            # Providers report exhausted credit as 429 too
            if any(term in error_msg for term in ['insufficient_quota', 'billing']):
                return ErrorType.QUOTA_EXCEEDED
            return ErrorType.RATE_LIMIT

        if isinstance(error, AuthenticationError):
            return ErrorType.AUTHENTICATION

        if isinstance(error, APIConnectionError):
            return ErrorType.NETWORK

        if isinstance(error, BadRequestError):
            if any(term in error_msg for term in _CONTENT_FILTER_TERMS):
                return ErrorType.CONTENT_FILTER
            return ErrorType.UNKNOWN

        if isinstance(error, APIError):
            if getattr(error, "status_code", None) == 402:
                return ErrorType.QUOTA_EXCEEDED
            if any(term in error_msg for term in _QUOTA_TERMS):
                return ErrorType.QUOTA_EXCEEDED
            # Generic API error - retryable
            return ErrorType.SERVER_ERROR

        # Fallback to string matching for non-OpenAI exceptions
        if any(term in error_msg for term in ['rate limit', 'too many requests', '429']):
            return ErrorType.RATE_LIMIT

        if any(term in error_msg for term in ['connection', 'timeout', 'network', 'dns']):
            return ErrorType.NETWORK

        if any(term in error_msg for term in ['server error', '500', '502', '503', '504']):
            return ErrorType.SERVER_ERROR

        if any(term in error_msg for term in ['unauthorized', '401', 'api key', 'authentication']):
            return ErrorType.AUTHENTICATION

        if any(term in error_msg for term in _QUOTA_TERMS):
            return ErrorType.QUOTA_EXCEEDED

        if any(term in error_msg for term in _CONTENT_FILTER_TERMS):
            return ErrorType.CONTENT_FILTER

        return ErrorType.UNKNOWN

    @staticmethod
    def should_retry(error_type: ErrorType) -> bool:
        """Determine if an error type should be retried

        Args:
            error_type: The classified error type

        Returns:
            True if the error should be retried
        """
        non_retryable = {
            ErrorType.AUTHENTICATION,
            ErrorType.QUOTA_EXCEEDED,
            ErrorType.CONTENT_FILTER,
        }

        return error_type not in non_retryable

    @staticmethod
    def get_retry_config(error_type: ErrorType) -> RetryConfig:
        """Get retry configuration based on error type

        Args:
            error_type: The classified error type

        Returns:
            Appropriate retry configuration
        """
        if error_type == ErrorType.RATE_LIMIT:
            # More aggressive backoff for rate limits
            return RetryConfig(max_retries=5, base_delay=2.0, max_delay=120.0)
        elif error_type == ErrorType.NETWORK:
            # Quick retries for network issues
            return RetryConfig(max_retries=4, base_delay=0.5, max_delay=30.0)
        elif error_type == ErrorType.SERVER_ERROR:
            return RetryConfig(max_retries=3, base_delay=1.0, max_delay=60.0)
        else:
            return RetryConfig()


class RetryHandler:
    """Handles retry logic with exponential backoff"""

    def __init__(self, logger=None, config: Optional[RetryConfig] = None):
        """Initialize retry handler

        Args:
            logger: Optional VerboseLogger for retry events
            config: Default retry configuration for calls that pass none
        """
        self.logger = logger
        self.config = config

    def calculate_delay(self, attempt: int, config: RetryConfig) -> float:
        """Calculate delay for exponential backoff with jitter

        Args:
            attempt: Current attempt number (0-based)
            config: Retry configuration

        Returns:
            Delay in seconds
        """
        delay = config.base_delay * (config.exponential_base ** attempt)
        delay = min(delay, config.max_delay)

        if config.jitter:
            jitter_amount = delay * 0.1  # 10% jitter
            delay += random.uniform(-jitter_amount, jitter_amount)

        return max(0, delay)

    def retry_with_backoff(self,
                           func: Callable,
                           *args,
                           config: Optional[RetryConfig] = None,
                           context: str = "operation",
                           **kwargs) -> Any:
        """Execute function with retry and exponential backoff

        Args:
            func: Function to execute
            *args: Positional arguments for function
            config: Optional retry configuration
            context: Description of operation for logging
            **kwargs: Keyword arguments for function

        Returns:
            Function result

        Raises:
            The original exception for non-retryable errors
            RetryError: If all retries failed
        """
        # Error-specific backoff only applies when the caller did not pin a config
        adaptive = config is None and self.config is None
        if config is None:
            config = self.config or RetryConfig()

        last_error: Optional[Exception] = None
        errors: List[Exception] = []

        max_attempts = config.max_retries + 1
        for attempt in range(max_attempts):
            try:
                if self.logger and attempt > 0:
                    self.logger.log_debug(f"Retry attempt {attempt} for {context}")

                result = func(*args, **kwargs)

                if attempt > 0 and self.logger:
                    self.logger.log_debug(f"Success on attempt {attempt + 1} for {context}")

                return result

            except Exception as e:
                last_error = e
                errors.append(e)
                error_type = ErrorClassifier.classify_error(e)

                if self.logger:
                    self.logger.log_error(
                        error=e,
                        context=f"{context} (attempt {attempt + 1}) - {error_type.value}"
                    )

                if not ErrorClassifier.should_retry(error_type):
                    if self.logger:
                        self.logger.log_debug(f"Not retrying {error_type.value} error for {context}")
                    raise

                if attempt >= max_attempts - 1:
                    break

                if adaptive and error_type in [ErrorType.RATE_LIMIT, ErrorType.NETWORK]:
                    config = ErrorClassifier.get_retry_config(error_type)

                delay = self.calculate_delay(attempt, config)

                if self.logger:
                    self.logger.log_debug(f"Waiting {delay:.2f}s before retry {attempt + 1} for {context}")

                time.sleep(delay)

        error_msg = f"All {max_attempts} attempts failed for {context}"
        if last_error:
            error_msg += f". Last error: {last_error}"

        raise RetryError(error_msg, errors=errors) from last_error
