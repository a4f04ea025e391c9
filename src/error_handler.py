"""
Error Handler for StudyForge
Maps provider failures to user-friendly messages and response status codes
"""

from services.retry_service import ErrorClassifier, ErrorType, RetryError
from src.constants import ERROR_QUOTA, ERROR_RATE_LIMIT


class ErrorHandler:
    """Centralized error handling for the application"""

    # User-friendly error messages
    ERROR_MESSAGES = {
        'api_key': "API Key Issue: The AI provider rejected the configured API key.",
        'quota': ERROR_QUOTA,
        'rate_limit': ERROR_RATE_LIMIT,
        'network': "Network Error: Unable to reach the AI provider. Please try again.",
        'content_filter': "Content Filtered: The content was blocked by safety filters. Try rephrasing.",
        'model_not_found': "Model Error: The configured model is not available.",
        'generation_failed': "Generation Failed: Unable to generate content. Please try again.",
        'unknown': "Unexpected Error: Something went wrong. Please try again."
    }

    _MESSAGE_KEYS = {
        ErrorType.RATE_LIMIT: 'rate_limit',
        ErrorType.QUOTA_EXCEEDED: 'quota',
        ErrorType.AUTHENTICATION: 'api_key',
        ErrorType.NETWORK: 'network',
        ErrorType.CONTENT_FILTER: 'content_filter',
        ErrorType.SERVER_ERROR: 'generation_failed',
    }

    _STATUS_CODES = {
        ErrorType.RATE_LIMIT: 429,
        ErrorType.QUOTA_EXCEEDED: 402,
    }

    @classmethod
    def handle_api_error(cls, error: Exception) -> str:
        """Convert API errors to user-friendly messages"""
        if isinstance(error, RetryError) and error.last_error is not None:
            error = error.last_error

        error_str = str(error).lower()
        if 'model' in error_str and 'not found' in error_str:
            return cls.ERROR_MESSAGES['model_not_found']

        error_type = ErrorClassifier.classify_error(error)
        return cls.ERROR_MESSAGES[cls._MESSAGE_KEYS.get(error_type, 'unknown')]

    @classmethod
    def status_for_error(cls, error: Exception) -> int:
        """HTTP-like status for a provider failure: 429, 402 or 500"""
        return cls._STATUS_CODES.get(ErrorClassifier.classify_error(error), 500)

