"""
Verbose Logger Module for StudyForge
Provides functionality to log API calls, responses and other debug information
"""

import os
import logging
import json
from datetime import datetime
from pathlib import Path

LOGGER_NAME = "studyforge"


class VerboseLogger:
    """Logger class to handle verbose output and file logging"""

    def __init__(self, verbose=False, log_file=None, log_dir="logs"):
        """Initialize the logger

        Args:
            verbose (bool): Whether to print verbose output to console
            log_file (str | bool): Path to log file. If None, creates one in log_dir.
                If False, no log file is written.
            log_dir (str): Directory for the generated log file
        """
        if log_file is None:
            Path(log_dir).mkdir(parents=True, exist_ok=True)
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            log_file = str(Path(log_dir) / f"studyforge_{timestamp}.log")

        # Configure logger
        self.logger = logging.getLogger(LOGGER_NAME)
        self.logger.setLevel(logging.DEBUG)

        # Clear any existing handlers
        if self.logger.handlers:
            for handler in list(self.logger.handlers):
                handler.close()
            self.logger.handlers.clear()

        if log_file:
            file_handler = logging.FileHandler(log_file, encoding="utf-8")
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            ))
            self.logger.addHandler(file_handler)

        # Console handler (only in verbose mode)
        self.verbose = verbose
        if verbose:
            console_handler = logging.StreamHandler()
            console_handler.setLevel(logging.DEBUG)
            console_handler.setFormatter(logging.Formatter(
                '\033[92m%(asctime)s\033[0m - \033[94m%(levelname)s\033[0m - %(message)s'
            ))
            self.logger.addHandler(console_handler)

        self.log_file = log_file or None
        if self.log_file:
            self.logger.info(f"Logging initialized. Log file: {self.log_file}")
        if verbose:
            self.logger.info("Verbose mode enabled - API calls will be displayed in terminal")

    def log_api_request(self, model, endpoint, params):
        """Log an API request

        Args:
            model (str): The AI model being used
            endpoint (str): The API endpoint being called
            params (dict): The parameters being sent to the API
        """
        # Create a sanitized copy of params for logging
        safe_params = dict(params) if isinstance(params, dict) else {"raw_params": str(params)}

        # Remove potentially sensitive data
        if 'api_key' in safe_params:
            safe_params['api_key'] = '***API_KEY_REDACTED***'
        if isinstance(safe_params.get('headers'), dict):
            headers = dict(safe_params['headers'])
            if 'Authorization' in headers:
                headers['Authorization'] = '***AUTH_REDACTED***'
            if 'api-key' in headers:
                headers['api-key'] = '***API_KEY_REDACTED***'
            safe_params['headers'] = headers

        try:
            params_str = json.dumps(safe_params, indent=2, ensure_ascii=False)
        except (TypeError, ValueError):
            params_str = str(safe_params)

        self.logger.debug(f"API REQUEST: {model} - {endpoint}\n{params_str}")

    def log_api_response(self, model, response, status=None):
        """Log an API response

        Args:
            model (str): The AI model that was used
            response: The response from the API (SDK object or plain dict)
            status (int, optional): HTTP status code if available
        """
        try:
            if hasattr(response, 'model_dump'):
                # OpenAI SDK responses are pydantic models
                payload = response.model_dump()
            else:
                payload = response
            response_str = json.dumps(payload, indent=2, default=str, ensure_ascii=False)
        except (TypeError, ValueError):
            response_str = str(response)

        status_text = f" (Status: {status})" if status else ""
        self.logger.debug(f"API RESPONSE: {model}{status_text}\n{response_str}")

    def log_error(self, error, model=None, context=None, include_traceback=False):
        """Log an error with optional traceback

        Args:
            error: The error that occurred
            model (str, optional): The AI model being used when the error occurred
            context (str, optional): Additional context about the error
            include_traceback (bool): If True, include full traceback in log file
        """
        model_info = f" ({model})" if model else ""
        context_info = f" - Context: {context}" if context else ""

        self.logger.error(
            f"ERROR{model_info}: {str(error)}{context_info}",
            exc_info=include_traceback,
        )

    def log_info(self, message):
        """Log an informational message"""
        self.logger.info(message)

    def log_warning(self, message):
        """Log a warning message"""
        self.logger.warning(message)

    def log_debug(self, message):
        """Log a debug message"""
        self.logger.debug(message)

    def get_log_file_path(self):
        """Get the path to the current log file

        Returns:
            str: Path to the log file, or None when file logging is disabled
        """
        return self.log_file


# Global logger instance - will be initialized by main application
logger = None


def init_logger(verbose=False, log_file=None, log_dir="logs"):
    """Initialize the global logger instance

    Args:
        verbose (bool): Whether to enable verbose mode
        log_file (str | bool, optional): Path to log file, False to disable
        log_dir (str): Directory for the generated log file

    Returns:
        VerboseLogger: The logger instance
    """
    global logger
    logger = VerboseLogger(verbose=verbose, log_file=log_file, log_dir=log_dir)
    return logger


def get_logger():
    """Get the global logger instance

    Returns:
        VerboseLogger: The logger instance
    """
    global logger
    if logger is None:
        # Initialize with defaults if not already initialized
        logger = init_logger()
    return logger


def check_log_file(log_file_path):
    """Check if the log file exists and is writable

    Args:
        log_file_path (str): Path to the log file

    Returns:
        bool: True if the log file is writable, False otherwise
        str: Error message if there was an error, None otherwise
    """
    if not log_file_path:
        return False, "No log file path provided"

    log_dir = os.path.dirname(log_file_path)
    try:
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        with open(log_file_path, 'a', encoding='utf-8') as f:
            f.write("")
    except OSError as e:
        return False, f"Error checking log file: {e}"

    return True, None
