"""
Centralized Logging and Security Filtering
==========================================

This module provides the logging infrastructure for the offer dashboard.
It centralizes all diagnostic output while ensuring that credentials (the
Living Apps session cookie, the Anthropic API key) never reach the log files.

Key Features:
-------------
- Sensitive Data Masking: Automatic redaction of API keys, cookies and
  tokens using regex and recursive dictionary filtering.
- API Instrumentation: Decorators and helpers for logging REST requests/responses
  with automatic timing and status tracking. Works for coroutines.
- Contextual Logging: Timestamps, module origin, and line numbers.
"""

import inspect
import logging
import sys
import re
from pathlib import Path
from typing import Any, Dict, Optional, Callable
from functools import wraps
import time
import json


# Project root is 3 levels up from this file: utils -> src -> project root
PROJECT_ROOT = Path(__file__).parent.parent.parent
LOG_DIR = PROJECT_ROOT / "logs"
LOG_FILE_NAME = "offerdesk.log"

# Sensitive field patterns to mask
SENSITIVE_FIELDS = {
    'password', 'passwd', 'pwd', 'secret', 'token', 'api_key',
    'apikey', 'x-api-key', 'auth', 'authorization', 'credentials',
    'cookie', 'session_cookie'
}

# Regex patterns for sensitive data in strings
SENSITIVE_PATTERNS = [
    (re.compile(r'(sk-ant-[a-zA-Z0-9\-_]{10,})'), '***'),  # Anthropic keys
    (re.compile(r'(sk-[a-zA-Z0-9]{20,})'), '***'),
    (re.compile(r'(Bearer\s+[a-zA-Z0-9\-._~+/]+=*)'), 'Bearer ***'),
    (re.compile(r'([a-zA-Z0-9]{32,})'), lambda m: f"***{m.group(1)[-4:]}"),  # Long alphanumeric (likely keys)
]


class SensitiveDataFilter(logging.Filter):
    """
    Filtering hook to intercept and redact sensitive information.

    Attached to both file and console handlers. Scans log records for
    credential-looking content and replaces it with masks (e.g. '***' or
    '***4a1b') before the data is persisted or displayed.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        """Mask sensitive data in the log message."""
        if isinstance(record.msg, str):
            record.msg = self._mask_string(record.msg)

        if record.args:
            if isinstance(record.args, dict):
                record.args = mask_sensitive_data(record.args)
            elif isinstance(record.args, tuple):
                record.args = tuple(
                    mask_sensitive_data(arg) if isinstance(arg, (dict, str)) else arg
                    for arg in record.args
                )

        return True

    def _mask_string(self, text: str) -> str:
        return _mask_patterns(text)


def _mask_patterns(text: str) -> str:
    for pattern, replacement in SENSITIVE_PATTERNS:
        text = pattern.sub(replacement, text)
    return text


def mask_sensitive_data(data: Any, mask_value: str = "***") -> Any:
    """
    Recursively redact sensitive fields from complex data structures.

    Traverses dictionaries and lists, identifying keys that correspond to
    known credential labels (e.g. 'api_key', 'session_cookie'). Strings are
    additionally scrubbed with the regex patterns.

    Args:
        data: The input data structure (dict, list, str, etc.) to be scrubbed.
        mask_value: The string used to replace sensitive content.

    Returns:
        A copy of the input data with sensitive values masked.
    """
    if isinstance(data, dict):
        masked = {}
        for key, value in data.items():
            key_lower = str(key).lower()

            if any(sensitive in key_lower for sensitive in SENSITIVE_FIELDS):
                # For API keys, show last 4 characters
                if 'key' in key_lower or 'token' in key_lower:
                    if isinstance(value, str) and len(value) > 4:
                        masked[key] = f"{mask_value}{value[-4:]}"
                    else:
                        masked[key] = mask_value
                else:
                    masked[key] = mask_value
            else:
                masked[key] = mask_sensitive_data(value, mask_value)
        return masked

    elif isinstance(data, (list, tuple)):
        masked_list = [mask_sensitive_data(item, mask_value) for item in data]
        return type(data)(masked_list)

    elif isinstance(data, str):
        return _mask_patterns(data)

    else:
        return data


def setup_logging(
    log_level: int = logging.DEBUG,
    console_level: int = logging.INFO,
    log_format: Optional[str] = None
) -> Path:
    """
    Initialize the application-wide logging configuration.

    - Root Logger: Set to DEBUG to capture all events.
    - File Handler: Persists detailed DEBUG logs to 'logs/offerdesk.log'.
    - Console Handler: Displays INFO logs on stdout.

    Args:
        log_level: Granularity for the persistent log file.
        console_level: Granularity for the terminal output.
        log_format: Optional custom formatting string.

    Returns:
        Path: The absolute path to the log file.
    """
    LOG_DIR.mkdir(parents=True, exist_ok=True)

    # Single log file that is overwritten on each run
    log_file = LOG_DIR / LOG_FILE_NAME

    if log_format is None:
        log_format = (
            '%(asctime)s - %(name)s - %(levelname)s - '
            '[%(filename)s:%(lineno)d] - %(message)s'
        )

    formatter = logging.Formatter(log_format, datefmt='%Y-%m-%d %H:%M:%S')

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)  # Capture everything, handlers will filter

    # Remove existing handlers to avoid duplicates
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    file_handler = logging.FileHandler(log_file, mode='w', encoding='utf-8')
    file_handler.setLevel(log_level)
    file_handler.setFormatter(formatter)
    file_handler.addFilter(SensitiveDataFilter())
    root_logger.addHandler(file_handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(formatter)
    console_handler.addFilter(SensitiveDataFilter())
    root_logger.addHandler(console_handler)

    # aiohttp is chatty at DEBUG
    logging.getLogger("aiohttp").setLevel(logging.WARNING)

    logging.info("=" * 80)
    logging.info(f"Offer dashboard started - Log file: {log_file}")
    logging.info("=" * 80)

    return log_file


def shutdown_logging():
    """
    Flush and close all root handlers. Should be called before application exit.
    """
    logging.info("Shutting down logging system...")

    for handler in list(logging.root.handlers):
        handler.flush()
        logging.root.removeHandler(handler)
        handler.close()


def log_config(config_name: str, config_data: Dict[str, Any], logger: Optional[logging.Logger] = None):
    """
    Log configuration settings with automatic sensitive data masking.

    Args:
        config_name: Name of the configuration being logged
        config_data: Dictionary of configuration settings
        logger: Optional logger instance (uses this module's logger if not provided)
    """
    if logger is None:
        logger = logging.getLogger(__name__)

    masked_config = mask_sensitive_data(config_data)

    logger.info(f"Configuration: {config_name}")
    logger.debug(f"{config_name} details: {json.dumps(masked_config, indent=2, default=str)}")


def log_api_call(func: Optional[Callable] = None, *, api_name: str = "API"):
    """
    Decorator for automated instrumentation of API coroutines.

    Wraps an ``async def`` to log:
    1. The entry point and sanitized keyword arguments.
    2. The execution status (Success/Failure) upon completion.
    3. Total turnaround time in seconds.

    Exceptions are logged and re-raised unchanged.

    Args:
        func: The coroutine function to be instrumented.
        api_name: Context label for the log entry (e.g., 'LivingApps').
    """
    def decorator(f: Callable) -> Callable:
        if not inspect.iscoroutinefunction(f):
            raise TypeError(f"log_api_call expects a coroutine function, got {f!r}")

        @wraps(f)
        async def wrapper(*args, **kwargs):
            logger = logging.getLogger(f.__module__)
            func_name = f.__name__

            logger.info(f"{api_name} call: {func_name}")
            logger.debug(f"{api_name} {func_name} - kwargs: {mask_sensitive_data(kwargs)}")

            start_time = time.time()
            error_occurred = False

            try:
                return await f(*args, **kwargs)

            except Exception as e:
                error_occurred = True
                logger.error(f"{api_name} {func_name} failed: {type(e).__name__}: {str(e)}")
                raise

            finally:
                elapsed = time.time() - start_time
                status = "FAILED" if error_occurred else "SUCCESS"
                logger.info(
                    f"{api_name} {func_name} completed - Status: {status}, "
                    f"Duration: {elapsed:.3f}s"
                )

        return wrapper

    # Handle both @log_api_call and @log_api_call(api_name="...")
    if func is None:
        return decorator
    else:
        return decorator(func)


def log_api_request(
    logger: logging.Logger,
    method: str,
    endpoint: str,
    headers: Optional[Dict] = None,
    data: Optional[Any] = None,
    params: Optional[Dict] = None
):
    """
    Log an outgoing API request with masked sensitive data.

    Args:
        logger: Logger instance to use
        method: HTTP method (GET, POST, etc.)
        endpoint: API endpoint URL
        headers: Request headers
        data: Request body data
        params: Query parameters
    """
    logger.info(f"API Request: {method} {endpoint}")

    if headers:
        logger.debug(f"Request headers: {mask_sensitive_data(headers)}")

    if params:
        logger.debug(f"Request params: {mask_sensitive_data(params)}")

    if data:
        masked_data = mask_sensitive_data(data)
        logger.debug(f"Request body: {json.dumps(masked_data, indent=2, default=str)}")


def log_api_response(
    logger: logging.Logger,
    status_code: int,
    response_data: Optional[Any] = None,
    elapsed_time: Optional[float] = None
):
    """
    Log an API response with timing information.

    Args:
        logger: Logger instance to use
        status_code: HTTP status code
        response_data: Response body data
        elapsed_time: Request duration in seconds
    """
    timing_info = f" ({elapsed_time:.3f}s)" if elapsed_time else ""
    logger.info(f"API Response: {status_code}{timing_info}")

    if response_data:
        masked_response = mask_sensitive_data(response_data)

        # Truncate large responses for readability
        response_str = json.dumps(masked_response, indent=2, default=str)
        if len(response_str) > 1000:
            response_str = response_str[:1000] + "\n... (truncated)"

        logger.debug(f"Response body: {response_str}")
