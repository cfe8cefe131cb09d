"""
Error handling for the DXF nesting quote service.

Provides the exception taxonomy used across the pipeline, error counting with
alert thresholds, and decorators for logging failures and timings.

Geometry problems (open contours, unknown entities, degenerate bounds) are not
errors: they are skipped and counted during extraction. Exceptions are kept for
unreadable input, invalid configuration and service-level failures.
"""

import logging
import time
import traceback
from collections import Counter
from datetime import datetime
from functools import wraps
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


class QuoteError(Exception):
    """Base class for all quote pipeline errors"""
    error_type = 'processing_error'
    status_code = 500


class DxfReadError(QuoteError):
    """The DXF source could not be read or parsed"""
    error_type = 'dxf_error'
    status_code = 400


class UnsupportedDrawingError(DxfReadError):
    """The drawing contains 3D geometry; only flat 2D drawings can be nested"""


class NestingInputError(QuoteError):
    """The nesting engine was called with an impossible input (e.g. no part list)"""
    error_type = 'validation_error'
    status_code = 400


class NestingConfigError(NestingInputError, ValueError):
    """A nesting configuration value is out of range"""


class NestingTimeoutError(QuoteError):
    """A nesting run did not finish within the allowed time"""
    error_type = 'timeout_error'
    status_code = 504


class PricingNotFoundError(QuoteError):
    """No price row exists for a material/thickness combination"""
    error_type = 'pricing_error'
    status_code = 400


class ErrorHandler:
    """
    Counts pipeline failures per kind and raises an alert when a kind keeps
    failing.

    Counts are keyed "<error_type>_<ExceptionClass>"; the threshold is looked
    up by error_type. Expected pipeline errors (QuoteError) are logged as
    warnings, anything else as an error with its traceback.
    """

    DEFAULT_THRESHOLD = 10

    def __init__(self, thresholds: Optional[Dict[str, int]] = None):
        self.error_counts: Counter = Counter()
        self.last_errors: Dict[str, Dict[str, Any]] = {}
        self.error_thresholds = {
            'dxf_error': 25,
            'validation_error': 50,
            'timeout_error': 5,
            'pricing_error': 25,
            'processing_error': 10,
        }
        self.error_thresholds.update(thresholds or {})
        self.alert_callbacks: List[Callable[[str, Dict[str, Any]], None]] = []

    def log_error(self, error_type: str, error: Exception, context: Dict[str, Any] = None):
        key = f"{error_type}_{type(error).__name__}"
        self.error_counts[key] += 1
        count = self.error_counts[key]

        record = {
            'timestamp': datetime.now().isoformat(),
            'error_type': error_type,
            'exception': type(error).__name__,
            'message': str(error),
            'context': context or {},
            'count': count,
        }
        self.last_errors[error_type] = record

        if isinstance(error, QuoteError):
            logger.warning(f"{key} #{count}: {error} {record['context']}")
        else:
            logger.error(f"{key} #{count}: {error} {record['context']}\n{traceback.format_exc()}")

        if count >= self.error_thresholds.get(error_type, self.DEFAULT_THRESHOLD):
            self._alert(key, record)

    def _alert(self, key: str, record: Dict[str, Any]):
        logger.critical(f"{key} reached {record['count']} occurrences")
        for callback in self.alert_callbacks:
            try:
                callback(key, record)
            except Exception as e:
                logger.error(f"Alert callback {callback!r} failed: {e}")

    def register_alert_callback(self, callback: Callable[[str, Dict[str, Any]], None]):
        self.alert_callbacks.append(callback)

    def get_error_stats(self) -> Dict[str, Any]:
        return {
            'error_counts': dict(self.error_counts),
            'total_errors': sum(self.error_counts.values()),
            'last_errors': dict(self.last_errors),
            'error_thresholds': dict(self.error_thresholds),
        }

    def reset_error_counts(self):
        self.error_counts.clear()
        self.last_errors.clear()


error_handler = ErrorHandler()


def handle_errors(error_type: str, fallback_response: Any = None):
    """
    Decorator that records failures of the wrapped function.

    QuoteError subclasses are counted under their own error_type. The error is
    re-raised unless a fallback response is given.
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except Exception as e:
                kind = e.error_type if isinstance(e, QuoteError) else error_type
                error_handler.log_error(kind, e, {'function': func.__qualname__})

                if fallback_response is not None:
                    return fallback_response
                raise
        return wrapper
    return decorator


def create_error_response(error_message: str, error_code: int = 500,
                          details: Optional[Dict[str, Any]] = None) -> tuple:
    """Standard error payload and status code"""
    response = {
        'success': False,
        'error': error_message,
        'timestamp': datetime.now().isoformat(),
        'details': details or {}
    }
    return response, error_code


def error_response_for(error: Exception) -> tuple:
    """Error payload for an exception raised by the pipeline"""
    if isinstance(error, QuoteError):
        response, code = create_error_response(str(error), error.status_code)
    else:
        response, code = create_error_response(f'Nesting failed: {error}', 500)
    response['error_type'] = type(error).__name__
    return response, code


def log_performance(func):
    """Log how long the wrapped call took, and whether it failed"""
    @wraps(func)
    def wrapper(*args, **kwargs):
        started = time.perf_counter()
        try:
            return func(*args, **kwargs)
        except Exception as e:
            logger.error(f"{func.__qualname__} failed after {time.perf_counter() - started:.2f}s: {e}")
            raise
        finally:
            logger.debug(f"{func.__qualname__} took {time.perf_counter() - started:.3f}s")
    return wrapper
