import time
import logging
from functools import wraps
from typing import Callable, Any, Optional
import os

# Performance thresholds configuration
PERFORMANCE_CONFIG = {
    'SLOW_QUERY_THRESHOLD_MS': float(os.getenv('SLOW_QUERY_THRESHOLD_MS', '100')),
    'PERMISSION_QUERY_THRESHOLD_MS': float(os.getenv('PERMISSION_QUERY_THRESHOLD_MS', '50')),
    'BULK_OPERATION_THRESHOLD_MS': float(os.getenv('BULK_OPERATION_THRESHOLD_MS', '500')),
    'ENABLE_DEBUG_LOGGING': os.getenv('ENABLE_PERFORMANCE_DEBUG', 'false').lower() == 'true'
}

performance_logger = logging.getLogger('performance')
permission_logger = logging.getLogger('performance.permissions')


def _threshold_for(operation_type: str, log_threshold_ms: Optional[float]) -> float:
    if log_threshold_ms is not None:
        return log_threshold_ms
    if operation_type == "permission":
        return PERFORMANCE_CONFIG['PERMISSION_QUERY_THRESHOLD_MS']
    if operation_type == "bulk":
        return PERFORMANCE_CONFIG['BULK_OPERATION_THRESHOLD_MS']
    return PERFORMANCE_CONFIG['SLOW_QUERY_THRESHOLD_MS']


def performance_monitor(operation_name: str = None,
                        log_threshold_ms: Optional[float] = None,
                        operation_type: str = "general"):
    """
    Decorator logging slow or failing calls on the 'performance' logger.

    Args:
        operation_name: Name reported in the log line (defaults to module.function)
        log_threshold_ms: Duration above which a warning is emitted
        operation_type: 'permission', 'query', 'bulk' or 'general'; picks the default threshold
    """
    def decorator(func: Callable) -> Callable:
        op_name = operation_name or f"{func.__module__}.{func.__name__}"
        logger = permission_logger if operation_type == "permission" else performance_logger

        @wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            threshold = _threshold_for(operation_type, log_threshold_ms)
            start_time = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                duration_ms = (time.perf_counter() - start_time) * 1000
                logger.error(f"ERROR - {op_name} failed after {duration_ms:.2f}ms - {str(e)}")
                raise

            duration_ms = (time.perf_counter() - start_time) * 1000
            if duration_ms >= threshold:
                logger.warning(
                    f"SLOW_{operation_type.upper()} - {op_name} took {duration_ms:.2f}ms "
                    f"(threshold: {threshold}ms)"
                )
            elif PERFORMANCE_CONFIG['ENABLE_DEBUG_LOGGING']:
                logger.debug(f"{op_name} took {duration_ms:.2f}ms (threshold: {threshold}ms)")
            return result

        return wrapper
    return decorator


class PerformanceTracker:
    """Context manager for tracking performance of code blocks."""

    def __init__(self, operation_name: str, log_threshold_ms: float = 50.0):
        self.operation_name = operation_name
        self.log_threshold_ms = log_threshold_ms
        self.start_time = None
        self.end_time = None

    def __enter__(self):
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.end_time = time.perf_counter()
        duration_ms = (self.end_time - self.start_time) * 1000

        if exc_type is not None:
            performance_logger.error(
                f"ERROR - {self.operation_name} failed after {duration_ms:.2f}ms - {str(exc_val)}"
            )
        elif duration_ms >= self.log_threshold_ms:
            performance_logger.info(
                f"SLOW_OPERATION - {self.operation_name} took {duration_ms:.2f}ms "
                f"(threshold: {self.log_threshold_ms}ms)"
            )
        else:
            performance_logger.debug(f"{self.operation_name} took {duration_ms:.2f}ms")
