import logging
import time
from functools import wraps

logger = logging.getLogger(__name__)


def _format_execution_time(label, execution_time, is_error=False, error=None):
    """Format execution time with appropriate units and precision."""
    if execution_time < 1.0:
        time_str = f"{execution_time * 1000:.2f}ms"
    else:
        time_str = f"{execution_time:.2f} seconds"

    if is_error:
        return f"{label} failed after {time_str} with error: {str(error)}"
    return f"{label} completed in {time_str}"


def perf_time(func=None, *, label=None, log_function=None):
    """Log how long a (synchronous) compilation step takes.

    Args:
        label: Name used in the log line, defaults to the function name.
        log_function: Callable receiving the message, defaults to a debug log.
    """

    def decorator(func):
        name = label or func.__qualname__

        @wraps(func)
        def wrapper(*args, **kwargs):
            log = log_function or logger.debug
            start_time = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                log(_format_execution_time(name, time.perf_counter() - start_time, True, e))
                raise
            log(_format_execution_time(name, time.perf_counter() - start_time))
            return result

        return wrapper

    # If used without parentheses
    if func is not None:
        return decorator(func)

    return decorator
