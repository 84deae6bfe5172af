"""
Thread-safe rate-limited logging utilities.

Peers that keep sending requests the solver does not handle would otherwise
produce one warning per message. Identical messages are logged at most once
per TTL window.
"""
import logging
import threading
from typing import Optional

from cachetools import TTLCache

# Configure logger
logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 60

# Keys seen within the TTL window
_log_cache = TTLCache(maxsize=1024, ttl=DEFAULT_TTL_SECONDS)
_log_cache_lock = threading.RLock()


def rate_limited_log(
    message: str,
    level: str = "warning",
    logger_instance: Optional[logging.Logger] = None,
    key: Optional[str] = None
) -> bool:
    """
    Log a message unless the same key was logged within the TTL window.

    Args:
        message: Message to log
        level: Log level (debug, info, warning, error, critical)
        logger_instance: Logger to use (defaults to module logger)
        key: Deduplication key (defaults to level and message)

    Returns:
        True if the message was logged, False if it was suppressed
    """
    log_instance = logger_instance or logger
    log_method = getattr(log_instance, level.lower(), log_instance.warning)
    cache_key = key or f"{level}:{message}"

    with _log_cache_lock:
        if cache_key in _log_cache:
            return False
        log_method(message)
        _log_cache[cache_key] = True
    return True


def reset_rate_limits() -> None:
    """Forget every logged key."""
    with _log_cache_lock:
        _log_cache.clear()
