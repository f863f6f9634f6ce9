from .logger import setup_logging, get_logger, ContextLogger
from .ranked_insert import binary_search, search_insert, insert_bounded_descending, sort_descending
from .utcnow import utcnow, now_ms

__all__ = [
    # Logger
    "setup_logging",
    "get_logger",
    "ContextLogger",

    # Ranked insert
    "binary_search",
    "search_insert",
    "insert_bounded_descending",
    "sort_descending",

    # Clock
    "utcnow",
    "now_ms",
]
