"""rulekit utility modules."""

from rulekit.utils.logger import get_logger, JsonFormatter, resolution_context

__all__ = [
    "get_logger",
    "JsonFormatter",
    "resolution_context",
]
