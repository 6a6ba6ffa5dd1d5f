"""
Utility helpers shared across touchorm packages.
"""

from .logging import configure_logging, get_logger, redact_params, time_call
from .naming import camel_to_snake

__all__ = ["camel_to_snake", "configure_logging", "get_logger", "redact_params", "time_call"]
