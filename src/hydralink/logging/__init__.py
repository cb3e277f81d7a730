"""
Logging module - structured logging with structlog.

HUMAN level (25) carries the readable progress lines; everything else is
technical logging routed by verbosity.
"""

from .human import HumanFormatter, HumanLog, HumanLogHandler
from .levels import HUMAN
from .setup import configure_logging

__all__ = [
    "configure_logging",
    "HUMAN",
    "HumanFormatter",
    "HumanLog",
    "HumanLogHandler",
]
