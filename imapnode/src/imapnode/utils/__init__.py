"""Expose the public utility surface for imapnode.

What:
  Re-export the structured logging helpers so callers can use
  ``from imapnode.utils import get_logger`` without knowing the module layout.
"""

from .logging import JsonLogger, get_logger

__all__ = [
    "JsonLogger",
    "get_logger",
]
