"""
Interactions context logger.

Provides logging interface for interactions context with automatic [interact] prefix.
All interactions modules should import from this module, not from utils.logger directly.
"""

from loguru import logger

CONTEXT_PREFIX = "[interact]"


def _log_info(message: str) -> None:
    """Log info message with [interact] prefix."""
    logger.info(f"{CONTEXT_PREFIX} {message}")


def _log_error(message: str) -> None:
    """Log error message with [interact] prefix."""
    logger.error(f"{CONTEXT_PREFIX} {message}")


def _log_warning(message: str) -> None:
    """Log warning message with [interact] prefix."""
    logger.warning(f"{CONTEXT_PREFIX} {message}")


def _log_debug(message: str) -> None:
    """Log debug message with [interact] prefix."""
    logger.debug(f"{CONTEXT_PREFIX} {message}")
