"""
Sandbox context logger.

Provides logging interface for sandbox context with automatic [sandbox] prefix.
All sandbox modules should import from this module, not from utils.logger directly.
"""

from loguru import logger

CONTEXT_PREFIX = "[sandbox]"


# Wrapper functions with automatic [sandbox] prefix


def _log_info(message: str) -> None:
    """Log info message with [sandbox] prefix."""
    logger.info(f"{CONTEXT_PREFIX} {message}")


def _log_error(message: str) -> None:
    """Log error message with [sandbox] prefix."""
    logger.error(f"{CONTEXT_PREFIX} {message}")


def _log_warning(message: str) -> None:
    """Log warning message with [sandbox] prefix."""
    logger.warning(f"{CONTEXT_PREFIX} {message}")


def _log_debug(message: str) -> None:
    """Log debug message with [sandbox] prefix."""
    logger.debug(f"{CONTEXT_PREFIX} {message}")


# High-level sandbox-specific logging helpers


def log_container_start(container_name: str, image: str, args, deadline_s: float) -> None:
    """Log start of a container run with context."""
    _log_info(f"Starting runner {container_name}")
    _log_debug(f"  Image: {image}")
    _log_debug(f"  Args: {' '.join(args)}")
    _log_debug(f"  Deadline: {deadline_s:g}s")


def log_container_exit(container_name: str, returncode: int, elapsed_time: float) -> None:
    """Log how a container run ended."""
    if returncode == 0:
        _log_info(f"Runner {container_name} exited cleanly ({elapsed_time:.2f}s)")
    else:
        _log_warning(
            f"Runner {container_name} died with exit code {returncode} ({elapsed_time:.2f}s)"
        )


def log_command_failure(description: str, stdout: bytes, stderr: bytes) -> None:
    """Log a failed docker command with its full captured output."""
    _log_error(description)
    _log_error(f"  Stdout:\n{stdout.decode('utf-8', errors='replace')}")
    _log_error(f"  Stderr:\n{stderr.decode('utf-8', errors='replace')}")
