"""
Rendering context logger.

Provides logging interface for rendering context with automatic [render] prefix.
All rendering modules should import from this module, not from utils.logger directly.
"""

import os
import sys
from pathlib import Path

from dotenv import load_dotenv
from loguru import logger

from quill.utils.logger import setup_logger as _setup_logger

load_dotenv()

CONTEXT_PREFIX = "[render]"


def setup_rendering_logger(log_dir: Path) -> Path:
    """
    Setup logger for rendering context.

    Configures loguru with provenance tracking and rendering-specific context.

    Args:
        log_dir: Directory for this rendering session

    Returns:
        Path to log file
    """
    return _setup_logger(
        context_name="render",
        log_dir=log_dir,
        extra_provenance={
            "LaTeX compiler": os.getenv("LATEX_COMPILER", "pdflatex"),
            "Renderer image": os.getenv("QUILL_RENDERER_IMAGE"),
        },
    )


def setup_worker_logger() -> None:
    """
    Setup logger for the in-container renderer worker.

    The worker's stdout carries protocol bytes, so everything goes to stderr and
    no log file is written (the container root filesystem is read-only).
    """
    _setup_logger(
        context_name="worker",
        log_dir=None,
        extra_provenance={"LaTeX compiler": os.getenv("LATEX_COMPILER", "pdflatex")},
        console_sink=sys.stderr,
    )


# Wrapper functions with automatic [render] prefix


def _log_info(message: str) -> None:
    """Log info message with [render] prefix."""
    logger.info(f"{CONTEXT_PREFIX} {message}")


def _log_success(message: str) -> None:
    """Log success message with [render] prefix."""
    logger.success(f"{CONTEXT_PREFIX} {message}")


def _log_error(message: str) -> None:
    """Log error message with [render] prefix."""
    logger.error(f"{CONTEXT_PREFIX} {message}")


def _log_warning(message: str) -> None:
    """Log warning message with [render] prefix."""
    logger.warning(f"{CONTEXT_PREFIX} {message}")


def _log_debug(message: str) -> None:
    """Log debug message with [render] prefix."""
    logger.debug(f"{CONTEXT_PREFIX} {message}")


# High-level rendering-specific logging helpers


def log_render_start(correlation_id: int, mode: str, source_length: int) -> None:
    """Log start of a render job with context."""
    _log_info(f"Starting render: {correlation_id} ({mode})")
    _log_debug(f"  Source length: {source_length} chars")


def log_render_outcome(correlation_id: int, outcome, elapsed_time: float) -> None:
    """
    Log how a render job ended.

    Infrastructure failures are logged with their full diagnostics here, since
    that detail never reaches the user.

    Args:
        correlation_id: Correlation id of the job
        outcome: RenderOutcome from the renderer
        elapsed_time: Time taken to render
    """
    if outcome.kind == "success":
        _log_success(
            f"{correlation_id}: rendered {len(outcome.image)} bytes "
            f"(overflow={outcome.overflow}, {elapsed_time:.2f}s)"
        )
    elif outcome.kind == "engine_error":
        _log_warning(f"{correlation_id}: engine rejected source ({elapsed_time:.2f}s)")
        _log_debug(f"  Engine message: {outcome.message}")
    else:
        _log_error(f"{correlation_id}: render failed: {outcome.reason.value} ({elapsed_time:.2f}s)")
        if outcome.detail:
            _log_error(f"  Detail:\n{outcome.detail}")


def log_compilation_result(errors, warnings, overflow: bool, elapsed_time: float) -> None:
    """Log a LaTeX compilation with its diagnostics (first few warnings at debug level)."""
    if errors:
        _log_warning(f"Compilation failed: {len(errors)} errors ({elapsed_time:.2f}s)")
        for i, err in enumerate(errors[:5], 1):
            _log_debug(f"  Error {i}: {err}")
    else:
        _log_info(f"Compilation succeeded: {len(warnings)} warnings ({elapsed_time:.2f}s)")

    if overflow:
        _log_info("Content overflowed the page width")

    for i, warn in enumerate(warnings[:3], 1):
        _log_debug(f"  Warning {i}: {warn}")
