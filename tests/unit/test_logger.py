"""Unit tests for Tier 1 logger setup."""

import io

import pytest
from loguru import logger

from quill.contexts.rendering.logger import _log_info
from quill.utils.logger import setup_logger


@pytest.fixture(autouse=True)
def restore_loguru():
    yield
    logger.remove()
    logger.add(io.StringIO())


@pytest.mark.unit
def test_setup_logger_writes_file_with_provenance(tmp_path):
    console = io.StringIO()

    log_file = setup_logger(
        "render",
        log_dir=tmp_path / "session",
        extra_provenance={"Renderer": "x"},
        console_sink=console,
    )
    _log_info("compiled snippet")
    logger.debug("detail only in file")

    content = log_file.read_text()
    assert log_file.name == "render.log"
    assert "Renderer: x" in content
    assert "[render] compiled snippet" in content
    assert "detail only in file" in content
    assert "detail only in file" not in console.getvalue()
    assert "[render] compiled snippet" in console.getvalue()


@pytest.mark.unit
def test_setup_logger_console_only():
    console = io.StringIO()

    assert setup_logger("worker", console_sink=console) is None

    _log_info("hello")
    assert "[render] hello" in console.getvalue()
