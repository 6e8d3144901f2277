"""Unit tests for the in-container renderer worker."""

import io

import pytest

from quill.contexts.rendering.compiler import PngResult
from quill.contexts.rendering.exceptions import LatexCompilationError
from quill.contexts.rendering.outcomes import EngineError, RenderMode, RenderSuccess
from quill.contexts.rendering.protocol import decode_output, encode_request
from quill.contexts.rendering.worker import EXIT_BAD_REQUEST, EXIT_OK, run_worker


@pytest.mark.unit
def test_worker_success():
    calls = []

    def render(source, mode):
        calls.append((source, mode))
        return PngResult(png=b"\x89PNG", overflow=True)

    stdout = io.BytesIO()
    code = run_worker(io.BytesIO(encode_request(RenderMode.WIDE, "$x$")), stdout, render)

    assert code == EXIT_OK
    assert calls == [("$x$", RenderMode.WIDE)]
    assert decode_output(stdout.getvalue()) == RenderSuccess(image=b"\x89PNG", overflow=True)


@pytest.mark.unit
def test_worker_engine_error_exits_cleanly():
    def render(source, mode):
        raise LatexCompilationError(["Missing $ inserted."])

    stdout = io.BytesIO()
    code = run_worker(io.BytesIO(encode_request(RenderMode.NORMAL, "$x")), stdout, render)

    assert code == EXIT_OK
    outcome = decode_output(stdout.getvalue())
    assert isinstance(outcome, EngineError)
    assert "Missing $ inserted." in outcome.message


@pytest.mark.unit
def test_worker_rejects_unframed_request():
    def render(source, mode):
        raise AssertionError("must not render")

    stdout = io.BytesIO()
    code = run_worker(io.BytesIO(b"$x$"), stdout, render)

    assert code == EXIT_BAD_REQUEST
    assert stdout.getvalue() == b""
