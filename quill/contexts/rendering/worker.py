"""
Renderer worker: the in-container side of the render protocol.

Reads a framed request from stdin, compiles it, writes a framed outcome to
stdout. Nothing but protocol bytes ever goes to stdout.
"""

from typing import BinaryIO, Callable, Optional

from quill.contexts.rendering.compiler import PngResult, render_to_png
from quill.contexts.rendering.exceptions import LatexCompilationError, ProtocolFramingError
from quill.contexts.rendering.logger import _log_error, _log_info
from quill.contexts.rendering.outcomes import RenderMode
from quill.contexts.rendering.protocol import decode_request, encode_engine_error, encode_success

# Exit codes
EXIT_OK = 0
EXIT_BAD_REQUEST = 2


def run_worker(
    stdin: BinaryIO,
    stdout: BinaryIO,
    render: Optional[Callable[[str, RenderMode], PngResult]] = None,
) -> int:
    """
    Serve exactly one render request.

    Engine errors are reported in-protocol with a clean exit; only a request
    that cannot be understood exits non-zero.

    Args:
        stdin: Binary stream carrying the framed request
        stdout: Binary stream for the framed outcome
        render: Render function (default: compiler.render_to_png)

    Returns:
        Process exit code
    """
    render = render or render_to_png

    try:
        mode, source = decode_request(stdin.read())
    except ProtocolFramingError as e:
        _log_error(f"Rejected request: {e}")
        return EXIT_BAD_REQUEST

    _log_info(f"Rendering {len(source)} chars ({mode.value})")

    try:
        result = render(source, mode)
    except LatexCompilationError as e:
        stdout.write(encode_engine_error(str(e)))
    else:
        stdout.write(encode_success(result.png, result.overflow))

    stdout.flush()
    return EXIT_OK
