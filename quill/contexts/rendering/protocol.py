"""
Render Protocol Codec

Byte-level contract between the orchestrator and the renderer subprocess.

Input (orchestrator -> renderer):
    <mode token>\\n<raw UTF-8 source>
    The renderer reads the mode line, then treats everything else as source.

Output (renderer -> orchestrator), first byte is the status:
    0x00 <overflow 0x00|0x01> <image bytes...>   success
    0x01 <UTF-8 message...>                       engine error

The status byte is resolved before any payload byte is looked at, and neither
the mode nor the overflow flag depends on parsing the payload.
"""

from typing import Tuple, Union

from quill.contexts.rendering.exceptions import ProtocolFramingError
from quill.contexts.rendering.outcomes import EngineError, RenderMode, RenderSuccess

STATUS_SUCCESS = 0x00
STATUS_ENGINE_ERROR = 0x01

FLAG_FALSE = 0x00
FLAG_TRUE = 0x01

MIN_OUTPUT_LENGTH = 2
MODE_DELIMITER = b"\n"


# =============================================================================
# Input framing
# =============================================================================


def encode_request(mode: RenderMode, source: str) -> bytes:
    """Frame a render request for the renderer's stdin."""
    return RenderMode(mode).value.encode("ascii") + MODE_DELIMITER + source.encode("utf-8")


def decode_request(data: bytes) -> Tuple[RenderMode, str]:
    """
    Split a framed request into mode and source.

    Raises:
        ProtocolFramingError: If the mode line is missing or names an unknown mode
    """
    mode_line, delimiter, source = data.partition(MODE_DELIMITER)
    if not delimiter:
        raise ProtocolFramingError("Request has no mode line", data)

    token = mode_line.decode("ascii", errors="replace").strip()
    try:
        mode = RenderMode(token)
    except ValueError:
        raise ProtocolFramingError(f"Unknown render mode: {token!r}", data) from None

    return mode, source.decode("utf-8", errors="replace")


# =============================================================================
# Output framing
# =============================================================================


def encode_success(image: bytes, overflow: bool) -> bytes:
    """Frame a rendered image and its overflow flag."""
    return bytes([STATUS_SUCCESS, FLAG_TRUE if overflow else FLAG_FALSE]) + image


def encode_engine_error(message: str) -> bytes:
    """Frame an engine error description."""
    return bytes([STATUS_ENGINE_ERROR]) + message.encode("utf-8")


def decode_output(data: bytes) -> Union[RenderSuccess, EngineError]:
    """
    Decode the renderer's stdout.

    Returns:
        RenderSuccess or EngineError

    Raises:
        ProtocolFramingError: If the output is too short, has an unknown status
            byte, or an overflow flag other than 0x00/0x01
    """
    if len(data) < MIN_OUTPUT_LENGTH:
        raise ProtocolFramingError(
            f"Renderer output too short ({len(data)} < {MIN_OUTPUT_LENGTH} bytes)", data
        )

    status = data[0]

    if status == STATUS_SUCCESS:
        flag = data[1]
        if flag not in (FLAG_FALSE, FLAG_TRUE):
            raise ProtocolFramingError(f"Invalid overflow flag: {flag:#04x}", data)
        return RenderSuccess(image=bytes(data[2:]), overflow=flag == FLAG_TRUE)

    if status == STATUS_ENGINE_ERROR:
        return EngineError(message=bytes(data[1:]).decode("utf-8", errors="replace"))

    raise ProtocolFramingError(f"Unknown status byte: {status:#04x}", data)
