"""Unit tests for the render protocol codec."""

import pytest

from quill.contexts.rendering.exceptions import ProtocolFramingError
from quill.contexts.rendering.outcomes import EngineError, RenderMode, RenderSuccess
from quill.contexts.rendering.protocol import (
    decode_output,
    decode_request,
    encode_engine_error,
    encode_request,
    encode_success,
)


@pytest.mark.unit
@pytest.mark.parametrize("overflow", [False, True])
def test_success_round_trip(overflow):
    """Image bytes and overflow flag survive encode/decode unchanged."""
    image = bytes(range(256)) * 4

    outcome = decode_output(encode_success(image, overflow))

    assert outcome == RenderSuccess(image=image, overflow=overflow)


@pytest.mark.unit
def test_success_with_empty_image():
    """Two bytes are enough for a success frame."""
    assert decode_output(b"\x00\x00") == RenderSuccess(image=b"", overflow=False)


@pytest.mark.unit
def test_engine_error_round_trip():
    """Engine error messages are decoded as UTF-8 text."""
    message = "Undefined control sequence \\foo – λ"

    outcome = decode_output(encode_engine_error(message))

    assert isinstance(outcome, EngineError)
    assert outcome.message == message


@pytest.mark.unit
def test_engine_error_payload_not_treated_as_flag():
    """The second byte of an engine error is message text, not an overflow flag."""
    assert decode_output(b"\x01\x07\x09") == EngineError(message="\x07\x09")


@pytest.mark.unit
@pytest.mark.parametrize("data", [b"", b"\x00", b"\x01"])
def test_short_output_is_framing_error(data):
    """Anything under two bytes is rejected before the status is interpreted."""
    with pytest.raises(ProtocolFramingError, match="too short"):
        decode_output(data)


@pytest.mark.unit
def test_unknown_status_byte():
    """Status bytes other than 0x00/0x01 are rejected."""
    with pytest.raises(ProtocolFramingError, match="Unknown status byte: 0x02"):
        decode_output(b"\x02\x00png")


@pytest.mark.unit
def test_invalid_overflow_flag():
    """A success frame must carry 0x00 or 0x01 as its overflow flag."""
    with pytest.raises(ProtocolFramingError, match="Invalid overflow flag"):
        decode_output(b"\x00\x05png")


@pytest.mark.unit
def test_framing_error_keeps_data():
    """The offending bytes are attached to the exception for diagnostics."""
    with pytest.raises(ProtocolFramingError) as exc_info:
        decode_output(b"\x09")
    assert exc_info.value.data == b"\x09"


@pytest.mark.unit
@pytest.mark.parametrize("mode", list(RenderMode))
def test_request_round_trip(mode):
    """Mode line and source are recovered, including newlines in the source."""
    source = "\\begin{align}\n  x &= 1 \\\\\n  y &= 2\n\\end{align}"

    assert decode_request(encode_request(mode, source)) == (mode, source)


@pytest.mark.unit
def test_request_mode_line_format():
    """The mode token comes first, terminated by a newline."""
    assert encode_request(RenderMode.WIDE, "$x$") == b"wide\n$x$"


@pytest.mark.unit
def test_request_without_mode_line():
    with pytest.raises(ProtocolFramingError, match="no mode line"):
        decode_request(b"$x^2$")


@pytest.mark.unit
def test_request_with_unknown_mode():
    with pytest.raises(ProtocolFramingError, match="Unknown render mode"):
        decode_request(b"huge\n$x^2$")
