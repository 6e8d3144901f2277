"""Custom exceptions for rendering context."""

from typing import List, Optional


class ProtocolFramingError(ValueError):
    """
    Exception raised when bytes exchanged with the renderer violate the framing.

    Attributes:
        message: Error description
        data_length: Length of the offending payload
        preview: First bytes of the payload, for logs
    """

    def __init__(self, message: str, data: Optional[bytes] = None):
        self.message = message
        self.data_length = len(data) if data is not None else None
        self.preview = data[:32] if data is not None else None

        parts = [message]

        if data is not None:
            parts.append(f"Payload length: {self.data_length}")
            parts.append(f"Payload start: {self.preview!r}")

        super().__init__("\n".join(parts))


class LatexCompilationError(Exception):
    """
    Exception raised when the LaTeX engine rejects the user's source.

    The string form is what the user sees, so it only contains the compiler's
    description of their input.

    Attributes:
        errors: Parsed LaTeX error lines
    """

    HEADER = "Failed to compile LaTeX:"

    def __init__(self, errors: List[str]):
        self.errors = errors or ["PDF file was not generated"]
        body = "\n".join(self.errors)
        super().__init__(f"{self.HEADER}\n```\n{body}\n```")
