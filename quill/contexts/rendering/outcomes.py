"""
Render request and outcome data structures.

A RenderRequest goes in, exactly one of RenderSuccess, EngineError or
InfrastructureError comes out.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Union


class RenderMode(str, Enum):
    """Rendering width variant. The value is the token sent to the renderer."""

    NORMAL = "normal"
    WIDE = "wide"


class InfrastructureReason(str, Enum):
    """Why a render failed for reasons unrelated to the user's source."""

    PULL_FAILURE = "pull_failure"
    SPAWN_FAILURE = "spawn_failure"
    TIMEOUT = "timeout"
    NON_ZERO_EXIT = "non_zero_exit"
    PROTOCOL_FRAMING = "protocol_framing"
    UNEXPECTED = "unexpected"


@dataclass(frozen=True)
class RenderRequest:
    """
    One logical render.

    Attributes:
        source: Untrusted LaTeX body supplied by the user
        mode: Width variant to render with
        correlation_id: Id tying the request to its container name and cache keys
    """

    source: str
    mode: RenderMode
    correlation_id: int


@dataclass(frozen=True)
class RenderSuccess:
    """Rendered image plus whether the content overflowed the normal width."""

    image: bytes
    overflow: bool

    kind = "success"


@dataclass(frozen=True)
class EngineError:
    """Well-formed failure reported by the engine. Describes the user's own input."""

    message: str

    kind = "engine_error"


@dataclass(frozen=True)
class InfrastructureError:
    """
    Failure of the machinery around the engine.

    Attributes:
        reason: Failure category
        detail: Internal diagnostics for logs; never shown to the user
    """

    reason: InfrastructureReason
    detail: str = ""

    kind = "infrastructure_error"


RenderOutcome = Union[RenderSuccess, EngineError, InfrastructureError]
