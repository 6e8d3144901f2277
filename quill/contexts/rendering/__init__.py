"""
Rendering Context

Responsibilities:
- Defines the byte-level protocol between orchestrator and renderer
- Wraps snippets in the document template and compiles them to PNG
- Detects overflow of the normal page width
- Supervises render jobs and maps outcomes to user-facing replies

Owns: Render protocol, LaTeX engine, renderer variants, job supervision
Never: Decides who may act on a rendered response
"""

from quill.contexts.rendering.exceptions import LatexCompilationError, ProtocolFramingError
from quill.contexts.rendering.outcomes import (
    EngineError,
    InfrastructureError,
    InfrastructureReason,
    RenderMode,
    RenderOutcome,
    RenderRequest,
    RenderSuccess,
)
from quill.contexts.rendering.renderers import InProcessRenderer, Renderer, SandboxedRenderer
from quill.contexts.rendering.supervisor import (
    RenderJobSupervisor,
    RenderReply,
    UserMessages,
    present,
)

__all__ = [
    # Data structures
    "RenderMode",
    "RenderRequest",
    "RenderOutcome",
    "RenderSuccess",
    "EngineError",
    "InfrastructureError",
    "InfrastructureReason",
    # Renderers and supervision
    "Renderer",
    "InProcessRenderer",
    "SandboxedRenderer",
    "RenderJobSupervisor",
    "RenderReply",
    "UserMessages",
    "present",
    # Errors
    "ProtocolFramingError",
    "LatexCompilationError",
]
