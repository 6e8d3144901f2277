"""
Sandbox Context

Responsibilities:
- Ensures the renderer image is present before each run
- Runs exactly one resource-capped, network-isolated container per invocation
- Feeds the payload on stdin and captures stdout/stderr
- Enforces the wall-clock deadline and kills expired containers by name

Owns: Container lifecycle, resource limits, isolation flags, kill path
Never: Interprets what the container writes
"""

from quill.contexts.sandbox.exceptions import (
    PullFailure,
    SandboxError,
    SandboxTimeout,
    SpawnFailure,
)
from quill.contexts.sandbox.runner import (
    RENDER_TIMEOUT_S,
    ContainerHandle,
    IsolationPolicy,
    ResourceLimits,
    SandboxInvocation,
    SandboxResult,
    SandboxRunner,
    container_name,
)

__all__ = [
    # Execution
    "SandboxRunner",
    "SandboxInvocation",
    "SandboxResult",
    "ContainerHandle",
    "ResourceLimits",
    "IsolationPolicy",
    "container_name",
    "RENDER_TIMEOUT_S",
    # Errors
    "SandboxError",
    "PullFailure",
    "SpawnFailure",
    "SandboxTimeout",
]
