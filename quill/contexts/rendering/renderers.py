"""
Renderer implementations.

A Renderer turns a RenderRequest into exactly one RenderOutcome. The job
supervisor only depends on this capability, not on where the engine runs.

Variants:
    InProcessRenderer: Runs the LaTeX engine on this host in a worker thread.
        Only for trusted input and local debugging.
    SandboxedRenderer: Runs the engine in a locked-down container via the
        sandbox context and decodes the render protocol from its stdout.
"""

import asyncio
import os
import subprocess
from abc import ABC, abstractmethod
from typing import Optional

from dotenv import load_dotenv

from quill.contexts.rendering.compiler import COMPILE_TIMEOUT_S, render_to_png
from quill.contexts.rendering.exceptions import LatexCompilationError, ProtocolFramingError
from quill.contexts.rendering.logger import _log_warning
from quill.contexts.rendering.outcomes import (
    EngineError,
    InfrastructureError,
    InfrastructureReason,
    RenderOutcome,
    RenderRequest,
    RenderSuccess,
)
from quill.contexts.rendering.protocol import decode_output, encode_request
from quill.contexts.rendering.templates import DocumentTemplate
from quill.contexts.sandbox import (
    RENDER_TIMEOUT_S,
    PullFailure,
    SandboxInvocation,
    SandboxResult,
    SandboxRunner,
    SandboxTimeout,
    SpawnFailure,
    container_name,
)

load_dotenv()

RENDERER_IMAGE = os.getenv("QUILL_RENDERER_IMAGE", "ghcr.io/quill-render/quill:latest")

# Container command that starts the worker (see quill.cli)
WORKER_COMMAND = "render-latex"


class Renderer(ABC):
    """Capability to render one request to one outcome."""

    name = "renderer"

    @abstractmethod
    async def render(self, request: RenderRequest) -> RenderOutcome:
        """Render the request. Must return an outcome rather than raise for expected failures."""


class InProcessRenderer(Renderer):
    """Runs the LaTeX engine directly on this host, off the event loop."""

    name = "in-process"

    def __init__(
        self,
        template: Optional[DocumentTemplate] = None,
        timeout_s: float = COMPILE_TIMEOUT_S,
    ):
        self.template = template or DocumentTemplate()
        self.timeout_s = timeout_s

    async def render(self, request: RenderRequest) -> RenderOutcome:
        try:
            result = await asyncio.to_thread(
                render_to_png, request.source, request.mode, self.template, self.timeout_s
            )
        except LatexCompilationError as e:
            return EngineError(message=str(e))
        except subprocess.TimeoutExpired as e:
            return InfrastructureError(InfrastructureReason.TIMEOUT, str(e))
        except OSError as e:
            return InfrastructureError(InfrastructureReason.SPAWN_FAILURE, str(e))

        return RenderSuccess(image=result.png, overflow=result.overflow)


class SandboxedRenderer(Renderer):
    """Runs the engine in a sandboxed container and decodes its framed output."""

    name = "sandboxed"

    def __init__(
        self,
        image: str = RENDERER_IMAGE,
        runner: Optional[SandboxRunner] = None,
        deadline_s: float = RENDER_TIMEOUT_S,
    ):
        self.image = image
        self.runner = runner or SandboxRunner()
        self.deadline_s = deadline_s

    def invocation_for(self, request: RenderRequest) -> SandboxInvocation:
        """Build the container invocation; the name is derived from mode and correlation id."""
        return SandboxInvocation(
            image=self.image,
            container_name=container_name(f"latex-{request.mode.value}", request.correlation_id),
            args=(WORKER_COMMAND,),
            deadline_s=self.deadline_s,
        )

    async def render(self, request: RenderRequest) -> RenderOutcome:
        invocation = self.invocation_for(request)
        payload = encode_request(request.mode, request.source)

        try:
            result = await self.runner.run(invocation, payload)
        except PullFailure as e:
            return InfrastructureError(InfrastructureReason.PULL_FAILURE, str(e))
        except SandboxTimeout as e:
            return InfrastructureError(InfrastructureReason.TIMEOUT, str(e))
        except SpawnFailure as e:
            return InfrastructureError(InfrastructureReason.SPAWN_FAILURE, str(e))

        return self.decode(result)

    def decode(self, result: SandboxResult) -> RenderOutcome:
        """
        Turn a finished container run into an outcome.

        A run that exited non-zero without a valid protocol payload is a crashed
        runner; one that exited zero with garbage output is a framing violation.
        """
        stdout_text = result.stdout.decode("utf-8", errors="replace")
        stderr_text = result.stderr.decode("utf-8", errors="replace")

        try:
            outcome = decode_output(result.stdout)
        except ProtocolFramingError as e:
            if not result.succeeded:
                return InfrastructureError(
                    InfrastructureReason.NON_ZERO_EXIT,
                    f"Runner died with exit code {result.returncode}\n"
                    f"Stdout:\n{stdout_text}\nStderr:\n{stderr_text}",
                )
            return InfrastructureError(
                InfrastructureReason.PROTOCOL_FRAMING, f"{e}\nStderr:\n{stderr_text}"
            )

        if not result.succeeded:
            _log_warning(
                f"Runner {result.container_name} exited with {result.returncode} "
                "but produced a well-formed response"
            )
        return outcome
