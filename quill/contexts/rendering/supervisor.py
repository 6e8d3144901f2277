"""
Render Job Supervisor

Runs one logical render request through a Renderer and guarantees exactly one
outcome, then maps that outcome to what the user gets to see. No retries:
callers decide whether to render again (the widen action is a new render in
WIDE mode, not a retry).
"""

import time
import traceback
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from quill.contexts.rendering.logger import _log_warning, log_render_outcome, log_render_start
from quill.contexts.rendering.outcomes import (
    InfrastructureError,
    InfrastructureReason,
    RenderMode,
    RenderOutcome,
    RenderRequest,
    RenderSuccess,
)
from quill.contexts.rendering.renderers import Renderer
from quill.utils.event_logging import log_render_event


class UserMessages:
    """User-facing notices. Infrastructure notices never include diagnostics."""

    ENGINE_ERROR_TITLE = "Error rendering LaTeX"
    FAILURE_TITLE = "Rendering failed"
    TIMEOUT = "Rendering took too long and was stopped."
    GENERIC_FAILURE = "Something went wrong while rendering. Please try again later."


@dataclass(frozen=True)
class RenderReply:
    """
    What the chat front end should show for an outcome.

    Attributes:
        title: Notice title (None for images)
        body: Notice text (None for images)
        image: PNG bytes on success
        overflow: Whether a widen control should be offered
    """

    title: Optional[str] = None
    body: Optional[str] = None
    image: Optional[bytes] = None
    overflow: bool = False

    @property
    def is_image(self) -> bool:
        return self.image is not None


def present(outcome: RenderOutcome) -> RenderReply:
    """
    Map an outcome to a user-facing reply.

    Engine errors are quoted verbatim since they describe the user's own input;
    infrastructure errors collapse to a generic notice.
    """
    if isinstance(outcome, RenderSuccess):
        return RenderReply(image=outcome.image, overflow=outcome.overflow)

    if isinstance(outcome, InfrastructureError):
        if outcome.reason == InfrastructureReason.TIMEOUT:
            return RenderReply(title=UserMessages.FAILURE_TITLE, body=UserMessages.TIMEOUT)
        return RenderReply(title=UserMessages.FAILURE_TITLE, body=UserMessages.GENERIC_FAILURE)

    return RenderReply(title=UserMessages.ENGINE_ERROR_TITLE, body=outcome.message)


class RenderJobSupervisor:
    """
    Orchestrates render jobs on top of a Renderer.

    Example:
        supervisor = RenderJobSupervisor(SandboxedRenderer())
        outcome = await supervisor.render_for(1234, RenderMode.NORMAL, r"$e^{i\\pi} = -1$")
        reply = present(outcome)
    """

    def __init__(
        self,
        renderer: Renderer,
        record_events: bool = True,
        events_file: Optional[Path] = None,
    ):
        """
        Args:
            renderer: Renderer capability that does the actual work
            record_events: Append render events to the Tier 2 event log
            events_file: Override for the event log location
        """
        self.renderer = renderer
        self.record_events = record_events
        self.events_file = events_file

    async def render_for(self, correlation_id: int, mode: RenderMode, source: str) -> RenderOutcome:
        """
        Render one request.

        Args:
            correlation_id: Id of the triggering message or response
            mode: Width variant
            source: Untrusted LaTeX body

        Returns:
            Exactly one of RenderSuccess, EngineError, InfrastructureError
        """
        request = RenderRequest(source=source, mode=RenderMode(mode), correlation_id=correlation_id)

        log_render_start(correlation_id, request.mode.value, len(source))
        self._record("render_started", request, renderer=self.renderer.name)

        start_time = time.monotonic()
        try:
            outcome = await self.renderer.render(request)
        except Exception as e:
            outcome = InfrastructureError(
                InfrastructureReason.UNEXPECTED,
                f"{type(e).__name__}: {e}\n{traceback.format_exc()}",
            )
        elapsed_time = time.monotonic() - start_time

        log_render_outcome(correlation_id, outcome, elapsed_time)
        self._record(
            "render_finished",
            request,
            outcome=outcome.kind,
            reason=outcome.reason.value if isinstance(outcome, InfrastructureError) else None,
            overflow=outcome.overflow if isinstance(outcome, RenderSuccess) else None,
            duration_s=round(elapsed_time, 3),
        )
        return outcome

    def _record(self, event_type: str, request: RenderRequest, **extra_fields) -> None:
        if not self.record_events:
            return
        try:
            log_render_event(
                event_type=event_type,
                correlation_id=request.correlation_id,
                source="supervisor",
                events_file=self.events_file,
                mode=request.mode.value,
                **extra_fields,
            )
        except OSError as e:
            _log_warning(f"Could not write render event: {e}")
