"""Shared fixtures for QUILL tests."""

import pytest

from quill.contexts.rendering.outcomes import RenderSuccess
from quill.contexts.rendering.renderers import Renderer


@pytest.fixture(autouse=True)
def isolated_event_log(tmp_path, monkeypatch):
    """Send Tier 2 render events to a per-test file instead of outs/logs."""
    events_file = tmp_path / "render_events.log"
    monkeypatch.setattr("quill.utils.event_logging.RENDER_EVENTS_FILE", events_file)
    return events_file


class ScriptedRenderer(Renderer):
    """Renderer returning pre-set outcomes in order and recording every request."""

    name = "scripted"

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.requests = []

    async def render(self, request):
        self.requests.append(request)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture
def scripted_renderer():
    """Factory for ScriptedRenderer (defaults to one successful, fitting render)."""

    def _make(*outcomes):
        return ScriptedRenderer(*(outcomes or (RenderSuccess(image=b"png", overflow=False),)))

    return _make
