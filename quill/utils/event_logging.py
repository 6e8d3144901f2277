"""
Render event logging utilities for QUILL (Tier 2 logging).

Appends one JSON object per line to the render event log so render jobs can be
followed across contexts (which correlation id ran, how it ended, how long it took)
without digging through the detailed loguru output.

For detailed within-context logging (Tier 1), use quill.utils.logger instead.

Usage:
    from quill.utils.event_logging import log_render_event, get_recent_events

    log_render_event(
        event_type="render_finished",
        correlation_id=1234,
        source="supervisor",
        outcome="success",
        overflow=True,
    )

    # Last 5 timeouts
    get_recent_events(5, event_type="render_finished")
"""

import json
import os
from pathlib import Path
from typing import Dict, List, Optional

from dotenv import load_dotenv

from quill.utils.timestamp import now_exact

load_dotenv()
LOGS_PATH = Path(os.getenv("LOGS_PATH", "outs/logs"))
RENDER_EVENTS_FILE = Path(os.getenv("RENDER_EVENTS_FILE", str(LOGS_PATH / "render_events.log")))


def log_render_event(
    event_type: str,
    correlation_id: int,
    source: str,
    events_file: Optional[Path] = None,
    **extra_fields,
) -> None:
    """
    Log an event to the render event log.

    Args:
        event_type: Type of event (e.g., "render_started", "render_finished")
        correlation_id: Correlation id of the render job
        source: Event source (e.g., "supervisor", "interactions", "cli")
        events_file: Override for the event log location (default: RENDER_EVENTS_FILE)
        **extra_fields: Additional event-specific fields
    """
    events_file = Path(events_file or RENDER_EVENTS_FILE)
    events_file.parent.mkdir(parents=True, exist_ok=True)

    event = {
        "timestamp": now_exact(),
        "event_type": event_type,
        "correlation_id": correlation_id,
        "source": source,
        **extra_fields,
    }

    with open(events_file, "a", encoding="utf-8") as f:
        f.write(json.dumps(event) + "\n")


def get_recent_events(
    n: int = 10,
    correlation_id: Optional[int] = None,
    event_type: Optional[str] = None,
    events_file: Optional[Path] = None,
) -> List[Dict]:
    """
    Get the last n events from the render event log, optionally filtered.

    Args:
        n: Number of recent events to return (default: 10)
        correlation_id: Filter to only events for this correlation id (optional)
        event_type: Filter to only events of this type (optional)
        events_file: Override for the event log location (default: RENDER_EVENTS_FILE)

    Returns:
        List of event dicts (most recent last)
    """
    events_file = Path(events_file or RENDER_EVENTS_FILE)
    if not events_file.exists():
        return []

    events = []
    with open(events_file, "r", encoding="utf-8") as f:
        for line in f:
            try:
                events.append(json.loads(line.strip()))
            except json.JSONDecodeError:
                # Skip malformed lines
                continue

    if correlation_id is not None:
        events = [e for e in events if e.get("correlation_id") == correlation_id]

    if event_type:
        events = [e for e in events if e.get("event_type") == event_type]

    return events[-n:] if len(events) > n else events
