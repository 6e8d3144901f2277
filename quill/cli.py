"""
QUILL command line interface

Commands:
    render-latex - Serve one render request on stdin/stdout (the container command)
    render       - Render a LaTeX snippet file to PNG from the host
    events       - Show recent render events

Examples:\n

    quill render snippet.tex                    # Render in the sandbox container

    quill render snippet.tex --wide -o out.png  # Wide render, custom output path

    quill render snippet.tex --in-process       # Render with the local LaTeX install

    quill events -n 20 -e render_finished       # Last 20 finished renders
"""

import asyncio
import json
import sys
import time
from pathlib import Path
from typing import Optional

import typer
from typing_extensions import Annotated

from quill.contexts.rendering import (
    InfrastructureError,
    InProcessRenderer,
    RenderJobSupervisor,
    RenderMode,
    RenderSuccess,
    SandboxedRenderer,
)
from quill.contexts.rendering.logger import setup_rendering_logger, setup_worker_logger
from quill.contexts.rendering.renderers import RENDERER_IMAGE
from quill.contexts.rendering.worker import run_worker
from quill.contexts.sandbox import RENDER_TIMEOUT_S
from quill.utils.event_logging import LOGS_PATH, get_recent_events
from quill.utils.timestamp import format_timestamp, now

app = typer.Typer(
    help="Render untrusted LaTeX snippets to PNG inside a locked-down container",
    add_completion=False,
    invoke_without_command=True,
)


@app.callback()
def main(ctx: typer.Context):
    """Show help by default when no command is provided."""
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


@app.command("render-latex")
def render_latex_command():
    """
    Serve one framed render request from stdin and write the framed outcome to stdout.

    This is the command the renderer container runs. Logs go to stderr.
    """
    setup_worker_logger()
    code = run_worker(sys.stdin.buffer, sys.stdout.buffer)
    raise typer.Exit(code=code)


@app.command("render")
def render_command(
    tex_file: Annotated[
        Path,
        typer.Argument(help="File containing the LaTeX snippet (document body only)"),
    ],
    output: Annotated[
        Optional[Path],
        typer.Option("--output", "-o", help="Where to write the PNG (default: <tex_file>.png)"),
    ] = None,
    wide: Annotated[
        bool,
        typer.Option("--wide", "-w", help="Render with the wide page width"),
    ] = False,
    in_process: Annotated[
        bool,
        typer.Option(
            "--in-process",
            help="Use the local LaTeX install instead of the container (trusted input only)",
        ),
    ] = False,
    image: Annotated[
        str,
        typer.Option("--image", "-i", help="Renderer image for sandboxed renders"),
    ] = RENDERER_IMAGE,
    timeout: Annotated[
        float,
        typer.Option("--timeout", "-t", help="Deadline in seconds", min=1.0),
    ] = RENDER_TIMEOUT_S,
):
    """
    Render a LaTeX snippet file to PNG.

    Examples:\n

        $ quill render snippet.tex                 # Sandboxed, normal width

        $ quill render snippet.tex --wide          # Sandboxed, wide

        $ quill render snippet.tex --in-process    # Local pdflatex
    """
    if not tex_file.exists():
        typer.secho(f"Error: file not found: {tex_file}\n", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    log_file = setup_rendering_logger(LOGS_PATH / f"render_{now()}")

    mode = RenderMode.WIDE if wide else RenderMode.NORMAL
    if in_process:
        renderer = InProcessRenderer(timeout_s=timeout)
    else:
        renderer = SandboxedRenderer(image=image, deadline_s=timeout)

    typer.secho(f"\nRendering: {tex_file}", fg=typer.colors.BLUE, bold=True)
    typer.echo(f"Mode: {mode.value}")
    typer.echo(f"Renderer: {renderer.name}")
    typer.echo("")

    supervisor = RenderJobSupervisor(renderer)
    correlation_id = int(time.time() * 1000)
    outcome = asyncio.run(
        supervisor.render_for(correlation_id, mode, tex_file.read_text(encoding="utf-8"))
    )

    typer.echo("")
    if isinstance(outcome, RenderSuccess):
        output = output or tex_file.with_suffix(".png")
        output.write_bytes(outcome.image)
        typer.secho("✓ Render succeeded", fg=typer.colors.GREEN, bold=True)
        typer.echo(f"  PNG: {output}")
        if outcome.overflow:
            typer.secho("  Content overflowed the page width", fg=typer.colors.YELLOW)
    elif isinstance(outcome, InfrastructureError):
        typer.secho(f"✗ Render failed: {outcome.reason.value}", fg=typer.colors.RED, bold=True)
    else:
        typer.secho("✗ LaTeX error", fg=typer.colors.RED, bold=True)
        typer.echo(outcome.message)

    typer.echo(f"  Log: {log_file}")
    typer.echo("")

    raise typer.Exit(code=0 if isinstance(outcome, RenderSuccess) else 1)


@app.command("events")
def events_command(
    n: int = typer.Option(10, "--num", "-n", help="Number of recent events to show"),
    correlation_id: Optional[int] = typer.Option(
        None, "--correlation-id", "-c", help="Filter to events for this correlation id"
    ),
    event_type: Optional[str] = typer.Option(
        None, "--event-type", "-e", help="Filter to events of this type"
    ),
    compact: bool = typer.Option(
        False, "--compact", help="Print one event per line (no pretty formatting)"
    ),
    relative: bool = typer.Option(
        False, "--relative", "-r", help="Show relative timestamps (e.g., '2h ago')"
    ),
):
    """
    Show the last n events from the render event log.

    Examples:\n

        $ quill events                          # Last 10 events

        $ quill events -e render_finished       # Last 10 finished renders

        $ quill events -c 1234 --compact        # One line per event for a job
    """
    events = get_recent_events(n=n, correlation_id=correlation_id, event_type=event_type)

    if not events:
        typer.secho("No events found", fg=typer.colors.YELLOW, err=True)
        raise typer.Exit(code=1)

    if not compact:
        typer.secho(f"\nShowing last {len(events)} event(s):", fg=typer.colors.BLUE)
        typer.echo("")

    for event in events:
        event = {**event, "timestamp": format_timestamp(event.get("timestamp", ""), relative)}
        if compact:
            typer.echo(json.dumps(event))
        else:
            typer.echo(json.dumps(event, indent=2))
            typer.echo("")


if __name__ == "__main__":
    app()
