"""
Integration tests for SandboxRunner against a fake docker CLI.

The fake is a bash script that logs its arguments, and for `run` acts
according to FAKE_DOCKER_RUN:
    ok      - consume stdin into FAKE_DOCKER_STDIN, print a success frame
    error   - print an engine error frame
    crash   - write to stderr and exit 3
    hang    - never exit

and for `kill` hangs forever when FAKE_DOCKER_KILL=hang.
"""

import asyncio
import shutil
import stat
import time

import pytest

from quill.contexts.rendering import (
    InfrastructureReason,
    RenderMode,
    RenderRequest,
    RenderSuccess,
    SandboxedRenderer,
)
from quill.contexts.sandbox import (
    PullFailure,
    SandboxInvocation,
    SandboxRunner,
    SandboxTimeout,
    SpawnFailure,
)

FAKE_DOCKER = r"""#!/usr/bin/env bash
echo "$*" >> "$FAKE_DOCKER_LOG"
case "$1" in
  pull)
    if [ "$FAKE_DOCKER_PULL" = "fail" ]; then
      echo "manifest unknown" >&2
      exit 1
    fi
    ;;
  kill)
    if [ "$FAKE_DOCKER_KILL" = "hang" ]; then
      exec sleep 30
    fi
    ;;
  run)
    case "$FAKE_DOCKER_RUN" in
      ok)
        cat > "$FAKE_DOCKER_STDIN"
        printf '\000\001fakepng'
        ;;
      error)
        cat > /dev/null
        printf '\001Undefined control sequence.'
        ;;
      crash)
        echo "renderer crashed" >&2
        exit 3
        ;;
      hang)
        exec sleep 30
        ;;
    esac
    ;;
esac
"""

skip_if_no_bash = pytest.mark.skipif(shutil.which("bash") is None, reason="bash not available")


@pytest.fixture
def fake_docker(tmp_path, monkeypatch):
    """Install the fake docker script and return a helper to read its call log."""
    script = tmp_path / "docker"
    script.write_text(FAKE_DOCKER)
    script.chmod(script.stat().st_mode | stat.S_IXUSR)

    calls_log = tmp_path / "docker_calls.log"
    monkeypatch.setenv("FAKE_DOCKER_LOG", str(calls_log))
    monkeypatch.setenv("FAKE_DOCKER_STDIN", str(tmp_path / "stdin.bin"))
    monkeypatch.setenv("FAKE_DOCKER_PULL", "ok")
    monkeypatch.setenv("FAKE_DOCKER_RUN", "ok")
    monkeypatch.setenv("FAKE_DOCKER_KILL", "ok")

    def calls():
        if not calls_log.exists():
            return []
        return calls_log.read_text().splitlines()

    return str(script), calls


def _invocation(name="quill-latex-normal-1", deadline_s=10.0):
    return SandboxInvocation(
        image="example/quill:latest",
        container_name=name,
        args=("render-latex",),
        deadline_s=deadline_s,
    )


@pytest.mark.integration
@skip_if_no_bash
@pytest.mark.asyncio
async def test_run_success(fake_docker, tmp_path):
    binary, calls = fake_docker

    result = await SandboxRunner(binary).run(_invocation(), b"normal\n$x^2$")

    assert result.succeeded
    assert result.stdout == b"\x00\x01fakepng"
    assert (tmp_path / "stdin.bin").read_bytes() == b"normal\n$x^2$"

    recorded = calls()
    assert recorded[0] == "pull example/quill:latest"
    assert recorded[1].startswith("run --pids-limit=5000 --memory=500M --cpus=1")
    assert "--network=none" in recorded[1]
    assert recorded[1].endswith(
        "--name=quill-latex-normal-1 --rm example/quill:latest render-latex"
    )


@pytest.mark.integration
@skip_if_no_bash
@pytest.mark.asyncio
async def test_pull_failure_spawns_nothing(fake_docker, monkeypatch):
    binary, calls = fake_docker
    monkeypatch.setenv("FAKE_DOCKER_PULL", "fail")

    with pytest.raises(PullFailure) as exc_info:
        await SandboxRunner(binary).run(_invocation(), b"normal\n$x$")

    assert b"manifest unknown" in exc_info.value.stderr
    assert calls() == ["pull example/quill:latest"]


@pytest.mark.integration
@skip_if_no_bash
@pytest.mark.asyncio
async def test_non_zero_exit_is_returned(fake_docker, monkeypatch):
    binary, _ = fake_docker
    monkeypatch.setenv("FAKE_DOCKER_RUN", "crash")

    result = await SandboxRunner(binary).run(_invocation(), b"normal\n$x$")

    assert result.returncode == 3
    assert b"renderer crashed" in result.stderr


@pytest.mark.integration
@skip_if_no_bash
@pytest.mark.asyncio
async def test_timeout_kills_container_once(fake_docker, monkeypatch):
    binary, calls = fake_docker
    monkeypatch.setenv("FAKE_DOCKER_RUN", "hang")

    with pytest.raises(SandboxTimeout) as exc_info:
        await SandboxRunner(binary).run(
            _invocation(name="quill-latex-wide-77", deadline_s=0.5), b"wide\n$x$"
        )

    assert exc_info.value.container_name == "quill-latex-wide-77"
    assert exc_info.value.kill_succeeded
    kills = [call for call in calls() if call.startswith("kill")]
    assert kills == ["kill quill-latex-wide-77"]


@pytest.mark.integration
@skip_if_no_bash
@pytest.mark.asyncio
async def test_handle_kill_is_idempotent(fake_docker, monkeypatch):
    binary, calls = fake_docker
    monkeypatch.setenv("FAKE_DOCKER_RUN", "hang")
    handle = await SandboxRunner(binary).spawn(_invocation(name="quill-latex-normal-5"))

    assert not handle.kill_issued
    assert await handle.kill()
    assert await handle.kill()

    assert handle.kill_issued
    assert [call for call in calls() if call.startswith("kill")] == ["kill quill-latex-normal-5"]


@pytest.mark.integration
@skip_if_no_bash
@pytest.mark.asyncio
async def test_cancellation_kills_container(fake_docker, monkeypatch):
    binary, calls = fake_docker
    monkeypatch.setenv("FAKE_DOCKER_RUN", "hang")
    runner = SandboxRunner(binary)

    task = asyncio.create_task(runner.run(_invocation(name="quill-latex-normal-8"), b"normal\n"))
    for _ in range(100):
        if any(call.startswith("run") for call in calls()):
            break
        await asyncio.sleep(0.05)
    await asyncio.sleep(0.1)
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task

    assert "kill quill-latex-normal-8" in calls()


@pytest.mark.integration
@skip_if_no_bash
@pytest.mark.asyncio
async def test_hanging_kill_is_abandoned(fake_docker, monkeypatch):
    binary, calls = fake_docker
    monkeypatch.setenv("FAKE_DOCKER_RUN", "hang")
    monkeypatch.setenv("FAKE_DOCKER_KILL", "hang")
    monkeypatch.setattr("quill.contexts.sandbox.runner.DOCKER_KILL_TIMEOUT_S", 0.5)

    started = time.monotonic()
    with pytest.raises(SandboxTimeout) as exc_info:
        await SandboxRunner(binary).run(
            _invocation(name="quill-latex-normal-9", deadline_s=0.3), b""
        )

    assert time.monotonic() - started < 10
    assert not exc_info.value.kill_succeeded
    assert "kill quill-latex-normal-9" in calls()


@pytest.mark.integration
@skip_if_no_bash
@pytest.mark.asyncio
async def test_concurrent_kills_share_one_command(fake_docker, monkeypatch):
    binary, calls = fake_docker
    monkeypatch.setenv("FAKE_DOCKER_RUN", "hang")
    handle = await SandboxRunner(binary).spawn(_invocation(name="quill-latex-wide-6"))

    results = await asyncio.gather(handle.kill(), handle.kill(), handle.kill())

    assert results == [True, True, True]
    assert [call for call in calls() if call.startswith("kill")] == ["kill quill-latex-wide-6"]


@pytest.mark.integration
@pytest.mark.asyncio
async def test_missing_docker_binary(tmp_path):
    runner = SandboxRunner(str(tmp_path / "no-such-docker"))

    with pytest.raises(PullFailure):
        await runner.run(_invocation(), b"normal\n$x$")

    with pytest.raises(SpawnFailure):
        await runner.spawn(_invocation())


@pytest.mark.integration
@skip_if_no_bash
@pytest.mark.asyncio
async def test_sandboxed_renderer_end_to_end(fake_docker, monkeypatch):
    binary, calls = fake_docker
    renderer = SandboxedRenderer(image="example/quill:latest", runner=SandboxRunner(binary))
    request = RenderRequest(source="$x$", mode=RenderMode.WIDE, correlation_id=31)

    outcome = await renderer.render(request)
    assert outcome == RenderSuccess(image=b"fakepng", overflow=True)
    assert "--name=quill-latex-wide-31" in calls()[1]

    monkeypatch.setenv("FAKE_DOCKER_RUN", "crash")
    outcome = await renderer.render(request)
    assert outcome.reason == InfrastructureReason.NON_ZERO_EXIT

    monkeypatch.setenv("FAKE_DOCKER_RUN", "error")
    outcome = await renderer.render(request)
    assert outcome.message == "Undefined control sequence."
