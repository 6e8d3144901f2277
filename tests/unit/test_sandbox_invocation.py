"""Unit tests for sandbox invocation building and sandbox exceptions."""

import pytest

from quill.contexts.sandbox import (
    PullFailure,
    SandboxInvocation,
    SandboxResult,
    SandboxTimeout,
    container_name,
)
from quill.contexts.sandbox.exceptions import DIAGNOSTIC_LIMIT, SandboxError


@pytest.mark.unit
def test_docker_run_command_flags():
    """Every run carries the fixed resource caps and isolation flags in order."""
    invocation = SandboxInvocation(
        image="example/quill:latest",
        container_name="quill-latex-normal-7",
        args=("render-latex",),
    )

    command = invocation.docker_run_command("docker")

    assert command == [
        "docker",
        "run",
        "--pids-limit=5000",
        "--memory=500M",
        "--cpus=1",
        "--interactive=true",
        "--read-only",
        "--network=none",
        "--cap-drop=all",
        "--tmpfs=/tmp",
        "--name=quill-latex-normal-7",
        "--rm",
        "example/quill:latest",
        "render-latex",
    ]


@pytest.mark.unit
def test_limits_cannot_be_passed_in():
    """Limits and isolation are fixed, not constructor arguments."""
    with pytest.raises(TypeError):
        SandboxInvocation(image="img", container_name="c", limits=None)

    with pytest.raises(TypeError):
        SandboxInvocation(image="img", container_name="c", isolation=None)


@pytest.mark.unit
def test_invocation_is_immutable():
    invocation = SandboxInvocation(image="img", container_name="c")
    with pytest.raises(AttributeError):
        invocation.image = "other"


@pytest.mark.unit
@pytest.mark.parametrize("deadline_s", [0, -1.5])
def test_non_positive_deadline_rejected(deadline_s):
    with pytest.raises(ValueError, match="deadline_s must be positive"):
        SandboxInvocation(image="img", container_name="c", deadline_s=deadline_s)


@pytest.mark.unit
def test_empty_container_name_rejected():
    with pytest.raises(ValueError, match="container_name"):
        SandboxInvocation(image="img", container_name="")


@pytest.mark.unit
def test_container_name_is_deterministic():
    """Same role and correlation id always give the same name."""
    assert container_name("latex-normal", 1234) == "quill-latex-normal-1234"
    assert container_name("latex-normal", 1234) == container_name("latex-normal", 1234)
    assert container_name("latex-wide", 1234) != container_name("latex-normal", 1234)


@pytest.mark.unit
def test_sandbox_result_succeeded():
    assert SandboxResult(container_name="c", returncode=0).succeeded
    assert not SandboxResult(container_name="c", returncode=137).succeeded


@pytest.mark.unit
def test_sandbox_error_truncates_output():
    """Captured output is cut off in the message but kept whole on the exception."""
    stderr = b"x" * (DIAGNOSTIC_LIMIT + 500)

    error = SandboxError("Runner failed", container_name="quill-x-1", stderr=stderr)

    assert "Container: quill-x-1" in str(error)
    assert str(error).endswith("...")
    assert error.stderr == stderr


@pytest.mark.unit
def test_pull_failure_message():
    error = PullFailure("example/quill:latest", stderr=b"manifest unknown")

    assert error.image == "example/quill:latest"
    assert "Failed to pull runner image 'example/quill:latest'" in str(error)
    assert "manifest unknown" in str(error)


@pytest.mark.unit
def test_sandbox_timeout_attributes():
    error = SandboxTimeout("quill-latex-wide-3", deadline_s=15.0, kill_succeeded=True)

    assert error.container_name == "quill-latex-wide-3"
    assert error.kill_succeeded
    assert "timed out after 15s" in str(error)
