"""Custom exceptions for sandbox context with captured container diagnostics."""

from typing import Optional

# Captured output is truncated in messages; full output goes to the detailed log
DIAGNOSTIC_LIMIT = 2000


def _decode(output: Optional[bytes]) -> str:
    if not output:
        return ""
    text = output.decode("utf-8", errors="replace")
    return text[:DIAGNOSTIC_LIMIT] + "..." if len(text) > DIAGNOSTIC_LIMIT else text


class SandboxError(Exception):
    """
    Base exception for sandbox failures.

    Attributes:
        message: Error description
        container_name: Name of the container involved (if any)
        stdout: Captured standard output (raw bytes)
        stderr: Captured standard error (raw bytes)
    """

    def __init__(
        self,
        message: str,
        container_name: Optional[str] = None,
        stdout: Optional[bytes] = None,
        stderr: Optional[bytes] = None,
    ):
        self.message = message
        self.container_name = container_name
        self.stdout = stdout or b""
        self.stderr = stderr or b""

        parts = [message]

        if container_name:
            parts.append(f"Container: {container_name}")

        if self.stdout:
            parts.append(f"Stdout:\n{_decode(self.stdout)}")

        if self.stderr:
            parts.append(f"Stderr:\n{_decode(self.stderr)}")

        super().__init__("\n".join(parts))


class PullFailure(SandboxError):
    """Raised when the renderer image cannot be pulled. Nothing was spawned."""

    def __init__(self, image: str, stdout: Optional[bytes] = None, stderr: Optional[bytes] = None):
        self.image = image
        super().__init__(f"Failed to pull runner image {image!r}", stdout=stdout, stderr=stderr)


class SpawnFailure(SandboxError):
    """Raised when the container process cannot be started."""

    pass


class SandboxTimeout(SandboxError):
    """
    Raised when a container outlives its deadline.

    By the time this is raised the container has already been killed by name.

    Attributes:
        deadline_s: The deadline that elapsed
        kill_succeeded: Whether the out-of-band kill command reported success
    """

    def __init__(self, container_name: str, deadline_s: float, kill_succeeded: bool):
        self.deadline_s = deadline_s
        self.kill_succeeded = kill_succeeded
        super().__init__(
            f"Runner timed out after {deadline_s:g}s and was killed",
            container_name=container_name,
        )
