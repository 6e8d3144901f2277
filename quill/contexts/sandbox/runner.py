"""
Sandboxed Container Execution

Runs one untrusted renderer invocation inside a docker container with no network,
no capabilities, a read-only root filesystem, a tmpfs scratch directory and capped
pids, memory and CPU. The payload is written to the container's stdin, all output is
captured, and the run is raced against a hard deadline. On expiry the container is
killed by name.
"""

import asyncio
import os
import time
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from dotenv import load_dotenv

from quill.contexts.sandbox.exceptions import PullFailure, SandboxTimeout, SpawnFailure
from quill.contexts.sandbox.logger import (
    _log_debug,
    _log_error,
    _log_info,
    log_command_failure,
    log_container_exit,
    log_container_start,
)

load_dotenv()

DOCKER_BINARY = os.getenv("DOCKER_BINARY", "docker")
RENDER_TIMEOUT_S = float(os.getenv("RENDER_TIMEOUT_S", "15"))
# Upper bound on the out-of-band `docker kill`
DOCKER_KILL_TIMEOUT_S = float(os.getenv("DOCKER_KILL_TIMEOUT_S", "10"))

# Every container name starts with this so orphans are easy to find with `docker ps`
CONTAINER_PREFIX = "quill"


@dataclass(frozen=True)
class ResourceLimits:
    """
    Resource ceilings applied to every container.

    Attributes:
        pids_limit: Maximum number of processes inside the container
        memory_limit: Memory ceiling in docker notation
        cpu_limit: CPU share ceiling in docker notation
    """

    pids_limit: int = 5000
    memory_limit: str = "500M"
    cpu_limit: str = "1"

    def docker_flags(self) -> List[str]:
        return [
            f"--pids-limit={self.pids_limit}",
            f"--memory={self.memory_limit}",
            f"--cpus={self.cpu_limit}",
        ]


@dataclass(frozen=True)
class IsolationPolicy:
    """
    Isolation settings applied to every container.

    Attributes:
        read_only_root: Mount the root filesystem read-only
        no_network: Disable all networking
        drop_all_capabilities: Drop every Linux capability
        scratch_tmpfs: Writable in-memory scratch directory
    """

    read_only_root: bool = True
    no_network: bool = True
    drop_all_capabilities: bool = True
    scratch_tmpfs: str = "/tmp"

    def docker_flags(self) -> List[str]:
        flags = []
        if self.read_only_root:
            flags.append("--read-only")
        if self.no_network:
            flags.append("--network=none")
        if self.drop_all_capabilities:
            flags.append("--cap-drop=all")
        if self.scratch_tmpfs:
            flags.append(f"--tmpfs={self.scratch_tmpfs}")
        return flags


@dataclass(frozen=True)
class SandboxInvocation:
    """
    One container run. Never reused.

    Limits and isolation are not constructor arguments: every payload is
    untrusted, so no caller gets to loosen them.

    Attributes:
        image: Renderer image reference
        container_name: Unique container name (see container_name())
        args: Command arguments passed to the image entrypoint
        deadline_s: Wall-clock budget in seconds
    """

    image: str
    container_name: str
    args: Tuple[str, ...] = ()
    deadline_s: float = RENDER_TIMEOUT_S
    limits: ResourceLimits = field(default_factory=ResourceLimits, init=False)
    isolation: IsolationPolicy = field(default_factory=IsolationPolicy, init=False)

    def __post_init__(self):
        if self.deadline_s <= 0:
            raise ValueError(f"deadline_s must be positive, got: {self.deadline_s}")
        if not self.container_name:
            raise ValueError("container_name must not be empty")

    def docker_run_command(self, docker_binary: str = DOCKER_BINARY) -> List[str]:
        """Build the full `docker run` argument vector."""
        return [
            docker_binary,
            "run",
            *self.limits.docker_flags(),
            "--interactive=true",
            *self.isolation.docker_flags(),
            f"--name={self.container_name}",
            "--rm",
            self.image,
            *self.args,
        ]


@dataclass
class SandboxResult:
    """
    Captured result of a container run that finished before its deadline.

    Attributes:
        container_name: Name the container ran under
        returncode: Exit status of the container
        stdout: Everything written to standard output
        stderr: Everything written to standard error
        duration_s: Wall-clock run time
    """

    container_name: str
    returncode: int
    stdout: bytes = b""
    stderr: bytes = b""
    duration_s: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.returncode == 0


def container_name(role: str, correlation_id: int) -> str:
    """
    Deterministic container name for a logical request.

    The same correlation id and role always map to the same name, so the kill
    path can find the container even without the in-process handle.

    Example:
        >>> container_name("latex-normal", 1234)
        'quill-latex-normal-1234'
    """
    return f"{CONTAINER_PREFIX}-{role}-{correlation_id}"


async def _run_docker(
    docker_binary: str, *args: str, timeout_s: Optional[float] = None
) -> Tuple[int, bytes, bytes]:
    """
    Run a short docker housekeeping command (pull, kill) to completion.

    Raises:
        asyncio.TimeoutError: If the command outlives timeout_s (it is killed first)
    """
    process = await asyncio.create_subprocess_exec(
        docker_binary,
        *args,
        stdin=asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout_s)
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        raise
    return process.returncode, stdout, stderr


class ContainerHandle:
    """
    A running container: owns both its completion and its kill capability.

    The only way to wait on the container is wait(), which kills the container
    by name when the deadline expires, so no caller can time out without killing.
    """

    def __init__(
        self,
        invocation: SandboxInvocation,
        process: asyncio.subprocess.Process,
        docker_binary: str = DOCKER_BINARY,
    ):
        self.invocation = invocation
        self._process = process
        self._docker_binary = docker_binary
        self._started = time.monotonic()
        self._kill_task: Optional["asyncio.Future[bool]"] = None

    @property
    def name(self) -> str:
        return self.invocation.container_name

    @property
    def kill_issued(self) -> bool:
        return self._kill_task is not None

    async def wait(self, payload: bytes = b"") -> SandboxResult:
        """
        Feed the payload to stdin, close it and wait for the container to exit,
        racing the invocation deadline.

        The deadline covers writing the payload too, so a runner that never
        reads its input still gets killed.

        Args:
            payload: Bytes written to the container's stdin

        Returns:
            SandboxResult with exit status and full stdout/stderr

        Raises:
            SandboxTimeout: If the deadline elapsed first (the container is
                killed before this is raised)
        """
        _log_debug(f"Feeding {len(payload)} bytes to {self.name}")
        try:
            stdout, stderr = await asyncio.wait_for(
                self._process.communicate(input=payload), timeout=self.invocation.deadline_s
            )
        except asyncio.TimeoutError:
            _log_info(f"Runner {self.name} timed out, killing it")
            kill_succeeded = await self.kill()
            raise SandboxTimeout(self.name, self.invocation.deadline_s, kill_succeeded)
        except asyncio.CancelledError:
            # Cancelling this task does not stop the container
            await asyncio.shield(self.kill())
            raise

        elapsed_time = time.monotonic() - self._started
        log_container_exit(self.name, self._process.returncode, elapsed_time)
        return SandboxResult(
            container_name=self.name,
            returncode=self._process.returncode,
            stdout=stdout,
            stderr=stderr,
            duration_s=elapsed_time,
        )

    async def kill(self) -> bool:
        """
        Kill the container by name, then reap the local docker client.

        Issues the kill command at most once per handle; concurrent and later
        calls wait for and return the first result.

        Returns:
            True if the kill command reported success
        """
        if self._kill_task is None:
            self._kill_task = asyncio.ensure_future(self._kill_once())
        return await asyncio.shield(self._kill_task)

    async def _kill_once(self) -> bool:
        try:
            returncode, stdout, stderr = await _run_docker(
                self._docker_binary, "kill", self.name, timeout_s=DOCKER_KILL_TIMEOUT_S
            )
        except asyncio.TimeoutError:
            _log_error(f"Kill for runner {self.name} timed out after {DOCKER_KILL_TIMEOUT_S:g}s")
            killed = False
        except OSError as e:
            _log_error(f"Failed to run kill for runner {self.name}: {e}")
            killed = False
        else:
            killed = returncode == 0
            if not killed:
                log_command_failure(f"Failed to kill runner {self.name}", stdout, stderr)

        if self._process.returncode is None:
            try:
                self._process.kill()
            except ProcessLookupError:
                pass
        await self._process.wait()

        return killed


class SandboxRunner:
    """
    Executes sandbox invocations through the docker CLI.

    Example:
        runner = SandboxRunner()
        invocation = SandboxInvocation(
            image="ghcr.io/example/quill:latest",
            container_name=container_name("latex-normal", 1234),
            args=("render-latex",),
        )
        result = await runner.run(invocation, b"normal\\n$x^2$")
    """

    def __init__(self, docker_binary: str = DOCKER_BINARY):
        self.docker_binary = docker_binary

    async def pull_image(self, image: str) -> None:
        """
        Make sure the image is present locally.

        Raises:
            PullFailure: If `docker pull` fails or cannot be started
        """
        _log_info(f"Pulling image: {image}")
        try:
            returncode, stdout, stderr = await _run_docker(self.docker_binary, "pull", image)
        except OSError as e:
            raise PullFailure(image, stderr=str(e).encode()) from e

        if returncode != 0:
            log_command_failure(f"Failed to pull runner image {image!r}", stdout, stderr)
            raise PullFailure(image, stdout=stdout, stderr=stderr)

        _log_info("Pulled image")

    async def spawn(self, invocation: SandboxInvocation) -> ContainerHandle:
        """
        Start the container process.

        Raises:
            SpawnFailure: If the docker client cannot be started
        """
        command = invocation.docker_run_command(self.docker_binary)
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise SpawnFailure(
                f"Failed to spawn runner: {e}", container_name=invocation.container_name
            ) from e
        return ContainerHandle(invocation, process, self.docker_binary)

    async def run(self, invocation: SandboxInvocation, payload: bytes) -> SandboxResult:
        """
        Pull, spawn, then feed and wait for one invocation.

        A non-zero exit status is returned, not raised: telling a crashed
        runner apart from a protocol-level failure is up to the caller.

        Args:
            invocation: The container run to execute
            payload: Bytes written to the container's stdin

        Returns:
            SandboxResult of the finished run

        Raises:
            PullFailure: If the image cannot be pulled (nothing is spawned)
            SpawnFailure: If the container cannot be started
            SandboxTimeout: If the deadline elapsed (the container was killed)
        """
        await self.pull_image(invocation.image)

        log_container_start(
            invocation.container_name, invocation.image, invocation.args, invocation.deadline_s
        )
        handle = await self.spawn(invocation)
        return await handle.wait(payload)
