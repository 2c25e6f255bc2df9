"""Process invocation for the fabric CLI.

``build_plan`` turns an AnalysisRequest into concrete spawn parameters;
``invoke`` runs exactly one process for that plan under a deadline.

Uses ``asyncio.create_subprocess_exec`` with an argument list (never
shell=True). stdout and stderr are read incrementally so output captured
before a kill stays available on the raised error. On timeout or explicit
cancellation the process group gets SIGTERM, then SIGKILL after a grace
period; the child runs in its own session so helpers it forks are reached too.
"""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
import signal
import time
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from .classifier import extract_video_id
from .config import ServerConfig, get_config
from .errors import (
    EmptyOutput,
    InvocationCancelled,
    InvocationTimeout,
    NonZeroExit,
    SpawnError,
)
from .events import EventLog, emit
from .models.analysis import AnalysisRequest, ContentKind, RawResponse

logger = logging.getLogger(__name__)

TRUNCATION_MARKER = "\n\n[... input truncated]"
SIGTERM_GRACE_SECONDS = 5
_READ_CHUNK = 4096


@dataclass(frozen=True)
class InvocationPlan:
    """Concrete spawn parameters for one request.

    ``stdin_payload`` is None when the input travels as a command argument
    (the ``--youtube`` form); stdin is then not connected at all.
    """

    executable: str
    args: tuple[str, ...]
    stdin_payload: str | None
    timeout_seconds: float
    env: dict[str, str] = field(default_factory=dict, repr=False, compare=False)
    truncated: bool = False

    @property
    def command(self) -> list[str]:
        return [self.executable, *self.args]

    @property
    def uses_stdin(self) -> bool:
        return self.stdin_payload is not None


def truncate_payload(text: str, max_length: int) -> tuple[str, bool]:
    """Cut *text* to *max_length* characters and append the marker.

    Returns:
        (payload, truncated) — payload is *text* unchanged when it fits.
    """
    if len(text) <= max_length:
        return text, False
    return text[:max_length] + TRUNCATION_MARKER, True


def build_env(
    extra_paths: Iterable[str],
    executable: str | None = None,
    base: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """Inherited environment with extra install directories appended to PATH.

    The directory of *executable* is appended too, so companion tools that
    fabric shells out to can live next to it.
    """
    env = dict(os.environ if base is None else base)
    entries = [p for p in env.get("PATH", "").split(os.pathsep) if p]
    additions = [os.path.expanduser(p) for p in extra_paths]
    if executable and os.path.dirname(executable):
        additions.append(os.path.dirname(os.path.expanduser(executable)))
    for path in additions:
        if path and path not in entries:
            entries.append(path)
    env["PATH"] = os.pathsep.join(entries)
    return env


def resolve_executable(executable: str, env: Mapping[str, str]) -> str:
    """Resolve a bare command name against the PATH in *env*.

    Returns the name unchanged when it cannot be found; the spawn attempt
    then reports the missing executable.
    """
    expanded = os.path.expanduser(executable)
    if os.path.dirname(expanded):
        return expanded
    return shutil.which(expanded, path=env.get("PATH")) or expanded


def build_plan(
    request: AnalysisRequest,
    *,
    config: ServerConfig | None = None,
    log: EventLog | None = None,
) -> InvocationPlan:
    """Select argument shape and input delivery for *request*."""
    cfg = config or get_config()
    env = build_env(cfg.extra_paths, cfg.fabric_path)
    executable = resolve_executable(cfg.fabric_path, env)
    pattern = request.analysis_kind.value
    timeout_seconds = request.timeout_millis / 1000

    if request.content_kind is ContentKind.YOUTUBE:
        url = request.raw_input.strip()
        emit(log, "transcript", "requesting transcript for video %s", extract_video_id(url), source=logger)
        return InvocationPlan(
            executable=executable,
            args=("--youtube", url, "--transcript", "--pattern", pattern),
            stdin_payload=None,
            timeout_seconds=timeout_seconds,
            env=env,
        )

    payload, truncated = truncate_payload(request.raw_input, request.max_input_length)
    if truncated:
        emit(
            log,
            "truncate",
            "input truncated from %d to %d characters",
            len(request.raw_input),
            request.max_input_length,
            level=logging.WARNING,
            source=logger,
        )
    return InvocationPlan(
        executable=executable,
        args=("--pattern", pattern),
        stdin_payload=payload,
        timeout_seconds=timeout_seconds,
        env=env,
        truncated=truncated,
    )


async def _communicate(
    proc: asyncio.subprocess.Process,
    payload: str | None,
    stdout_buf: bytearray,
    stderr_buf: bytearray,
) -> int:
    """Feed stdin and drain both pipes into the buffers, then wait for exit."""

    async def feed() -> None:
        if payload is None or proc.stdin is None:
            return
        try:
            proc.stdin.write(payload.encode("utf-8"))
            await proc.stdin.drain()
        except (BrokenPipeError, ConnectionResetError):
            logger.debug("Process closed stdin before reading the full payload")
        finally:
            proc.stdin.close()

    async def pump(stream: asyncio.StreamReader | None, buf: bytearray) -> None:
        if stream is None:
            return
        while True:
            chunk = await stream.read(_READ_CHUNK)
            if not chunk:
                return
            buf.extend(chunk)

    await asyncio.gather(
        feed(),
        pump(proc.stdout, stdout_buf),
        pump(proc.stderr, stderr_buf),
    )
    return await proc.wait()


def _signal_group(proc: asyncio.subprocess.Process, sig: int) -> None:
    """Send *sig* to the process group led by *proc*, including helpers it forked."""
    try:
        if hasattr(os, "killpg"):
            os.killpg(proc.pid, sig)
        else:
            proc.send_signal(sig)
    except (ProcessLookupError, PermissionError):
        pass


async def _terminate(proc: asyncio.subprocess.Process, io_task: asyncio.Future) -> None:
    """Stop reading, then SIGTERM the process group and SIGKILL it if it lingers."""
    io_task.cancel()
    _signal_group(proc, signal.SIGTERM)
    try:
        await asyncio.wait_for(proc.wait(), timeout=SIGTERM_GRACE_SECONDS)
    except asyncio.TimeoutError:
        logger.warning("Process did not exit after SIGTERM, sending SIGKILL")
        _signal_group(proc, getattr(signal, "SIGKILL", signal.SIGTERM))
        await proc.wait()
    await asyncio.gather(io_task, return_exceptions=True)


def _decode(buf: bytearray) -> str:
    return bytes(buf).decode("utf-8", errors="replace")


async def invoke(
    plan: InvocationPlan,
    *,
    cancel_event: asyncio.Event | None = None,
    log: EventLog | None = None,
) -> RawResponse:
    """Run fabric once for *plan*.

    The process races three outcomes: normal exit, the plan's timeout, and
    *cancel_event* being set. Cancelling the awaiting task terminates the
    process as well and re-raises ``asyncio.CancelledError``.

    Returns:
        RawResponse with stdout, stderr, exit code and duration.

    Raises:
        SpawnError: The executable is missing or not invocable.
        InvocationTimeout: The deadline passed first.
        InvocationCancelled: *cancel_event* was set first.
        NonZeroExit: The process exited with a non-zero code.
        EmptyOutput: Exit code 0 but stdout was blank.
    """
    command = plan.command
    emit(
        log,
        "spawn",
        "%s (timeout=%.1fs, input via %s)",
        " ".join(command),
        plan.timeout_seconds,
        "stdin" if plan.uses_stdin else "arguments",
        source=logger,
    )
    start = time.monotonic()
    try:
        proc = await asyncio.create_subprocess_exec(
            *command,
            stdin=asyncio.subprocess.PIPE if plan.uses_stdin else asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=plan.env or None,
            start_new_session=True,
        )
    except OSError as exc:
        emit(log, "spawn", "failed to start %s: %s", plan.executable, exc, level=logging.ERROR, source=logger)
        raise SpawnError(f"Could not start {plan.executable}: {exc}", command=command) from exc

    stdout_buf = bytearray()
    stderr_buf = bytearray()
    io_task = asyncio.ensure_future(_communicate(proc, plan.stdin_payload, stdout_buf, stderr_buf))
    waiters: set[asyncio.Future] = {io_task}
    cancel_task = None
    if cancel_event is not None:
        cancel_task = asyncio.ensure_future(cancel_event.wait())
        waiters.add(cancel_task)

    def snapshot() -> RawResponse:
        return RawResponse(
            stdout=_decode(stdout_buf),
            stderr=_decode(stderr_buf),
            exit_code=proc.returncode,
            duration_millis=int((time.monotonic() - start) * 1000),
        )

    try:
        done, _ = await asyncio.wait(
            waiters, timeout=plan.timeout_seconds, return_when=asyncio.FIRST_COMPLETED
        )
    except asyncio.CancelledError:
        await _terminate(proc, io_task)
        emit(log, "cancel", "invocation task cancelled, process terminated", level=logging.WARNING, source=logger)
        raise
    finally:
        if cancel_task is not None:
            cancel_task.cancel()

    if io_task not in done:
        await _terminate(proc, io_task)
        response = snapshot()
        if cancel_task is not None and cancel_task in done:
            emit(
                log,
                "cancel",
                "cancelled after %dms, process terminated",
                response.duration_millis,
                level=logging.WARNING,
                source=logger,
            )
            raise InvocationCancelled(
                "Fabric command was cancelled", command=command, response=response
            )
        emit(
            log,
            "timeout",
            "no exit after %.1fs, process terminated",
            plan.timeout_seconds,
            level=logging.WARNING,
            source=logger,
        )
        raise InvocationTimeout(
            f"Fabric command timed out after {plan.timeout_seconds:g}s",
            command=command,
            response=response,
        )

    io_task.result()
    response = snapshot()
    emit(
        log,
        "exit",
        "exit code %s after %dms (stdout %d chars)",
        response.exit_code,
        response.duration_millis,
        len(response.stdout),
        source=logger,
    )
    if response.exit_code != 0:
        if response.stderr.strip():
            logger.error("fabric stderr: %s", response.stderr[:500])
        message = response.stderr.strip() or f"Process exited with code {response.exit_code}"
        raise NonZeroExit(message, command=command, response=response)
    if not response.stdout.strip():
        message = response.stderr.strip() or "Process exited with code 0 but produced no output"
        raise EmptyOutput(message, command=command, response=response)
    return response
