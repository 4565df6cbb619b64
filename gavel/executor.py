"""Subprocess-based case executor with enforced time and memory limits.

The child runs in its own session so that it and everything it forks can be
killed as one process group. Limits are enforced twice: by rlimits set in the
child before exec (address space, CPU seconds, output file size) and by a
supervising poll loop in the parent that watches wall-clock time and the
resident set size of the whole process tree.

Peak memory comes from the poll loop only. ``ru_maxrss`` from ``wait4`` is not
used: a child forked from the judge keeps the judge's pre-exec high-water mark.
"""

from __future__ import annotations

import contextlib
import math
import os
import resource
import signal
import subprocess
import time
from dataclasses import dataclass, replace
from pathlib import Path

import psutil

from gavel.errors import EnvironmentFailure
from gavel.models import CompiledArtifact, ExecutionOutcome, OutcomeKind

_CHILD_ENV = {"PATH": "/usr/bin:/bin:/usr/local/bin"}

# stderr fragments printed by common runtimes when an allocation fails under RLIMIT_AS
ALLOCATION_FAILURE_MARKERS = (
    "std::bad_alloc",
    "Cannot allocate memory",
    "out of memory",
    "MemoryError",
)

OUTPUT_LIMIT_DETAIL = "output limit exceeded"

_STDERR_TAIL_BYTES = 2000


@dataclass(frozen=True)
class SandboxLimits:
    """Limits that do not vary per submission."""

    memory_headroom_kb: int = 16 * 1024  # address space allowed above the memory limit
    output_limit_kb: int = 64 * 1024
    poll_interval_ms: int = 5
    # address space for re-running a crashed case; 0 disables the re-run
    recheck_address_space_kb: int = 4 * 1024 * 1024
    run_as_uid: int | None = None
    run_as_gid: int | None = None


class LocalExecutor:
    """Runs compiled artifacts on this host."""

    def __init__(self, limits: SandboxLimits | None = None) -> None:
        self.limits = limits or SandboxLimits()

    def run_case(
        self,
        artifact: CompiledArtifact,
        input_path: Path,
        output_path: Path,
        time_limit_ms: int,
        memory_limit_kb: int,
        stderr_path: Path | None = None,
    ) -> ExecutionOutcome:
        return run_case(
            artifact,
            input_path,
            output_path,
            time_limit_ms,
            memory_limit_kb,
            limits=self.limits,
            stderr_path=stderr_path,
        )


def run_case(
    artifact: CompiledArtifact,
    input_path: Path,
    output_path: Path,
    time_limit_ms: int,
    memory_limit_kb: int,
    limits: SandboxLimits | None = None,
    stderr_path: Path | None = None,
) -> ExecutionOutcome:
    """Run *artifact* once with *input_path* on stdin and stdout into *output_path*.

    Returns exactly one outcome. Raises EnvironmentFailure when the child
    cannot be started at all (missing artifact, unreadable input, ...).

    An allocation refused by the address-space ceiling usually surfaces as a
    crash somewhere else (a NULL dereference, an abort). A crashed case is
    therefore run once more under a much larger ceiling, with the RSS monitor
    still enforcing the limit; if the crash goes away the ceiling caused it and
    the outcome is MEMORY_LIMIT.
    """
    limits = limits or SandboxLimits()
    output_path = Path(output_path)
    stderr_path = Path(stderr_path) if stderr_path else output_path.with_suffix(".err")
    address_space_kb = memory_limit_kb + limits.memory_headroom_kb

    outcome = _execute(
        artifact, input_path, output_path, stderr_path,
        time_limit_ms, memory_limit_kb, address_space_kb, limits,
    )
    if (
        outcome.kind is not OutcomeKind.RUNTIME_ERROR
        or outcome.detail == OUTPUT_LIMIT_DETAIL
        or limits.recheck_address_space_kb <= address_space_kb
    ):
        return outcome

    recheck = _execute(
        artifact, input_path, _recheck_path(output_path), _recheck_path(stderr_path),
        time_limit_ms, memory_limit_kb, limits.recheck_address_space_kb, limits,
    )
    if recheck.kind in (OutcomeKind.COMPLETED, OutcomeKind.MEMORY_LIMIT):
        return replace(
            outcome,
            kind=OutcomeKind.MEMORY_LIMIT,
            peak_memory_kb=max(outcome.peak_memory_kb, recheck.peak_memory_kb),
            detail="",
        )
    return outcome


def _recheck_path(path: Path) -> Path:
    return path.with_name(f"{path.stem}.recheck{path.suffix}")


def _execute(
    artifact: CompiledArtifact,
    input_path: Path,
    output_path: Path,
    stderr_path: Path,
    time_limit_ms: int,
    memory_limit_kb: int,
    address_space_kb: int,
    limits: SandboxLimits,
) -> ExecutionOutcome:
    preexec = _child_setup(time_limit_ms, address_space_kb, limits)

    try:
        with open(input_path, "rb") as fin, open(output_path, "wb") as fout, \
                open(stderr_path, "wb") as ferr:
            started = time.perf_counter()
            proc = subprocess.Popen(
                [str(artifact.path)],
                stdin=fin,
                stdout=fout,
                stderr=ferr,
                cwd=str(artifact.path.parent),
                env=_CHILD_ENV,
                close_fds=True,
                start_new_session=True,
                preexec_fn=preexec,
            )
    except (OSError, subprocess.SubprocessError) as e:
        raise EnvironmentFailure(f"cannot start {artifact.path}: {e}") from e

    try:
        status, killed_for, peak_kb = _supervise(
            proc, started, time_limit_ms, memory_limit_kb, limits.poll_interval_ms / 1000.0
        )
    finally:
        # Descendants share the child's process group; none may outlive the case.
        _kill_group(proc.pid)

    elapsed_ms = int((time.perf_counter() - started) * 1000)
    returncode = os.waitstatus_to_exitcode(status)
    proc.returncode = returncode

    def outcome(kind: OutcomeKind, detail: str = "") -> ExecutionOutcome:
        return ExecutionOutcome(
            kind=kind,
            elapsed_ms=elapsed_ms,
            peak_memory_kb=peak_kb,
            exit_code=returncode,
            output_path=output_path,
            detail=detail,
        )

    if killed_for is not None:
        return outcome(killed_for)

    signum = -returncode if returncode < 0 else None
    if signum == signal.SIGXCPU:
        return outcome(OutcomeKind.TIME_LIMIT)

    if returncode != 0:
        if signum == signal.SIGXFSZ:
            return outcome(OutcomeKind.RUNTIME_ERROR, OUTPUT_LIMIT_DETAIL)
        stderr_tail = _read_tail(stderr_path)
        if (
            signum == signal.SIGKILL
            or peak_kb >= memory_limit_kb
            or any(marker in stderr_tail for marker in ALLOCATION_FAILURE_MARKERS)
        ):
            return outcome(OutcomeKind.MEMORY_LIMIT)
        if elapsed_ms > time_limit_ms:
            return outcome(OutcomeKind.TIME_LIMIT)
        return outcome(OutcomeKind.RUNTIME_ERROR, _describe_failure(returncode, stderr_tail))

    if peak_kb > memory_limit_kb:
        return outcome(OutcomeKind.MEMORY_LIMIT)
    if elapsed_ms > time_limit_ms:
        return outcome(OutcomeKind.TIME_LIMIT)
    return outcome(OutcomeKind.COMPLETED)


def _supervise(
    proc: subprocess.Popen,
    started: float,
    time_limit_ms: int,
    memory_limit_kb: int,
    interval: float,
) -> tuple[int, OutcomeKind | None, int]:
    """Poll the child until it exits, killing it on a limit violation.

    Returns (wait status, limit that triggered the kill, peak memory in KB).
    The peak is the larger of the tree's summed RSS and the child's own VmHWM,
    so a spike between two polls is still seen while the child is alive.
    """
    try:
        watched: psutil.Process | None = psutil.Process(proc.pid)
    except psutil.NoSuchProcess:
        watched = None

    peak_kb = 0
    killed_for: OutcomeKind | None = None
    while True:
        pid, status = os.waitpid(proc.pid, os.WNOHANG)
        if pid:
            return status, killed_for, peak_kb

        peak_kb = max(peak_kb, _tree_rss_kb(watched), _read_hwm_kb(proc.pid))
        elapsed_ms = (time.perf_counter() - started) * 1000
        if peak_kb > memory_limit_kb:
            killed_for = OutcomeKind.MEMORY_LIMIT
        elif elapsed_ms >= time_limit_ms:
            killed_for = OutcomeKind.TIME_LIMIT

        if killed_for is not None:
            _kill_group(proc.pid)
            _, status = os.waitpid(proc.pid, 0)
            return status, killed_for, peak_kb

        time.sleep(interval)


def _tree_rss_kb(watched: psutil.Process | None) -> int:
    if watched is None:
        return 0
    total = 0
    try:
        members = [watched, *watched.children(recursive=True)]
    except psutil.Error:
        return 0
    for member in members:
        with contextlib.suppress(psutil.Error):
            total += member.memory_info().rss
    return total // 1024


def _read_hwm_kb(pid: int) -> int:
    """Resident high-water mark of the current image, 0 when unavailable."""
    with contextlib.suppress(OSError, ValueError, IndexError):
        with open(f"/proc/{pid}/status") as f:
            for line in f:
                if line.startswith("VmHWM:"):
                    return int(line.split()[1])
    return 0


def _kill_group(pgid: int) -> None:
    with contextlib.suppress(ProcessLookupError, PermissionError):
        os.killpg(pgid, signal.SIGKILL)


def _child_setup(time_limit_ms: int, address_space_kb: int, limits: SandboxLimits):
    """Build the preexec hook; limit values are computed before fork."""
    cpu_seconds = math.ceil(time_limit_ms / 1000) + 1
    address_space = address_space_kb * 1024
    output_bytes = limits.output_limit_kb * 1024
    rlimits = [
        # hard CPU limit one second later so SIGXCPU arrives before the kernel's SIGKILL
        (resource.RLIMIT_CPU, _clamp(resource.RLIMIT_CPU, cpu_seconds, cpu_seconds + 1)),
        (resource.RLIMIT_AS, _clamp(resource.RLIMIT_AS, address_space, address_space)),
        (resource.RLIMIT_FSIZE, _clamp(resource.RLIMIT_FSIZE, output_bytes, output_bytes)),
        (resource.RLIMIT_CORE, (0, 0)),
    ]
    drop_to = None
    if limits.run_as_uid is not None and os.geteuid() == 0:
        gid = limits.run_as_gid if limits.run_as_gid is not None else limits.run_as_uid
        drop_to = (limits.run_as_uid, gid)

    def preexec() -> None:
        for which, pair in rlimits:
            resource.setrlimit(which, pair)
        if drop_to is not None:
            uid, gid = drop_to
            os.setgroups([])
            os.setgid(gid)
            os.setuid(uid)

    return preexec


def _clamp(which: int, soft: int, hard: int) -> tuple[int, int]:
    """Never ask for more than the judge's own hard limit."""
    _, current_hard = resource.getrlimit(which)
    if current_hard == resource.RLIM_INFINITY:
        return soft, hard
    return min(soft, current_hard), min(hard, current_hard)


def _read_tail(path: Path) -> str:
    try:
        with open(path, "rb") as f:
            f.seek(0, os.SEEK_END)
            size = f.tell()
            f.seek(max(0, size - _STDERR_TAIL_BYTES))
            return f.read().decode("utf-8", errors="replace")
    except OSError:
        return ""


def _describe_failure(returncode: int, stderr_tail: str) -> str:
    if returncode < 0:
        try:
            name = signal.Signals(-returncode).name
        except ValueError:
            name = str(-returncode)
        message = f"killed by signal {name}"
    else:
        message = f"exit code {returncode}"
    stderr_tail = stderr_tail.strip()
    if stderr_tail:
        message += f"\n{stderr_tail}"
    return message
