"""Run a shell command as a child process and poll it until exit or timeout."""

import contextlib
from dataclasses import dataclass
import logging
import subprocess
import tempfile
import time
from typing import IO, Optional

import psutil

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_SECONDS = 1.0
DEFAULT_TIMEOUT_MINUTES = 10.0
DETACHED_GRACE_PERIOD_SECONDS = 5.0
DETACHED_MESSAGE = (
    "Process is still running in the background; "
    "its output and exit code will not be collected."
)

# POSIX shells exit with these when the command could not be executed
SHELL_LAUNCH_FAILURE_CODES = (126, 127)


@dataclass
class ProcessResult:
    """Outcome of an invocation that reached the completed or detached state."""
    exit_code: str
    stdout: str
    stderr: Optional[str]

    @property
    def succeeded(self) -> bool:
        """Whether the process reported success."""
        return self.exit_code == "0"


def _read_capture(capture: IO[bytes]) -> str:
    capture.seek(0)
    return capture.read().decode('utf-8', errors='replace')


def _inspect(pid: int) -> Optional[psutil.Process]:
    """Attach psutil to a freshly launched child.

    The first cpu_percent() call only sets the baseline, so it is made here
    and every later call measures the time since the previous one.

    Args:
        pid: Process ID of the child

    Returns:
        psutil process handle, or None if the child cannot be inspected
    """
    try:
        proc = psutil.Process(pid)
        proc.cpu_percent()
    except (psutil.NoSuchProcess, psutil.AccessDenied):
        return None
    return proc


def _describe_process(proc: Optional[psutil.Process]) -> str:
    """Summarise a running child's resource usage for progress lines.

    Args:
        proc: psutil handle created at launch, if any

    Returns:
        Human readable CPU and memory figures, or an empty string if the
        process cannot be inspected
    """
    if proc is None:
        return ""
    try:
        with proc.oneshot():
            cpu_percent = proc.cpu_percent()
            rss = proc.memory_info().rss
    except (psutil.NoSuchProcess, psutil.AccessDenied):
        return ""
    return f" (CPU: {cpu_percent:.1f}%, Memory: {rss / (1024 * 1024):.1f} MB)"


def _wait_for_exit(process: subprocess.Popen, poll_interval: float,
                   limit_seconds: float,
                   proc: Optional[psutil.Process] = None) -> Optional[int]:
    """Poll a process until it exits or the time limit is reached.

    Args:
        process: Process to poll
        poll_interval: Seconds to sleep between checks
        limit_seconds: Total seconds to wait
        proc: psutil handle of the same process for progress lines

    Returns:
        Process return code, or None if it was still running at the limit
    """
    started = time.monotonic()
    while True:
        elapsed = time.monotonic() - started
        if elapsed >= limit_seconds:
            return process.poll()
        time.sleep(min(poll_interval, limit_seconds - elapsed))
        return_code = process.poll()
        if return_code is not None:
            return return_code
        logger.info(
            "Waiting for process %d: %d seconds elapsed%s", process.pid,
            time.monotonic() - started, _describe_process(proc)
        )


def _completed(command: str, return_code: int, stdout: IO[bytes],
               stderr: IO[bytes]) -> Optional[ProcessResult]:
    result = ProcessResult(
        exit_code=str(return_code),
        stdout=_read_capture(stdout),
        stderr=_read_capture(stderr)
    )
    if return_code in SHELL_LAUNCH_FAILURE_CODES:
        logger.error(
            "Failed to launch command: %s\nStderr:\n%s", command,
            result.stderr or "<no output>"
        )
        return None
    logger.info("Process exited with code %s: %s", result.exit_code, command)
    return result


def run(
    command: str,
    working_directory: str,
    wait_for_completion: bool = True,
    poll_interval_seconds: Optional[float] = None,
    timeout_minutes: Optional[float] = None,
    *,
    grace_period_seconds: float = DETACHED_GRACE_PERIOD_SECONDS
) -> Optional[ProcessResult]:
    """Run a shell command and collect its exit code and output.

    Launch failures and timeouts are logged and reported as None; a non-zero
    exit code is returned like any other. The child is never killed, so a
    timed out process keeps running after this returns.

    Args:
        command: Shell command line
        working_directory: Current directory for the child
        wait_for_completion: If False, wait only for the grace period and
            report a still-running process as detached
        poll_interval_seconds: Seconds between exit checks, default 1
        timeout_minutes: Minutes to wait before giving up, default 10
        grace_period_seconds: Seconds to wait in detached mode

    Returns:
        ProcessResult if the process exited or was detached, None otherwise
    """
    if poll_interval_seconds is None:
        poll_interval_seconds = DEFAULT_POLL_INTERVAL_SECONDS
    if timeout_minutes is None:
        timeout_minutes = DEFAULT_TIMEOUT_MINUTES

    if not command or not command.strip():
        logger.error("Failed to launch command: command is empty")
        return None

    logger.info("Running in %s: %s", working_directory, command)

    with contextlib.ExitStack() as captures:
        try:
            stdout = captures.enter_context(tempfile.TemporaryFile())
            stderr = captures.enter_context(tempfile.TemporaryFile())
        except OSError as e:
            logger.error(
                "Failed to create output capture for command %s: %s", command, e
            )
            return None

        try:
            # pylint: disable=consider-using-with
            process = subprocess.Popen(
                command,
                stdin=subprocess.DEVNULL,
                stdout=stdout,
                stderr=stderr,
                cwd=working_directory,
                shell=True,
                close_fds=True
            )
        except (OSError, subprocess.SubprocessError, ValueError) as e:
            logger.error("Failed to launch command %s: %s", command, e)
            return None
        proc = _inspect(process.pid)

        if not wait_for_completion:
            return_code = _wait_for_exit(
                process, poll_interval_seconds, grace_period_seconds, proc
            )
            if return_code is None:
                logger.info(
                    "Process %d still running after %.0f seconds, "
                    "continuing in background: %s", process.pid,
                    grace_period_seconds, command
                )
                return ProcessResult(
                    exit_code="0", stdout=DETACHED_MESSAGE, stderr=None
                )
            return _completed(command, return_code, stdout, stderr)

        return_code = _wait_for_exit(
            process, poll_interval_seconds, timeout_minutes * 60, proc
        )
        if return_code is None:
            logger.error(
                "Timed out after %s minutes waiting for process %d, "
                "leaving it running: %s", timeout_minutes, process.pid, command
            )
            return None
        return _completed(command, return_code, stdout, stderr)
