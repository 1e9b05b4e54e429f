"""
Command executor for external capture and probe tools.

Runs exactly one OS process per call and never leaves it running after the
call returns. Process failures are returned as values, not raised: a missing
binary is an ordinary outcome that callers handle through fallback data.
"""

import logging
import os
import shlex
import signal
import subprocess
import sys
import time
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from errors import CaptureTimeout, TelemetryError, ToolNotAvailable

logger = logging.getLogger(__name__)

IS_WINDOWS = sys.platform == 'win32'

# Seconds allowed for draining pipes after a timed-out process tree is killed
REAP_TIMEOUT = 2


def _process_group_kwargs():
    """Popen arguments that put the child in its own process group"""
    if IS_WINDOWS:
        return {'creationflags': subprocess.CREATE_NEW_PROCESS_GROUP}
    return {'start_new_session': True}


def _kill_process_tree(process):
    """
    Kill a process and every descendant it spawned.

    Capture tools fork helpers (tshark runs dumpcap) that inherit the
    output pipes, so killing only the direct child leaves the interface held
    and the pipes open.
    """
    try:
        if IS_WINDOWS:
            subprocess.run(
                ['taskkill', '/T', '/F', '/PID', str(process.pid)],
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                timeout=REAP_TIMEOUT,
            )
        else:
            os.killpg(process.pid, signal.SIGKILL)
    except (OSError, subprocess.SubprocessError) as e:
        logger.debug(f"Process tree kill failed for pid {process.pid}: {e}")
    # The direct child may outlive a failed group kill
    try:
        process.kill()
    except OSError as e:
        logger.debug(f"Process {process.pid} already gone: {e}")


def _reap(process):
    """Collect whatever output is left after a kill, without waiting on stray pipe holders"""
    try:
        return process.communicate(timeout=REAP_TIMEOUT)
    except subprocess.TimeoutExpired as e:
        logger.warning(f"Output pipes still open {REAP_TIMEOUT}s after kill, abandoning them")
        for stream in (process.stdout, process.stderr):
            if stream is not None:
                stream.close()
        return _decode(e.output), _decode(e.stderr)


def _decode(data):
    # TimeoutExpired carries raw bytes even for text-mode pipes
    if isinstance(data, bytes):
        return data.decode(errors='replace')
    return data or ''


class ExecErrorKind(Enum):
    TIMEOUT = 'timeout'
    TOOL_FAILURE = 'tool_failure'
    NOT_FOUND = 'not_found'


@dataclass(frozen=True)
class ExecError:
    kind: ExecErrorKind
    message: str
    stderr: str = ''
    returncode: Optional[int] = None

    def to_telemetry_error(self):
        """Map onto the telemetry error taxonomy"""
        if self.kind == ExecErrorKind.TIMEOUT:
            return CaptureTimeout(self.message)
        if self.kind == ExecErrorKind.NOT_FOUND:
            return ToolNotAvailable(self.message)
        return TelemetryError(self.message)


@dataclass(frozen=True)
class RawCommandResult:
    stdout: str = ''
    stderr: str = ''
    error: Optional[ExecError] = None
    elapsed: float = 0.0

    @property
    def ok(self):
        return self.error is None

    @property
    def timed_out(self):
        return self.error is not None and self.error.kind == ExecErrorKind.TIMEOUT

    @property
    def output(self):
        """Combined stdout and stderr; capture tools print their summary on stderr"""
        return self.stdout + self.stderr


class CommandExecutor:
    """Runs external commands with an enforced timeout"""

    def run(self, command, timeout):
        """
        Run one command and wait for it to exit.

        ``command`` is an argument list (a string is split with shlex) and
        ``timeout`` is in seconds. On timeout the process is killed and reaped
        before returning.
        """
        if isinstance(command, str):
            command = shlex.split(command)
        command = [str(part) for part in command]
        logger.debug(f"Executing command: {' '.join(command)} (timeout {timeout}s)")

        start_time = time.monotonic()
        try:
            process = subprocess.Popen(
                command,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                stdin=subprocess.DEVNULL,
                text=True,
                errors='replace',
                **_process_group_kwargs(),
            )
        except FileNotFoundError as e:
            logger.warning(f"Command not found: {command[0] if command else '<empty>'}")
            return RawCommandResult(error=ExecError(ExecErrorKind.NOT_FOUND, str(e)))
        except (PermissionError, OSError, ValueError) as e:
            logger.warning(f"Command could not be started: {e}")
            return RawCommandResult(error=ExecError(ExecErrorKind.TOOL_FAILURE, str(e)))

        try:
            stdout, stderr = process.communicate(timeout=timeout)
        except subprocess.TimeoutExpired:
            _kill_process_tree(process)
            stdout, stderr = _reap(process)
            elapsed = time.monotonic() - start_time
            logger.warning(f"Command timed out after {elapsed:.1f}s and was terminated: {command[0]}")
            return RawCommandResult(
                stdout=stdout or '',
                stderr=stderr or '',
                error=ExecError(ExecErrorKind.TIMEOUT, f"Command timed out after {timeout}s", stderr or ''),
                elapsed=elapsed,
            )

        elapsed = time.monotonic() - start_time
        stdout = stdout or ''
        stderr = stderr or ''

        if process.returncode != 0:
            logger.debug(f"Command exited with code {process.returncode}: {stderr.strip()[:200]}")
            return RawCommandResult(
                stdout=stdout,
                stderr=stderr,
                error=ExecError(
                    ExecErrorKind.TOOL_FAILURE,
                    f"Process exited with code {process.returncode}",
                    stderr,
                    process.returncode,
                ),
                elapsed=elapsed,
            )

        logger.debug(f"Command output received ({len(stdout) + len(stderr)} chars in {elapsed:.2f}s)")
        return RawCommandResult(stdout=stdout, stderr=stderr, elapsed=elapsed)
