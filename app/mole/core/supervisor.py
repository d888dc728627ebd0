"""Wall-clock bounded execution of external commands.

The supervisor delegates to a native ``timeout`` utility when one is
on PATH (probed once per process) and otherwise enforces the bound
itself: the command runs in its own process group while a watchdog
timer signals that group once the bound elapses, escalating from
SIGTERM to SIGKILL after a grace period.
"""

import functools
import logging
import os
import shutil
import signal
import subprocess
import threading
import time
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

from mole.core.errors import SupervisorError, TimedOut
from mole.utils.shell import command_exists, run_command

logger = logging.getLogger(__name__)

# Reserved exit status for a timed-out command (matches coreutils timeout).
TIMEOUT_EXIT_CODE = 124

# Exit status reported for supervisor failures (coreutils: "timeout itself failed").
SUPERVISOR_ERROR_EXIT_CODE = 125

_KILLED_EXIT_CODE = 128 + signal.SIGKILL

_NATIVE_CANDIDATES: tuple[str, ...] = ("timeout", "gtimeout")

# Slack on top of seconds + grace before the native path gives up waiting.
_NATIVE_SLACK_SECONDS = 5.0

# Slack on top of seconds + grace before the watchdog path stops reading output.
_DRAIN_SLACK_SECONDS = 2.0


class OutcomeStatus(str, Enum):
    """Tri-state result of a supervised call.

    Attributes:
        COMPLETED: Command finished on its own; exit_code is its real status.
        TIMED_OUT: Wall-clock bound exceeded; the process group was signalled.
        SUPERVISOR_ERROR: The command or the bound could not be spawned.
    """

    COMPLETED = "completed"
    TIMED_OUT = "timed_out"
    SUPERVISOR_ERROR = "supervisor_error"


@dataclass(frozen=True, slots=True)
class TimeoutOutcome:
    """Result of ``TimeoutSupervisor.run_with_timeout``.

    Attributes:
        status: Completed, timed out, or supervisor error.
        exit_code: Real exit code when completed, TIMEOUT_EXIT_CODE when
            timed out, None on supervisor error.
        command: The supervised command.
        seconds: The wall-clock bound that applied.
        stdout: Captured standard output.
        stderr: Captured standard error.
        error: Error message for supervisor errors.
    """

    status: OutcomeStatus
    exit_code: int | None
    command: tuple[str, ...] = ()
    seconds: float = 0.0
    stdout: str = ""
    stderr: str = ""
    error: str | None = None

    @property
    def completed(self) -> bool:
        return self.status == OutcomeStatus.COMPLETED

    @property
    def timed_out(self) -> bool:
        return self.status == OutcomeStatus.TIMED_OUT

    @property
    def success(self) -> bool:
        """Check if the command completed with exit code 0."""
        return self.completed and self.exit_code == 0

    @property
    def exit_status(self) -> int:
        """Shell-style exit status (124 for timeouts, 125 for supervisor errors)."""
        if self.status == OutcomeStatus.TIMED_OUT:
            return TIMEOUT_EXIT_CODE
        if self.status == OutcomeStatus.SUPERVISOR_ERROR or self.exit_code is None:
            return SUPERVISOR_ERROR_EXIT_CODE
        return self.exit_code

    def raise_for_status(self) -> None:
        """Raise if the command did not complete.

        Raises:
            TimedOut: If the bound elapsed.
            SupervisorError: If the command could not be spawned.
        """
        if self.status == OutcomeStatus.TIMED_OUT:
            raise TimedOut(self.seconds, self.command)
        if self.status == OutcomeStatus.SUPERVISOR_ERROR:
            raise SupervisorError(self.error or "Supervisor error")


@functools.cache
def probe_native_timeout() -> str | None:
    """Locate a native timeout utility (probed once, then cached).

    Returns:
        Absolute path of ``timeout`` or ``gtimeout``, or None if neither exists.
    """
    for name in _NATIVE_CANDIDATES:
        found = shutil.which(name)
        if found:
            logger.debug("Using native timeout utility: %s", found)
            return found
    logger.debug("No native timeout utility found; using watchdog fallback")
    return None


class _Auto:
    """Sentinel type for "probe the native timeout utility"."""


AUTO = _Auto()


class TimeoutSupervisor:
    """Runs external commands under a wall-clock bound.

    Args:
        native: Path of a native timeout utility, None to force the
            watchdog fallback, or AUTO (default) to use the cached probe.
        kill_grace_seconds: Time between SIGTERM and SIGKILL.
    """

    def __init__(
        self,
        native: str | None | _Auto = AUTO,
        *,
        kill_grace_seconds: float = 2.0,
    ) -> None:
        self._native = probe_native_timeout() if isinstance(native, _Auto) else native
        self._grace = kill_grace_seconds

    @property
    def uses_native(self) -> bool:
        return self._native is not None

    def run_with_timeout(self, seconds: float, command: Sequence[str]) -> TimeoutOutcome:
        """Run a command, terminating it if it exceeds ``seconds``.

        Args:
            seconds: Wall-clock bound in seconds (must be positive).
            command: Command and arguments.

        Returns:
            TimeoutOutcome describing how the command ended.

        Raises:
            ValueError: If seconds is not positive.
        """
        if seconds <= 0:
            msg = f"Timeout must be positive, got {seconds}"
            raise ValueError(msg)

        args = tuple(command)
        if not args:
            return self._error(args, seconds, "Empty command")
        if not command_exists(args[0]):
            return self._error(args, seconds, f"Command not found: {args[0]}")

        if self._native is not None:
            return self._run_native(seconds, args)
        return self._run_watchdog(seconds, args)

    def _run_native(self, seconds: float, args: tuple[str, ...]) -> TimeoutOutcome:
        """Delegate the bound to the native timeout utility."""
        native_args = [self._native, "-k", f"{self._grace}s", f"{seconds}s", *args]
        start = time.monotonic()
        try:
            proc = run_command(
                native_args,
                timeout=seconds + self._grace + _NATIVE_SLACK_SECONDS,
            )
        except subprocess.TimeoutExpired:
            return self._timed_out(args, seconds)
        except OSError as e:
            return self._error(args, seconds, str(e))

        elapsed = time.monotonic() - start
        rc = proc.returncode

        if rc == TIMEOUT_EXIT_CODE or (rc == _KILLED_EXIT_CODE and elapsed >= seconds):
            return self._timed_out(args, seconds, proc.stdout, proc.stderr)
        if rc == SUPERVISOR_ERROR_EXIT_CODE:
            return self._error(args, seconds, proc.stderr.strip() or "timeout utility failed")

        return TimeoutOutcome(
            status=OutcomeStatus.COMPLETED,
            exit_code=rc,
            command=args,
            seconds=seconds,
            stdout=proc.stdout,
            stderr=proc.stderr,
        )

    def _run_watchdog(self, seconds: float, args: tuple[str, ...]) -> TimeoutOutcome:
        """Enforce the bound with a watchdog timer racing the command."""
        try:
            proc = subprocess.Popen(
                args,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                start_new_session=True,
            )
        except OSError as e:
            return self._error(args, seconds, str(e))

        fired = threading.Event()
        pgid = proc.pid

        def _watchdog() -> None:
            # Probe the group, not the leader; members may outlive it holding the pipes
            if not _group_alive(pgid):
                return
            fired.set()
            _signal_group(pgid, signal.SIGTERM)
            deadline = time.monotonic() + self._grace
            while time.monotonic() < deadline and _group_alive(pgid):
                time.sleep(0.05)
            _signal_group(pgid, signal.SIGKILL)

        timer = threading.Timer(seconds, _watchdog)
        timer.daemon = True
        timer.start()
        try:
            stdout, stderr = proc.communicate(
                timeout=seconds + self._grace + _DRAIN_SLACK_SECONDS
            )
        except subprocess.TimeoutExpired:
            fired.set()
            _signal_group(pgid, signal.SIGKILL)
            stdout, stderr = _drain(proc)
        finally:
            timer.cancel()

        if fired.is_set():
            return self._timed_out(args, seconds, stdout, stderr)

        return TimeoutOutcome(
            status=OutcomeStatus.COMPLETED,
            exit_code=proc.returncode,
            command=args,
            seconds=seconds,
            stdout=stdout,
            stderr=stderr,
        )

    @staticmethod
    def _timed_out(
        args: tuple[str, ...],
        seconds: float,
        stdout: str = "",
        stderr: str = "",
    ) -> TimeoutOutcome:
        logger.warning("Timed out after %ss: %s", seconds, " ".join(args))
        return TimeoutOutcome(
            status=OutcomeStatus.TIMED_OUT,
            exit_code=TIMEOUT_EXIT_CODE,
            command=args,
            seconds=seconds,
            stdout=stdout,
            stderr=stderr,
        )

    @staticmethod
    def _error(args: tuple[str, ...], seconds: float, message: str) -> TimeoutOutcome:
        logger.warning("Supervisor error: %s", message)
        return TimeoutOutcome(
            status=OutcomeStatus.SUPERVISOR_ERROR,
            exit_code=None,
            command=args,
            seconds=seconds,
            error=message,
        )


def _group_alive(pgid: int) -> bool:
    """Check if any process (zombies included) remains in a process group."""
    try:
        os.killpg(pgid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    return True


def _drain(proc: subprocess.Popen[str]) -> tuple[str, str]:
    """Collect remaining output after SIGKILL, giving up on escaped pipe holders."""
    try:
        return proc.communicate(timeout=_DRAIN_SLACK_SECONDS)
    except subprocess.TimeoutExpired:
        logger.warning("Output pipes of pid %d still held after SIGKILL; abandoning", proc.pid)
        proc.kill()
        for stream in (proc.stdout, proc.stderr):
            if stream is not None:
                stream.close()
        proc.wait()
        return "", ""


def _signal_group(pgid: int, sig: signal.Signals) -> None:
    """Send a signal to a process group, ignoring groups that already exited."""
    try:
        os.killpg(pgid, sig)
    except ProcessLookupError:
        pass
    except PermissionError:
        logger.warning("Not permitted to signal process group %d", pgid)
