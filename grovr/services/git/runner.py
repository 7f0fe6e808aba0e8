"""Git command runner.

Every git invocation grovr makes goes through ``CommandRunner.run``. The runner
never interprets output: a non-zero exit is returned to the caller as a
normal ``CommandResult``. It raises only when git could not be started
(``LaunchFailure``) or was killed at its deadline (``CommandTimeout``).
"""

import asyncio
import functools
import os
import time
from concurrent.futures import ThreadPoolExecutor
from threading import Lock
from typing import Callable, Optional, Sequence, TypeVar

import git

from grovr.exceptions import CommandTimeout, GitCommandFailed, LaunchFailure
from grovr.logging_config import get_logger
from grovr.models.worktree import CommandResult
from grovr.utils.threading import get_optimal_worker_count

logger = get_logger(__name__)

T = TypeVar("T")

# GitPython replaces stderr with this text when its watchdog kills the process
TIMEOUT_MARKER = "Timeout: the command"


def _was_killed(status: int, stderr: str, elapsed: float, deadline: float) -> bool:
    if stderr.startswith(TIMEOUT_MARKER):
        return True
    # Negative status means a signal; only count it once the deadline has passed
    return status < 0 and elapsed >= deadline


class CommandRunner:
    """Runs git subprocesses, synchronously or on a dedicated background executor."""

    def __init__(
        self,
        git_executable: str = "git",
        timeout: Optional[float] = None,
        background_workers: Optional[int] = None,
    ):
        """Initialize the runner.

        Args:
            git_executable: Name or path of the git binary
            timeout: Default deadline in seconds for every invocation (None = no deadline)
            background_workers: Size of the background executor (None = auto-detect)
        """
        self.git_executable = git_executable
        self.timeout = timeout
        self.background_workers = get_optimal_worker_count(background_workers, cap=8)
        self._executor: Optional[ThreadPoolExecutor] = None
        self._executor_lock = Lock()

    @classmethod
    def from_config(cls, config) -> "CommandRunner":
        """Build a runner from a ``Config`` object or dict."""
        return cls(
            git_executable=config.get("git_executable", "git"),
            timeout=config.get("command_timeout"),
            background_workers=config.get("background_workers"),
        )

    def run(
        self,
        working_dir: str,
        args: Sequence[str],
        timeout: Optional[float] = None,
        operation: Optional[str] = None,
    ) -> CommandResult:
        """Run ``git <args>`` inside ``working_dir``.

        Args:
            working_dir: Directory to run git in
            args: Arguments after the executable name
            timeout: Deadline in seconds, overriding the runner default
            operation: Name used in error messages (defaults to the git subcommand)

        Returns:
            CommandResult with exit code, stdout and stderr

        Raises:
            LaunchFailure: git could not be started
            CommandTimeout: the deadline expired and git was killed
        """
        args = tuple(str(a) for a in args)
        operation = operation or (args[0] if args else "git")
        deadline = timeout if timeout is not None else self.timeout

        # GitPython silently falls back to the process cwd for a missing directory
        if not os.path.isdir(working_dir):
            raise LaunchFailure(operation, f"working directory does not exist: {working_dir}")

        logger.debug(f"Running git {' '.join(args)} in {working_dir}")
        started = time.monotonic()
        try:
            status, stdout, stderr = git.Git(working_dir).execute(
                [self.git_executable, *args],
                with_extended_output=True,
                with_exceptions=False,
                kill_after_timeout=deadline,
            )
        except git.exc.GitCommandNotFound as e:
            logger.error(f"Could not launch {self.git_executable}: {e}")
            raise LaunchFailure(operation, str(e)) from e
        except OSError as e:
            logger.error(f"Could not launch {self.git_executable}: {e}")
            raise LaunchFailure(operation, str(e)) from e

        elapsed = time.monotonic() - started
        if deadline is not None and _was_killed(status, stderr, elapsed, deadline):
            logger.warning(f"git {operation} killed after {elapsed:.1f}s in {working_dir}")
            raise CommandTimeout(operation, deadline)

        if status != 0:
            logger.debug(f"git {operation} exited {status}: {stderr.strip()}")

        return CommandResult(args=args, exit_code=status, stdout=stdout, stderr=stderr)

    def check(
        self,
        working_dir: str,
        args: Sequence[str],
        operation: str,
        timeout: Optional[float] = None,
        branch: Optional[str] = None,
    ) -> CommandResult:
        """Run git and raise ``GitCommandFailed`` on a non-zero exit."""
        result = self.run(working_dir, args, timeout=timeout, operation=operation)
        if not result.ok:
            raise GitCommandFailed(operation, result.stderr, result.exit_code, branch=branch)
        return result

    def _get_executor(self) -> ThreadPoolExecutor:
        with self._executor_lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self.background_workers, thread_name_prefix="grovr-git"
                )
            return self._executor

    async def offload(self, func: Callable[..., T], *args, **kwargs) -> T:
        """Run a blocking callable on the background executor and await its result.

        Long-running operations (fetch, pull, worktree add) go through here so an
        event loop driving a UI keeps serving interactive reads.
        """
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            self._get_executor(), functools.partial(func, *args, **kwargs)
        )

    async def run_async(
        self,
        working_dir: str,
        args: Sequence[str],
        timeout: Optional[float] = None,
        operation: Optional[str] = None,
    ) -> CommandResult:
        """Awaitable form of ``run`` executed on the background executor."""
        return await self.offload(self.run, working_dir, args, timeout=timeout, operation=operation)

    def close(self) -> None:
        """Shut down the background executor, waiting for running commands."""
        with self._executor_lock:
            if self._executor is not None:
                self._executor.shutdown(wait=True)
                self._executor = None

    def __enter__(self) -> "CommandRunner":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
