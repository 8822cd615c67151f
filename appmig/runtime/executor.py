#!/usr/bin/env python3
# CUI // SP-CTI
"""External command execution for appmig.

Follows the provider pattern (ABC + implementations): the migration core only
sees ``CommandExecutor.execute(name, args)`` and never touches ``subprocess``
directly, so tests can swap in a recording fake.

Usage:
    from appmig.runtime.executor import SubprocessExecutor

    executor = SubprocessExecutor(timeout=120)
    stdout, stderr, ok = executor.execute("gcloud", ["app", "versions", "list"])
"""

import abc
import logging
import subprocess
from typing import NamedTuple, Optional, Sequence, TextIO

logger = logging.getLogger("appmig.runtime.executor")

DEFAULT_TIMEOUT_SECONDS = 300


class CommandResult(NamedTuple):
    """Captured output of one external command."""

    stdout: str
    stderr: str
    ok: bool


def format_command(name: str, args: Sequence[str]) -> str:
    """Render a command the way an operator would type it (no quoting)."""
    return " ".join([name, *args])


class CommandExecutor(abc.ABC):
    """Abstract executor for named external commands."""

    @abc.abstractmethod
    def execute(self, name: str, args: Sequence[str]) -> CommandResult:
        """Run *name* with *args*; return stdout, stderr and a success flag.

        Implementations must report process-level failures through
        ``ok=False`` and ``stderr`` rather than raising.
        """


class SubprocessExecutor(CommandExecutor):
    """Runs commands locally via ``subprocess.run``.

    Args:
        timeout: Seconds before a command is killed and reported as failed.
    """

    def __init__(self, timeout: int = DEFAULT_TIMEOUT_SECONDS):
        self.timeout = timeout

    def execute(self, name: str, args: Sequence[str]) -> CommandResult:
        cmd = [name, *args]
        logger.debug("exec: %s", format_command(name, args))
        try:
            proc = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                stdin=subprocess.DEVNULL,
            )
        except FileNotFoundError:
            return CommandResult("", f"{name} not found. Ensure {name} is installed and in PATH.\n", False)
        except OSError as exc:
            return CommandResult("", f"{name}: {exc}\n", False)
        except subprocess.TimeoutExpired:
            return CommandResult("", f"{name} timed out after {self.timeout}s\n", False)

        if proc.returncode != 0:
            logger.debug("exit %d from %s", proc.returncode, name)
        return CommandResult(proc.stdout, proc.stderr, proc.returncode == 0)


def execute_with_message(
    executor: CommandExecutor,
    name: str,
    args: Sequence[str],
    message: str,
    reporter=None,
    echo: Optional[TextIO] = None,
) -> CommandResult:
    """Run one command behind a progress line.

    Args:
        reporter: ProgressReporter to animate *message*; None runs silently.
        echo: When set (``--verbose``), the command line is written here first.
    """
    if echo is not None:
        echo.write(format_command(name, args) + "\n")
        echo.flush()
    if reporter is None:
        return executor.execute(name, args)
    with reporter.track(message):
        return executor.execute(name, args)
