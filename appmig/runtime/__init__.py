#!/usr/bin/env python3
# CUI // SP-CTI
"""appmig Runtime — external command execution and progress display."""

from appmig.runtime.executor import (  # noqa: F401
    CommandExecutor,
    CommandResult,
    SubprocessExecutor,
    execute_with_message,
    format_command,
)
from appmig.runtime.progress import ProgressReporter  # noqa: F401
