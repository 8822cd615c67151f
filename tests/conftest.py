#!/usr/bin/env python3
# CUI // SP-CTI
"""Shared pytest fixtures for the appmig test suite.

Project-root conftest.py centralizes the fake command executors and the
settings/console fixtures every migration test needs, so no test ever shells
out to a real ``gcloud``.
"""

import io
import json
import sys
from pathlib import Path

import pytest

# Ensure project root is on sys.path
BASE_DIR = Path(__file__).resolve().parent.parent
if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))

from appmig.runtime.executor import CommandExecutor, CommandResult, format_command  # noqa: E402
from appmig.runtime.progress import ProgressReporter  # noqa: E402
from appmig.traffic.config import MigrationSettings  # noqa: E402


# ---------------------------------------------------------------------------
# Fake executors
# ---------------------------------------------------------------------------
class RecordingExecutor(CommandExecutor):
    """Records every command line; replies from a scripted queue.

    Once the queue is exhausted every command succeeds with empty output.
    """

    def __init__(self, responses=None):
        self.commands = []
        self.responses = list(responses or [])

    def execute(self, name, args):
        self.commands.append(format_command(name, args))
        if self.responses:
            return self.responses.pop(0)
        return CommandResult("", "", True)

    @property
    def mutations(self):
        return [c for c in self.commands if " set-traffic " in c]


def ok(stdout: str = "") -> CommandResult:
    return CommandResult(stdout, "", True)


def fail(stderr: str) -> CommandResult:
    return CommandResult("", stderr, False)


def serving_json(*versions) -> str:
    """``serving_json(("v1", 0.9), ("v2", 0.1))`` -> gcloud list JSON."""
    return json.dumps([{"id": v, "traffic_split": f} for v, f in versions])


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
@pytest.fixture
def settings():
    """Non-interactive settings for project ``myproject`` / service ``myservice``."""
    return MigrationSettings(
        project="myproject",
        service="myservice",
        interval_seconds=0,
        auto_confirm=True,
    )


@pytest.fixture
def console():
    return io.StringIO()


@pytest.fixture
def silent_reporter(console):
    """ProgressReporter that never starts a spinner thread."""
    return ProgressReporter(stream=console, enabled=False)


@pytest.fixture
def executor():
    return RecordingExecutor()
