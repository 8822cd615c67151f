#!/usr/bin/env python3
# CUI // SP-CTI
"""Revision resolution — which two revisions does this migration move between?

Reads live platform state (never mutates it) and reduces the serving set to a
``(current, target)`` pair, or raises the MigrationError that explains why
migration cannot start.

Resolution table (``n`` = number of serving revisions):

    n == 0                         -> NoServingVersionError
    n == 1, it is the target       -> AlreadyServingError (benign)
    n == 1, it is not the target   -> current = it, target = (target, 0.0)
    n == 2, one is the target      -> current = the other, target keeps its fraction
    n == 2, neither is the target  -> AmbiguousServingStateError
    n  > 2                         -> AmbiguousServingStateError
"""

import json
import logging
from typing import Dict, Optional, TextIO

from appmig.resilience.errors import (
    AlreadyServingError,
    AmbiguousServingStateError,
    NoServingVersionError,
    ParseFailureError,
    QueryFailureError,
    RevisionNotFoundError,
)
from appmig.runtime.executor import CommandExecutor, CommandResult, execute_with_message
from appmig.traffic import commands
from appmig.traffic.models import MigrationContext, RevisionState

logger = logging.getLogger("appmig.traffic.resolver")


def parse_serving_versions(stdout: str) -> Dict[str, float]:
    """Parse ``--format=json`` list output into ``{id: traffic_fraction}``.

    Platform order is preserved.
    """
    try:
        data = json.loads(stdout)
    except json.JSONDecodeError as exc:
        raise ParseFailureError(str(exc), raw=stdout) from exc

    if not isinstance(data, list):
        raise ParseFailureError(f"expected a JSON array, got {type(data).__name__}", raw=stdout)

    serving: Dict[str, float] = {}
    for i, entry in enumerate(data):
        if not isinstance(entry, dict):
            raise ParseFailureError(f"entry {i} is not an object", raw=stdout)
        rev_id = entry.get("id")
        fraction = entry.get("traffic_split")
        if not isinstance(rev_id, str) or not rev_id:
            raise ParseFailureError(f"entry {i} has no id", raw=stdout)
        if isinstance(fraction, bool) or not isinstance(fraction, (int, float)):
            raise ParseFailureError(f"entry {i} ({rev_id}) has no numeric traffic_split", raw=stdout)
        if not 0.0 <= fraction <= 1.0:
            raise ParseFailureError(f"traffic_split {fraction} of {rev_id} is outside [0, 1]", raw=stdout)
        if rev_id in serving:
            raise ParseFailureError(f"version {rev_id} listed twice", raw=stdout)
        serving[rev_id] = float(fraction)
    return serving


def format_serving(serving: Dict[str, float]) -> str:
    """``v1(90%), v2(10%)`` summary of a serving map."""
    return ", ".join(str(RevisionState(rev_id, fraction)) for rev_id, fraction in serving.items())


class RevisionResolver:
    """Queries the platform and derives the migration pair.

    Args:
        executor: CommandExecutor used for the read-only queries.
        settings: MigrationSettings (project, service, platform binary).
        reporter: Optional ProgressReporter wrapping each query.
        echo: Stream for ``--verbose`` command echo, or None.
    """

    def __init__(self, executor: CommandExecutor, settings, reporter=None, echo: Optional[TextIO] = None):
        self.executor = executor
        self.settings = settings
        self.reporter = reporter
        self.echo = echo

    def _execute(self, message: str, args) -> CommandResult:
        return execute_with_message(
            self.executor,
            self.settings.platform_binary,
            args,
            message,
            reporter=self.reporter,
            echo=self.echo,
        )

    def check_existence(self, target_id: str) -> None:
        """Raise RevisionNotFoundError unless *target_id* can be described."""
        args = commands.describe_version_args(self.settings.project, self.settings.service, target_id)
        _, stderr, ok = self._execute(f"Checking existence of version {target_id}... ", args)
        if not ok:
            logger.debug("describe %s failed: %s", target_id, stderr.strip())
            raise RevisionNotFoundError(target_id, detail=stderr)

    def list_serving_revisions(self) -> Dict[str, float]:
        """Return ``{id: fraction}`` for every active revision with traffic > 0."""
        args = commands.list_serving_versions_args(self.settings.project, self.settings.service)
        stdout, stderr, ok = self._execute("Checking current serving version... ", args)
        if not ok:
            raise QueryFailureError(stderr)
        serving = parse_serving_versions(stdout)
        logger.debug("serving versions: %s", serving)
        return serving

    def resolve(self, target_id: str, serving: Optional[Dict[str, float]] = None) -> MigrationContext:
        """Derive the (current, target) pair; queries the platform if *serving* is None."""
        if serving is None:
            serving = self.list_serving_revisions()

        if not serving:
            raise NoServingVersionError()
        if len(serving) > 2:
            raise AmbiguousServingStateError(list(serving))

        if len(serving) == 1:
            (only_id, only_fraction), = serving.items()
            if only_id == target_id:
                raise AlreadyServingError(target_id)
            current = RevisionState(only_id, only_fraction)
            target = RevisionState(target_id, 0.0)
        else:
            if target_id not in serving:
                raise AmbiguousServingStateError(list(serving))
            current_id = next(rev_id for rev_id in serving if rev_id != target_id)
            current = RevisionState(current_id, serving[current_id])
            target = RevisionState(target_id, serving[target_id])

        logger.debug("resolved current=%s target=%s", current, target)
        return MigrationContext(current=current, target=target, settings=self.settings)
