#!/usr/bin/env python3
# CUI // SP-CTI
"""appmig Resilience — Structured Exception Hierarchy.

Every failure the migration core can surface is one of these. The CLI maps
them to exit codes: ``benign`` errors exit 0, everything else exits 1.

Usage:
    from appmig.resilience.errors import StepExecutionError

    raise StepExecutionError(stderr, fraction=0.5, step=2)
"""

from typing import Optional


class AppmigError(Exception):
    """Base exception for all appmig errors.

    Attributes:
        service: Name of the collaborator that caused the error (e.g. "gcloud").
        retryable: Whether re-running the operation may succeed.
    """

    benign = False

    def __init__(self, message: str, service: str = "", retryable: bool = False):
        super().__init__(message)
        self.service = service
        self.retryable = retryable


class AppmigPermanentError(AppmigError):
    """Permanent error — retrying the same call will not help."""

    def __init__(self, message: str, service: str = "", retryable: bool = False):
        super().__init__(message, service=service, retryable=retryable)


class ConfigurationError(AppmigPermanentError):
    """Configuration error — missing or invalid configuration."""

    def __init__(self, message: str, config_key: str = ""):
        super().__init__(message, service="config", retryable=False)
        self.config_key = config_key


class InvalidRateError(AppmigPermanentError):
    """The requested rate list could not be parsed or is out of range."""

    def __init__(self, message: str, value: str = ""):
        super().__init__(message, service="cli")
        self.value = value


# ---------------------------------------------------------------------------
# Migration errors
# ---------------------------------------------------------------------------
class MigrationError(AppmigPermanentError):
    """Base for failures raised while resolving or executing a migration.

    ``detail`` keeps the raw platform error text, when there is one.
    """

    def __init__(self, message: str, detail: str = "", service: str = "platform"):
        super().__init__(message, service=service)
        self.detail = detail


class RevisionNotFoundError(MigrationError):
    """The target revision does not exist (or could not be described)."""

    def __init__(self, revision_id: str, detail: str = ""):
        message = detail.strip() or f"Version {revision_id} not found"
        super().__init__(message, detail=detail)
        self.revision_id = revision_id


class QueryFailureError(MigrationError):
    """The serving-state query command failed."""

    def __init__(self, detail: str = ""):
        super().__init__(detail.strip() or "Failed to query serving versions", detail=detail)


class ParseFailureError(MigrationError):
    """The serving-state query returned something we cannot interpret."""

    def __init__(self, reason: str, raw: str = ""):
        super().__init__(f"failed to parse current serving version: {reason}", detail=raw)
        self.reason = reason


class NoServingVersionError(MigrationError):
    """No revision currently receives traffic."""

    def __init__(self):
        super().__init__("No serving version found")


class AlreadyServingError(MigrationError):
    """The target already receives all traffic; there is nothing to do."""

    benign = True

    def __init__(self, revision_id: str):
        super().__init__(f"Already {revision_id} is serving")
        self.revision_id = revision_id


class AmbiguousServingStateError(MigrationError):
    """The serving set cannot be reduced to a (current, target) pair."""

    def __init__(self, serving_ids: Optional[list] = None):
        self.serving_ids = list(serving_ids or [])
        suffix = f": {', '.join(self.serving_ids)}" if self.serving_ids else ""
        super().__init__(f"Multiple versions are serving{suffix}")


class StepExecutionError(MigrationError):
    """A traffic-split command failed; later steps were not attempted.

    Attributes:
        fraction: Target fraction the failed step tried to apply.
        step: Zero-based index of the step in the plan.
    """

    def __init__(self, detail: str, fraction: float, step: int = -1):
        percent = int(round(fraction * 100))
        super().__init__(
            f"failed to set traffic: rate={percent}%, error={detail.strip()}",
            detail=detail,
        )
        self.fraction = fraction
        self.step = step
