#!/usr/bin/env python3
# CUI // SP-CTI
"""appmig Resilience Package — structured errors shared by every layer."""

from appmig.resilience.errors import (  # noqa: F401
    AlreadyServingError,
    AmbiguousServingStateError,
    AppmigError,
    AppmigPermanentError,
    ConfigurationError,
    InvalidRateError,
    MigrationError,
    NoServingVersionError,
    ParseFailureError,
    QueryFailureError,
    RevisionNotFoundError,
    StepExecutionError,
)
