#!/usr/bin/env python3
# CUI // SP-CTI
"""Traffic migration data model.

RevisionState is mutable on purpose: the orchestrator advances the current
and target revisions in place as each step is applied. Everything else is
either frozen (plan, settings) or a plain report record.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple

from appmig.resilience.errors import InvalidRateError


# ---------------------------------------------------------------------------
# Phases
# ---------------------------------------------------------------------------
class MigrationPhase(Enum):
    INIT = "init"
    CHECKING_EXISTENCE = "checking_existence"
    RESOLVING = "resolving"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    STEPPING = "stepping"
    WAITING = "waiting"
    COMPLETED = "completed"
    FAILED = "failed"      # terminal, carries an error
    ABORTED = "aborted"    # terminal, operator declined


TERMINAL_PHASES = (MigrationPhase.COMPLETED, MigrationPhase.FAILED, MigrationPhase.ABORTED)


# ---------------------------------------------------------------------------
# Revisions
# ---------------------------------------------------------------------------
@dataclass
class RevisionState:
    """One deployed revision and its current share of live traffic."""

    id: str
    traffic_fraction: float = 0.0

    @property
    def percent(self) -> int:
        return int(round(self.traffic_fraction * 100))

    def __str__(self) -> str:
        return f"{self.id}({self.percent}%)"

    def to_dict(self) -> dict:
        return {"id": self.id, "traffic_fraction": self.traffic_fraction}


# ---------------------------------------------------------------------------
# Plan
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class MigrationPlan:
    """Ordered target fractions requested by the caller (the rate list)."""

    fractions: Tuple[float, ...]

    def __post_init__(self):
        if not self.fractions:
            raise InvalidRateError("rate list is empty")
        for f in self.fractions:
            if not 0.0 <= f <= 1.0:
                raise InvalidRateError(f"rate {f} is outside [0, 1]", value=str(f))

    @classmethod
    def from_fractions(cls, fractions: Iterable[float]) -> "MigrationPlan":
        return cls(tuple(float(f) for f in fractions))

    @classmethod
    def parse(cls, rate: str) -> "MigrationPlan":
        """Parse comma separated integer percentages, e.g. ``"1,5,10,50,100"``.

        Raises:
            InvalidRateError: on a non-integer entry or a value above 100.
        """
        fractions = []
        for raw in rate.split(","):
            token = raw.strip()
            if not token.isdecimal():
                raise InvalidRateError(f"can not parse {token!r} as integer", value=rate)
            percent = int(token)
            if percent > 100:
                raise InvalidRateError(f"rate over 100: {percent}", value=rate)
            fractions.append(percent / 100.0)
        return cls(tuple(fractions))

    def __len__(self) -> int:
        return len(self.fractions)

    def __iter__(self):
        return iter(self.fractions)


# ---------------------------------------------------------------------------
# Context
# ---------------------------------------------------------------------------
@dataclass
class MigrationContext:
    """The (current, target) pair for one run plus the run's settings.

    ``advance`` is the only sanctioned way to move traffic; it keeps the two
    fractions summing to 1.0 and the target fraction non-decreasing.
    """

    current: RevisionState
    target: RevisionState
    settings: Any = None

    def should_skip(self, fraction: float) -> bool:
        return fraction <= self.target.traffic_fraction

    def advance(self, fraction: float) -> None:
        if self.should_skip(fraction):
            raise ValueError(
                f"fraction {fraction} does not exceed current target fraction "
                f"{self.target.traffic_fraction}"
            )
        self.target.traffic_fraction = fraction
        self.current.traffic_fraction = 1.0 - fraction


# ---------------------------------------------------------------------------
# Reporting
# ---------------------------------------------------------------------------
@dataclass
class StepResult:
    index: int
    requested_fraction: float
    applied: bool
    splits: Optional[str] = None
    current: Optional[str] = None
    target: Optional[str] = None
    planned: bool = False
    error: Optional[str] = None

    @property
    def status(self) -> str:
        if self.error is not None:
            return "failed"
        if self.applied:
            return "completed"
        return "pending" if self.planned else "skipped"

    def to_dict(self) -> dict:
        return {
            "index": self.index,
            "requested_fraction": self.requested_fraction,
            "status": self.status,
            "splits": self.splits,
            "current": self.current,
            "target": self.target,
            "error": self.error,
        }


@dataclass
class MigrationReport:
    """Outcome of one run, suitable for ``--json`` output."""

    status: str
    project: str
    service: str
    target_id: str
    current_id: Optional[str] = None
    steps: List[StepResult] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def applied_steps(self) -> List[StepResult]:
        return [s for s in self.steps if s.applied]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "project": self.project,
            "service": self.service,
            "current_id": self.current_id,
            "target_id": self.target_id,
            "steps": [s.to_dict() for s in self.steps],
            "error": self.error,
        }
