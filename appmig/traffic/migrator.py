#!/usr/bin/env python3
# CUI // SP-CTI
"""Phased traffic migration between two App Engine versions.

Checks that the target version exists, resolves which version currently
serves, asks the operator to confirm, then raises the target's traffic share
through the requested percentages one ``set-traffic`` call at a time,
waiting ``--interval`` seconds between steps.

Re-running after a failure is safe: the serving state is re-read and any
percentage the target has already reached is skipped.

Usage:
    appmig --project=mytest --service=default --version=v2 --rate=1,5,10,25,50,75,100 --interval=30
    appmig --project=mytest --service=default --version=v2 --rate=50,100 --quiet --json
    appmig --project=mytest --service=default --version=v2 --rate=10,100 --dry-run
"""

import argparse
import json
import logging
import sys
import time
from typing import Callable, Iterable, Optional, TextIO, Tuple, Union

from appmig.cli.output_formatter import format_banner, format_pipeline, format_status, format_table
from appmig.resilience.errors import (
    ConfigurationError,
    InvalidRateError,
    MigrationError,
    StepExecutionError,
)
from appmig.runtime.executor import CommandExecutor, SubprocessExecutor, execute_with_message
from appmig.runtime.progress import ProgressReporter
from appmig.traffic import commands
from appmig.traffic.config import MigrationSettings, load_config
from appmig.traffic.models import (
    TERMINAL_PHASES,
    MigrationContext,
    MigrationPhase,
    MigrationPlan,
    MigrationReport,
    RevisionState,
    StepResult,
)
from appmig.traffic.resolver import RevisionResolver, format_serving

logger = logging.getLogger("appmig.traffic.migrator")


def prompt_yes_no(message: str, stream: Optional[TextIO] = None) -> bool:
    """Ask ``message [Y/n]``; empty input, ``y`` or ``yes`` proceed.

    End of input (stdin closed) counts as a decline.
    """
    out = stream or sys.stdout
    out.write(f"{message} [Y/n] ")
    out.flush()
    try:
        answer = input()
    except EOFError:
        return False
    return answer.strip().lower() in ("", "y", "yes")


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------
class MigrationOrchestrator:
    """Drives one migration run.

    Args:
        settings: MigrationSettings for this run.
        executor: CommandExecutor for both queries and ``set-traffic`` calls.
        resolver: RevisionResolver override (default: built from executor).
        reporter: ProgressReporter override (default: built from settings).
        console: Stream for human-readable progress (default ``sys.stdout``).
        confirm: ``confirm(message) -> bool`` (default: interactive prompt).
    """

    def __init__(
        self,
        settings: MigrationSettings,
        executor: CommandExecutor,
        resolver: Optional[RevisionResolver] = None,
        reporter: Optional[ProgressReporter] = None,
        console: Optional[TextIO] = None,
        confirm: Optional[Callable[[str], bool]] = None,
    ):
        self.settings = settings
        self.executor = executor
        self.console = console if console is not None else sys.stdout
        self.reporter = reporter or ProgressReporter(
            stream=self.console,
            enabled=not settings.json_output,
            frame_interval=settings.frame_interval_seconds,
            flush_delay=settings.flush_delay_seconds,
            marks=settings.progress_marks,
        )
        self.echo = self.console if settings.verbose else None
        self.resolver = resolver or RevisionResolver(executor, settings, reporter=self.reporter, echo=self.echo)
        self.confirm = confirm or (lambda message: prompt_yes_no(message, self.console))
        self.phase = MigrationPhase.INIT
        self.context: Optional[MigrationContext] = None
        self.report: Optional[MigrationReport] = None
        self.plan: Tuple[float, ...] = ()

    def _write(self, text: str) -> None:
        self.console.write(text)
        self.console.flush()

    def _enter(self, phase: MigrationPhase) -> None:
        logger.debug("phase %s -> %s", self.phase.value, phase.value)
        self.phase = phase
        if phase in TERMINAL_PHASES and self.report is not None:
            logger.info(
                "Migration to %s %s: %d of %d steps applied",
                self.report.target_id, phase.value, len(self.report.applied_steps), len(self.plan),
            )

    # ------------------------------------------------------------------
    # Full run
    # ------------------------------------------------------------------

    def run(
        self,
        target_id: str,
        rates: Union[MigrationPlan, Iterable[float]],
        interval: Optional[float] = None,
    ) -> MigrationReport:
        """Check, resolve, confirm, then step through *rates*.

        Returns the report (status ``completed``, ``aborted`` or ``dry_run``).

        Raises:
            MigrationError: any validation or step failure. ``AlreadyServingError``
                is raised too; it is benign and callers should treat it as success.
        """
        plan = rates if isinstance(rates, MigrationPlan) else MigrationPlan.from_fractions(rates)
        self.plan = tuple(plan)
        if interval is None:
            interval = self.settings.interval_seconds
        self.report = MigrationReport(
            status="running",
            project=self.settings.project,
            service=self.settings.service,
            target_id=target_id,
        )

        try:
            self._enter(MigrationPhase.CHECKING_EXISTENCE)
            self.resolver.check_existence(target_id)
            self._write(f": {format_status('OK')}\n")

            self._enter(MigrationPhase.RESOLVING)
            serving = self.resolver.list_serving_revisions()
            self._write(f": {format_serving(serving)}\n")
            self.context = self.resolver.resolve(target_id, serving)
            self.report.current_id = self.context.current.id

            self._write(
                f"\nMigrate traffic: project={self.settings.project}, service={self.settings.service}, "
                f"from={self.context.current.id}, to={self.context.target.id}\n"
            )

            if self.settings.dry_run:
                return self._dry_run(plan)

            self._enter(MigrationPhase.AWAITING_CONFIRMATION)
            if not self.settings.auto_confirm and not self.confirm("Do you want to continue?"):
                self.report.status = "aborted"
                self._enter(MigrationPhase.ABORTED)
                self.render_summary()
                return self.report
            self._write("\n")

            self.migrate(self.context, plan, interval)
        except MigrationError as exc:
            self.report.status = "already_serving" if exc.benign else "failed"
            self.report.error = str(exc)
            self._enter(MigrationPhase.COMPLETED if exc.benign else MigrationPhase.FAILED)
            raise

        self.report.status = "completed"
        self.render_summary()
        return self.report

    def render_summary(self) -> None:
        """Write the closing pipeline and banner for the report's status.

        The pipeline lists every recorded step followed by the plan entries
        never reached; it is omitted when no step was recorded.
        """
        report = self.report
        if report is None:
            return
        if report.steps and report.status in ("completed", "failed"):
            steps = [(f"{s.requested_fraction * 100:.0f}%", s.status) for s in report.steps]
            steps += [(f"{f * 100:.0f}%", "pending") for f in self.plan[len(report.steps):]]
            self._write("\n" + format_pipeline(steps) + "\n")
        messages = {
            "completed": "Finish migration!",
            "aborted": "Migration aborted, traffic unchanged",
            "dry_run": "Dry run, traffic unchanged",
            "failed": "Migration failed",
        }
        if report.status in messages:
            self._write(format_banner(report.status, messages[report.status]) + "\n")

    # ------------------------------------------------------------------
    # Step loop
    # ------------------------------------------------------------------

    def migrate(self, context: MigrationContext, plan: Union[MigrationPlan, Iterable[float]],
                interval: float = 0) -> None:
        """Apply each fraction of *plan* above the target's current share.

        Fractions at or below the target's share are skipped without any
        platform call. The wait happens after every applied step except when
        it is the last entry in the plan.
        """
        fractions = tuple(plan)
        self.plan = fractions
        if self.report is None:
            self.report = MigrationReport(
                status="running",
                project=self.settings.project,
                service=self.settings.service,
                target_id=context.target.id,
                current_id=context.current.id,
            )
        self.context = context

        for i, fraction in enumerate(fractions):
            if context.should_skip(fraction):
                logger.debug("skip step %d: %.2f <= %.2f", i, fraction, context.target.traffic_fraction)
                self.report.steps.append(StepResult(index=i, requested_fraction=fraction, applied=False))
                continue

            self._enter(MigrationPhase.STEPPING)
            context.advance(fraction)
            splits = commands.format_splits(
                context.current.id, context.current.traffic_fraction,
                context.target.id, context.target.traffic_fraction,
            )
            args = commands.set_traffic_args(
                self.settings.project, self.settings.service, splits, self.settings.split_by,
            )
            _, stderr, ok = execute_with_message(
                self.executor,
                self.settings.platform_binary,
                args,
                f"Migrating from {context.current} to {context.target}... ",
                reporter=self.reporter,
                echo=self.echo,
            )
            if not ok:
                self._write(f": {format_status('FAILED')}\n")
                self.report.steps.append(StepResult(
                    index=i, requested_fraction=fraction, applied=False,
                    splits=splits, error=stderr.strip() or "set-traffic failed",
                ))
                raise StepExecutionError(stderr, fraction=fraction, step=i)
            self._write(f": {format_status('DONE')}\n")
            logger.info("Applied splits %s", splits)
            self.report.steps.append(StepResult(
                index=i,
                requested_fraction=fraction,
                applied=True,
                splits=splits,
                current=str(context.current),
                target=str(context.target),
            ))

            if i != len(fractions) - 1:
                self._enter(MigrationPhase.WAITING)
                self.reporter.call("Waiting... ", time.sleep, interval)
                self._write("  \n")

        self._enter(MigrationPhase.COMPLETED)

    def _dry_run(self, plan: MigrationPlan) -> MigrationReport:
        """Print the splits the plan would apply; issue no mutations."""
        current = RevisionState(self.context.current.id, self.context.current.traffic_fraction)
        target = RevisionState(self.context.target.id, self.context.target.traffic_fraction)
        preview = MigrationContext(current=current, target=target, settings=self.settings)
        rows = []
        for i, fraction in enumerate(plan):
            if preview.should_skip(fraction):
                self.report.steps.append(StepResult(index=i, requested_fraction=fraction, applied=False))
                rows.append([i + 1, f"{fraction * 100:.0f}%", "-", "skipped"])
                continue
            preview.advance(fraction)
            splits = commands.format_splits(current.id, current.traffic_fraction,
                                            target.id, target.traffic_fraction)
            self.report.steps.append(StepResult(
                index=i, requested_fraction=fraction, applied=False, planned=True,
                splits=splits, current=str(current), target=str(target),
            ))
            rows.append([i + 1, f"{fraction * 100:.0f}%", splits, "pending"])

        self._write("\n" + format_table(["Step", "Target", "Splits", "Status"], rows,
                                        title="Planned traffic splits (dry run)") + "\n")
        self._enter(MigrationPhase.COMPLETED)
        self.report.status = "dry_run"
        self.render_summary()
        return self.report


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------
USAGE = "appmig [options...]"
EPILOG = (
    "Example:\n"
    "    appmig --project=mytest --service=default --version=v2 "
    "--rate=1,5,10,25,50,75,100 --interval=30"
)


class _ArgumentParser(argparse.ArgumentParser):
    """Usage errors exit 1, matching every other failure before the core runs."""

    def error(self, message):
        self.print_help(sys.stderr)
        self.exit(1, f"\n{self.prog}: error: {message}\n")


def build_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog="appmig",
        usage=USAGE,
        description="Migrate App Engine traffic to a new version in phased steps",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--project", required=True, help="Project ID")
    parser.add_argument("--service", required=True, help="Service ID")
    parser.add_argument("--version", required=True, help="Target version")
    parser.add_argument(
        "--rate", required=True,
        help="Traffic rate (%%) in each step, comma separated (ex: 1,5,10,25,50,75,100)",
    )
    parser.add_argument(
        "--interval", type=float, default=None,
        help="Seconds to wait between steps (default: 10, or the config file value)",
    )
    parser.add_argument("--verbose", action="store_true", help="Echo each platform command before running it")
    parser.add_argument("--quiet", action="store_true", help="Disable all interactive prompts")
    parser.add_argument("--dry-run", action="store_true", help="Show planned splits without changing traffic")
    parser.add_argument("--json", action="store_true", help="Print the migration report as JSON")
    parser.add_argument(
        "--config",
        help="Config YAML path (default: args/appmig_config.yaml in a source checkout; "
             "installed copies use built-in defaults unless this is given)",
    )
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )

    try:
        plan = MigrationPlan.parse(args.rate)
    except InvalidRateError as exc:
        print(f"invalid --rate option: {exc}", file=sys.stderr)
        return 1

    try:
        config = load_config(args.config)
        settings = MigrationSettings.from_config(
            config,
            project=args.project,
            service=args.service,
            interval_seconds=args.interval,
            verbose=args.verbose,
            auto_confirm=args.quiet,
            dry_run=args.dry_run,
            json_output=args.json,
        )
    except ConfigurationError as exc:
        print(f"configuration error: {exc}", file=sys.stderr)
        return 1

    # Human progress goes to stderr when stdout carries JSON.
    console = sys.stderr if settings.json_output else sys.stdout
    executor = SubprocessExecutor(timeout=settings.command_timeout_seconds)
    orchestrator = MigrationOrchestrator(settings, executor, console=console)

    exit_code = 0
    try:
        orchestrator.run(args.version, plan)
    except MigrationError as exc:
        console.write(f" {exc}\n")
        if not exc.benign:
            logger.error("Migration failed in phase %s: %s", orchestrator.phase.value, exc)
            exit_code = 1
            orchestrator.render_summary()

    if settings.json_output and orchestrator.report is not None:
        print(json.dumps(orchestrator.report.to_dict(), indent=2))
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
