#!/usr/bin/env python3
# CUI // SP-CTI
"""Tests for the appmig command line (appmig.traffic.migrator.main)."""

import json
import sys
from pathlib import Path
from unittest.mock import patch

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import pytest

from appmig.traffic.migrator import build_parser, main
from tests.conftest import RecordingExecutor, fail, ok, serving_json


@pytest.fixture
def base_args(tmp_path):
    """Required flags plus an isolated (absent) config file and no waiting."""
    return [
        "--project=myproject",
        "--service=myservice",
        "--version=v2",
        "--interval=0",
        f"--config={tmp_path / 'absent.yaml'}",
    ]


def _run(argv, executor):
    with patch("appmig.traffic.migrator.SubprocessExecutor", return_value=executor):
        return main(argv)


# ---------------------------------------------------------------------------
# Argument handling
# ---------------------------------------------------------------------------
class TestArguments:

    def test_defaults(self):
        args = build_parser().parse_args(["--project=p", "--service=s", "--version=v2", "--rate=100"])
        assert args.interval is None
        assert args.verbose is False
        assert args.quiet is False
        assert args.dry_run is False

    @pytest.mark.parametrize("missing", ["--project", "--service", "--version", "--rate"])
    def test_missing_required_flag_exits_1(self, missing, capsys):
        argv = ["--project=p", "--service=s", "--version=v2", "--rate=100"]
        argv = [a for a in argv if not a.startswith(missing)]
        with pytest.raises(SystemExit) as exc_info:
            main(argv)
        assert exc_info.value.code == 1
        assert "usage:" in capsys.readouterr().err

    @pytest.mark.parametrize("rate", ["abc", "10,120"])
    def test_bad_rate_exits_1_without_commands(self, base_args, rate, capsys):
        executor = RecordingExecutor()
        assert _run(base_args + [f"--rate={rate}"], executor) == 1
        assert "invalid --rate option" in capsys.readouterr().err
        assert executor.commands == []

    def test_bad_config_exits_1(self, tmp_path, capsys):
        path = tmp_path / "bad.yaml"
        path.write_text("- not\n- a mapping\n")
        argv = ["--project=p", "--service=s", "--version=v2", "--rate=100", f"--config={path}"]
        assert _run(argv, RecordingExecutor()) == 1
        assert "configuration error" in capsys.readouterr().err

    def test_negative_interval_exits_1(self, tmp_path):
        argv = ["--project=p", "--service=s", "--version=v2", "--rate=100",
                "--interval=-1", f"--config={tmp_path / 'absent.yaml'}"]
        assert _run(argv, RecordingExecutor()) == 1


# ---------------------------------------------------------------------------
# Runs
# ---------------------------------------------------------------------------
class TestRuns:

    def test_quiet_json_completes(self, base_args, capsys):
        executor = RecordingExecutor([ok("v2\n"), ok(serving_json(("v1", 1.0)))])
        code = _run(base_args + ["--rate=50,100", "--quiet", "--json"], executor)

        assert code == 0
        report = json.loads(capsys.readouterr().out)
        assert report["status"] == "completed"
        assert report["current_id"] == "v1"
        assert [s["splits"] for s in report["steps"]] == ["v1=0.50,v2=0.50", "v2=1.00"]
        assert len(executor.mutations) == 2

    def test_progress_goes_to_stderr_in_json_mode(self, base_args, capsys):
        executor = RecordingExecutor([ok("v2\n"), ok(serving_json(("v1", 1.0)))])
        _run(base_args + ["--rate=100", "--quiet", "--json"], executor)
        captured = capsys.readouterr()
        assert "Checking existence of version v2" in captured.err
        assert "Checking existence" not in captured.out

    def test_already_serving_exits_0(self, base_args, capsys):
        executor = RecordingExecutor([ok("v2\n"), ok(serving_json(("v2", 1.0)))])
        assert _run(base_args + ["--rate=100", "--quiet"], executor) == 0
        assert "Already v2 is serving" in capsys.readouterr().out
        assert executor.mutations == []

    def test_not_found_exits_1(self, base_args, capsys):
        executor = RecordingExecutor([fail("ERROR: (gcloud.app.versions.describe) NOT_FOUND\n")])
        assert _run(base_args + ["--rate=100", "--quiet"], executor) == 1
        assert "NOT_FOUND" in capsys.readouterr().out
        assert len(executor.commands) == 1

    def test_unrunnable_binary_exits_1(self, base_args, capsys):
        err = PermissionError(13, "Permission denied", "gcloud")
        with patch("subprocess.run", side_effect=err) as mock_run:
            code = main(base_args + ["--rate=100", "--quiet"])

        assert code == 1
        assert mock_run.call_count == 1
        out = capsys.readouterr().out
        assert "Permission denied" in out
        assert "Migration failed" in out

    def test_step_failure_exits_1_and_stops(self, base_args, capsys):
        executor = RecordingExecutor([
            ok("v2\n"),
            ok(serving_json(("v1", 1.0))),
            ok(),
            fail("ERROR: quota exceeded\n"),
        ])
        code = _run(base_args + ["--rate=10,50,100", "--quiet", "--json"], executor)

        assert code == 1
        captured = capsys.readouterr()
        report = json.loads(captured.out)
        assert report["status"] == "failed"
        assert "rate=50%" in report["error"]
        assert [s["status"] for s in report["steps"]] == ["completed", "failed"]
        assert len(executor.mutations) == 2
        assert "Migration failed" in captured.err

    def test_decline_exits_0_without_mutations(self, base_args):
        executor = RecordingExecutor([ok("v2\n"), ok(serving_json(("v1", 1.0)))])
        with patch("builtins.input", return_value="n"):
            assert _run(base_args + ["--rate=100"], executor) == 0
        assert executor.mutations == []

    def test_dry_run_issues_no_mutations(self, base_args, capsys):
        executor = RecordingExecutor([ok("v2\n"), ok(serving_json(("v1", 0.9), ("v2", 0.1)))])
        code = _run(base_args + ["--rate=10,50,100", "--dry-run", "--json"], executor)

        assert code == 0
        report = json.loads(capsys.readouterr().out)
        assert report["status"] == "dry_run"
        assert [s["status"] for s in report["steps"]] == ["skipped", "pending", "pending"]
        assert [s["splits"] for s in report["steps"]] == [None, "v1=0.50,v2=0.50", "v2=1.00"]
        assert executor.mutations == []

    def test_verbose_echoes_commands(self, base_args, capsys):
        executor = RecordingExecutor([ok("v2\n"), ok(serving_json(("v1", 1.0)))])
        _run(base_args + ["--rate=100", "--quiet", "--verbose", "--json"], executor)
        err = capsys.readouterr().err
        assert "gcloud --project=myproject app services set-traffic myservice --splits=v2=1.00" in err
