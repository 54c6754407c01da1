"""Tests for the stepwright CLI.

Tests cover:
- init: config creation and --force
- discover: JSON and table output, root resolution
- steps list / steps show
- run: invocation, unknown keys, failing steps, bad arguments
"""

import json

import pytest
import yaml
from click.testing import CliRunner

from conftest import CAPABILITY_STEP, CLASS_STEP, NO_INVOKE_STEP, step_entry
from stepwright import __version__
from stepwright.cli import main


FAILING_STEP = '''
def execute(context, options):
    raise RuntimeError("deploy target unreachable")
'''


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def populated(frameworks_dir, make_framework):
    """Framework root with alpha (run, build, broken, fail) and beta (run)."""
    make_framework(
        "alpha",
        steps={
            "run": step_entry("run", file="run.py"),
            "build": step_entry("build", file="build.py"),
            "broken": step_entry("broken", file="broken.py"),
            "fail": step_entry("fail", file="fail.py"),
        },
        files={
            "run.py": CAPABILITY_STEP,
            "build.py": CLASS_STEP,
            "broken.py": NO_INVOKE_STEP,
            "fail.py": FAILING_STEP,
        },
    )
    make_framework("beta", steps={"run": step_entry("run", file="run.py")}, files={"run.py": CAPABILITY_STEP})
    return frameworks_dir


def _invoke(runner, *args):
    return runner.invoke(main, ["--log-level", "ERROR", *args])


class TestVersion:
    def test_version(self, runner):
        result = runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output


class TestLogLevel:
    """Tests for the --log-level option."""

    def test_unknown_level_is_usage_error(self, runner, populated):
        result = runner.invoke(main, ["--log-level", "bogus", "steps", "list", "--root", str(populated)])

        assert result.exit_code == 2
        assert "Invalid value for '--log-level'" in result.output
        assert not isinstance(result.exception, AttributeError)

    def test_level_is_case_insensitive(self, runner, populated):
        result = runner.invoke(main, ["--log-level", "debug", "steps", "list", "--root", str(populated)])

        assert result.exit_code == 0
        assert "  alpha.run" in result.stdout.splitlines()


class TestInit:
    """Tests for `stepwright init`."""

    def test_creates_config(self, runner, stepwright_home, tmp_path):
        result = _invoke(runner, "init", "--root", str(tmp_path / "fw"))

        assert result.exit_code == 0
        cfg_path = stepwright_home / "config.yaml"
        assert cfg_path.exists()
        data = yaml.safe_load(cfg_path.read_text())
        assert data["framework_root"] == str(tmp_path / "fw")
        assert data["max_workers"] == 1

    def test_refuses_to_overwrite(self, runner, stepwright_home):
        _invoke(runner, "init")
        result = _invoke(runner, "init")

        assert result.exit_code == 1
        assert "already exists" in result.output

    def test_force_overwrites(self, runner, stepwright_home, tmp_path):
        _invoke(runner, "init")
        result = _invoke(runner, "init", "--force", "--root", str(tmp_path / "other"))

        assert result.exit_code == 0
        data = yaml.safe_load((stepwright_home / "config.yaml").read_text())
        assert data["framework_root"] == str(tmp_path / "other")


class TestDiscover:
    """Tests for `stepwright discover`."""

    def test_json_report(self, runner, populated):
        result = _invoke(runner, "discover", "--root", str(populated), "--json")

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["summary"]["loaded"] == 4
        assert data["summary"]["skipped"] == 1
        assert data["skipped"][0]["key"] == "alpha.broken"
        assert data["skipped"][0]["reason"] == "invalid-shape"
        assert data["registered"] == ["alpha.build", "alpha.fail", "alpha.run", "beta.run"]

    def test_parallel_workers(self, runner, populated):
        result = _invoke(runner, "discover", "--root", str(populated), "--json", "--workers", "4")

        assert result.exit_code == 0
        assert json.loads(result.stdout)["summary"]["frameworks"] == 2

    def test_table_report(self, runner, populated):
        result = _invoke(runner, "discover", "--root", str(populated))

        assert result.exit_code == 0
        assert "Frameworks: 2" in result.stdout
        assert "Loaded: 4" in result.stdout

    def test_root_from_config(self, runner, populated):
        _invoke(runner, "init", "--root", str(populated))
        result = _invoke(runner, "discover", "--json")

        assert result.exit_code == 0
        assert json.loads(result.stdout)["summary"]["loaded"] == 4

    def test_no_root_configured(self, runner):
        result = _invoke(runner, "discover")

        assert result.exit_code == 1
        assert "No framework root configured" in result.output

    def test_root_from_env_without_config(self, runner, populated, stepwright_home, monkeypatch):
        """$STEPWRIGHT_FRAMEWORK_ROOT works even when config.yaml does not exist."""
        monkeypatch.setenv("STEPWRIGHT_FRAMEWORK_ROOT", str(populated))
        assert not (stepwright_home / "config.yaml").exists()

        result = _invoke(runner, "steps", "list")

        assert result.exit_code == 0
        assert "  beta.run" in result.stdout.splitlines()

    def test_missing_root(self, runner, tmp_path):
        result = _invoke(runner, "discover", "--root", str(tmp_path / "missing"))

        assert result.exit_code == 1
        assert "Cannot list framework directory" in result.output


class TestSteps:
    """Tests for `stepwright steps list/show`."""

    def test_list(self, runner, populated):
        result = _invoke(runner, "steps", "list", "--root", str(populated))

        assert result.exit_code == 0
        assert result.stdout.splitlines() == [
            "alpha:",
            "  alpha.build",
            "  alpha.fail",
            "  alpha.run",
            "beta:",
            "  beta.run",
        ]

    def test_list_filtered(self, runner, populated):
        result = _invoke(runner, "steps", "list", "--root", str(populated), "--framework", "beta")
        assert result.stdout.splitlines() == ["beta:", "  beta.run"]

    def test_list_unknown_framework(self, runner, populated):
        result = _invoke(runner, "steps", "list", "--root", str(populated), "--framework", "gamma")
        assert "No steps for framework 'gamma'" in result.stdout
        assert "alpha, beta" in result.stdout

    def test_list_empty(self, runner, frameworks_dir):
        result = _invoke(runner, "steps", "list", "--root", str(frameworks_dir))
        assert "No steps found." in result.stdout

    def test_show(self, runner, populated):
        result = _invoke(runner, "steps", "show", "alpha.build", "--root", str(populated))

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["key"] == "alpha.build"
        assert data["shape"] == "constructible"
        assert data["registered"] is True

    def test_show_skipped(self, runner, populated):
        result = _invoke(runner, "steps", "show", "alpha.broken", "--root", str(populated))

        assert result.exit_code == 1
        assert "alpha.broken was skipped [invalid-shape]" in result.output

    def test_show_unknown(self, runner, populated):
        result = _invoke(runner, "steps", "show", "gamma.run", "--root", str(populated))

        assert result.exit_code == 1
        assert "Unknown step: gamma.run" in result.output


class TestRun:
    """Tests for `stepwright run`."""

    def test_run_step(self, runner, populated):
        result = _invoke(
            runner, "run", "alpha.run", "--root", str(populated),
            "--context", '{"framework": "spoofed"}', "--option", "dry_run=1",
        )

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data == {"framework": "alpha", "step_name": "run", "options": {"dry_run": "1"}}
        assert "alpha.run completed" in result.stderr

    def test_run_constructible(self, runner, populated):
        result = _invoke(runner, "run", "alpha.build", "--root", str(populated))

        assert result.exit_code == 0
        assert json.loads(result.stdout) == {"calls": 1, "framework": "alpha"}

    def test_run_unknown(self, runner, populated):
        result = _invoke(runner, "run", "alpha.missing", "--root", str(populated))

        assert result.exit_code == 1
        assert "Unknown step: alpha.missing" in result.output
        assert "beta.run" in result.output

    def test_run_failing_step(self, runner, populated):
        result = _invoke(runner, "run", "alpha.fail", "--root", str(populated))

        assert result.exit_code == 1
        assert "alpha.fail failed: deploy target unreachable" in result.output

    def test_invalid_context_json(self, runner, populated):
        result = _invoke(runner, "run", "alpha.run", "--root", str(populated), "--context", "{bad")

        assert result.exit_code == 2
        assert "invalid JSON" in result.output

    def test_context_must_be_object(self, runner, populated):
        result = _invoke(runner, "run", "alpha.run", "--root", str(populated), "--context", "[1]")
        assert result.exit_code == 2

    def test_invalid_option(self, runner, populated):
        result = _invoke(runner, "run", "alpha.run", "--root", str(populated), "--option", "novalue")

        assert result.exit_code == 2
        assert "expected KEY=VALUE" in result.output
