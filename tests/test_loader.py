"""Tests for stepwright.loader.

Tests cover:
- Declared file normalization
- missing-config without touching the filesystem
- file-not-found carrying the resolved absolute path
- load-error carrying the exception text
- Export resolution (`step` attribute or the module itself)
"""

import sys
from pathlib import Path, PurePosixPath
from unittest.mock import patch

import pytest

from conftest import CAPABILITY_STEP, CLASS_STEP, EXITING_STEP, IMPORT_ERROR_STEP
from stepwright.loader import (
    ArtifactLoader,
    FileArtifactLoader,
    LoadResult,
    _module_name_for,
    normalize_step_file,
)
from stepwright.schemas import SkipReason, StepConfig


@pytest.fixture
def framework_root(tmp_path):
    root = tmp_path / "refactoring"
    (root / "steps").mkdir(parents=True)
    return root


@pytest.fixture
def loader():
    return FileArtifactLoader()


def _write_step(root: Path, rel: str, content: str) -> Path:
    path = root / "steps" / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    return path


class TestNormalizeStepFile:
    """Tests for normalize_step_file()."""

    @pytest.mark.parametrize(
        "declared, expected",
        [
            ("deploy.py", "deploy.py"),
            ("steps/deploy.py", "deploy.py"),
            ("./steps/a/b.py", "a/b.py"),
            ("steps\\nested\\deploy.py", "nested/deploy.py"),
            ("./deploy", "deploy"),
        ],
    )
    def test_normalizes(self, declared, expected):
        assert normalize_step_file(declared) == PurePosixPath(expected)

    def test_lone_steps_segment_is_kept(self):
        """A file literally named `steps` is not stripped to nothing."""
        assert normalize_step_file("steps") == PurePosixPath("steps")


class TestMissingConfig:
    """A step without a file declaration."""

    def test_missing_file_reports_missing_config(self, loader, framework_root):
        result = loader.load(StepConfig(name="build"), framework_root)
        assert result.ok is False
        assert result.reason is SkipReason.MISSING_CONFIG
        assert "build" in result.detail
        assert result.path is None

    def test_missing_config_never_touches_filesystem(self, loader, framework_root):
        with patch.object(FileArtifactLoader, "_exists") as mock_exists, \
             patch.object(FileArtifactLoader, "_import_artifact") as mock_import:
            result = loader.load(StepConfig(name="build", file=None), framework_root)

        assert result.reason is SkipReason.MISSING_CONFIG
        mock_exists.assert_not_called()
        mock_import.assert_not_called()


class TestFileNotFound:
    """A declared file that does not exist."""

    def test_detail_contains_resolved_path(self, loader, framework_root):
        result = loader.load(StepConfig(name="deploy", file="steps/deploy.py"), framework_root)

        expected = (framework_root / "steps" / "deploy.py").resolve()
        assert result.ok is False
        assert result.reason is SkipReason.FILE_NOT_FOUND
        assert str(expected) in result.detail
        assert result.path == expected

    def test_import_not_attempted(self, loader, framework_root):
        with patch.object(FileArtifactLoader, "_import_artifact") as mock_import:
            result = loader.load(StepConfig(name="deploy", file="deploy.py"), framework_root)

        assert result.reason is SkipReason.FILE_NOT_FOUND
        mock_import.assert_not_called()


class TestLoadError:
    """A file that raises while being imported."""

    def test_import_failure_reports_load_error(self, loader, framework_root):
        path = _write_step(framework_root, "broken.py", IMPORT_ERROR_STEP)
        result = loader.load(StepConfig(name="broken", file="broken.py"), framework_root)

        assert result.ok is False
        assert result.reason is SkipReason.LOAD_ERROR
        assert "RuntimeError" in result.detail
        assert "boom at import" in result.detail
        assert result.path == path.resolve()

    def test_failed_module_not_left_in_sys_modules(self, loader, framework_root):
        path = _write_step(framework_root, "broken.py", IMPORT_ERROR_STEP)
        loader.load(StepConfig(name="broken", file="broken.py"), framework_root)
        assert _module_name_for(path.resolve()) not in sys.modules

    def test_sys_exit_at_import_reports_load_error(self, loader, framework_root):
        """A step calling sys.exit() while importing is a load failure, not an exit."""
        path = _write_step(framework_root, "exits.py", EXITING_STEP)
        result = loader.load(StepConfig(name="exits", file="exits.py"), framework_root)

        assert result.ok is False
        assert result.reason is SkipReason.LOAD_ERROR
        assert "SystemExit" in result.detail
        assert _module_name_for(path.resolve()) not in sys.modules

    def test_syntax_error_reports_load_error(self, loader, framework_root):
        _write_step(framework_root, "bad.py", "def execute(:\n")
        result = loader.load(StepConfig(name="bad", file="bad.py"), framework_root)
        assert result.reason is SkipReason.LOAD_ERROR
        assert "SyntaxError" in result.detail


class TestSuccessfulLoad:
    """Files that import cleanly."""

    def test_module_is_artifact_without_step_export(self, loader, framework_root):
        _write_step(framework_root, "run.py", CAPABILITY_STEP)
        result = loader.load(StepConfig(name="run", file="run.py"), framework_root)

        assert result.ok is True
        assert result.reason is None
        assert callable(result.artifact.execute)
        assert result.artifact.config == {"name": "run", "description": "module-level step"}

    def test_step_export_is_artifact(self, loader, framework_root):
        _write_step(framework_root, "build.py", CLASS_STEP)
        result = loader.load(StepConfig(name="build", file="steps/build.py"), framework_root)

        assert result.ok is True
        assert isinstance(result.artifact, type)
        assert result.artifact.__name__ == "BuildStep"

    def test_suffixless_declaration_falls_back_to_py(self, loader, framework_root):
        path = _write_step(framework_root, "run.py", CAPABILITY_STEP)
        result = loader.load(StepConfig(name="run", file="run"), framework_root)

        assert result.ok is True
        assert result.path == path.resolve()

    def test_nested_file(self, loader, framework_root):
        _write_step(framework_root, "group/run.py", CAPABILITY_STEP)
        result = loader.load(StepConfig(name="run", file="./steps/group/run.py"), framework_root)
        assert result.ok is True

    def test_reload_picks_up_edits(self, loader, framework_root):
        _write_step(framework_root, "value.py", "VALUE = 1\ndef execute(c, o):\n    return VALUE\n")
        first = loader.load(StepConfig(name="value", file="value.py"), framework_root)

        _write_step(framework_root, "value.py", "VALUE = 20\ndef execute(c, o):\n    return VALUE\n")
        second = loader.load(StepConfig(name="value", file="value.py"), framework_root)

        assert first.artifact.execute({}, {}) == 1
        assert second.artifact.execute({}, {}) == 20

    def test_custom_steps_dirname(self, framework_root):
        (framework_root / "tasks").mkdir()
        (framework_root / "tasks" / "run.py").write_text(CAPABILITY_STEP)
        loader = FileArtifactLoader(steps_dirname="tasks")

        result = loader.load(StepConfig(name="run", file="run.py"), framework_root)
        assert result.ok is True


class TestLoadResult:
    """Tests for LoadResult constructors and the loader protocol."""

    def test_success(self, tmp_path):
        result = LoadResult.success("artifact", tmp_path)
        assert result.ok is True
        assert result.artifact == "artifact"
        assert result.reason is None

    def test_failure(self):
        result = LoadResult.failure(SkipReason.LOAD_ERROR, "boom")
        assert result.ok is False
        assert result.artifact is None
        assert result.detail == "boom"

    def test_file_loader_satisfies_protocol(self, loader):
        assert isinstance(loader, ArtifactLoader)
