import json
import logging

import pytest
import yaml


CAPABILITY_STEP = '''
config = {"name": "run", "description": "module-level step"}


def execute(context, options):
    return {
        "framework": context["framework"],
        "step_name": context["step_name"],
        "options": options,
    }
'''

CLASS_STEP = '''
class BuildStep:
    config = {"name": "build"}
    instances = 0

    def __init__(self):
        type(self).instances += 1
        self.calls = 0

    def execute(self, context, options):
        self.calls += 1
        return {"calls": self.calls, "framework": context["framework"]}


step = BuildStep
'''

NO_INVOKE_STEP = '''
config = {"name": "broken", "description": "declares config but nothing to run"}
'''

IMPORT_ERROR_STEP = '''
raise RuntimeError("boom at import")
'''

EXITING_STEP = '''
import sys

sys.exit(1)
'''


@pytest.fixture(autouse=True)
def stepwright_home(monkeypatch, tmp_path):
    """Point STEPWRIGHT_HOME at an empty temp dir so the real home is never read."""
    home = tmp_path / "stepwright_home"
    monkeypatch.setenv("STEPWRIGHT_HOME", str(home))
    monkeypatch.delenv("STEPWRIGHT_FRAMEWORK_ROOT", raising=False)
    return home


@pytest.fixture
def frameworks_dir(tmp_path):
    """Base directory holding one sub-directory per framework."""
    base = tmp_path / "frameworks"
    base.mkdir()
    return base


@pytest.fixture
def make_framework(frameworks_dir):
    """
    Factory writing a framework directory.

    Args:
        name: Framework (and directory) name
        steps: Descriptor `steps` mapping
        files: Step file contents keyed by path relative to steps/
        fmt: "yaml" or "json"
        descriptor: Extra top-level descriptor fields
        dirname: Directory name if it should differ from the framework name
    """
    def _make(name, steps=None, files=None, fmt="yaml", descriptor=None, dirname=None):
        root = frameworks_dir / (dirname or name)
        (root / "steps").mkdir(parents=True, exist_ok=True)

        data = {"name": name, "version": "1.0.0", "steps": steps or {}}
        data.update(descriptor or {})
        if fmt == "json":
            (root / "framework.json").write_text(json.dumps(data))
        else:
            (root / "framework.yaml").write_text(yaml.safe_dump(data, sort_keys=False))

        for rel_path, content in (files or {}).items():
            path = root / "steps" / rel_path
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content)
        return root

    return _make


def step_entry(name, file=None, **extra):
    """Build a descriptor step entry."""
    entry = {
        "name": name,
        "type": "test",
        "category": "general",
        "description": f"{name} step",
        "dependencies": ["step_runtime"],
    }
    if file is not None:
        entry["file"] = file
    entry.update(extra)
    return entry


@pytest.fixture(autouse=True)
def restore_stepwright_logger():
    """CLI tests call setup_logging(); undo it so caplog-based tests see every record."""
    logger = logging.getLogger("stepwright")
    level, handlers = logger.level, list(logger.handlers)
    yield
    logger.setLevel(level)
    logger.handlers = handlers
