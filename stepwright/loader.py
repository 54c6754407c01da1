"""
Artifact loading - resolve a step's `file` declaration and import it.

The loader is the isolation boundary of a discovery pass: every failure
is returned as a LoadResult, never raised, so one broken step cannot abort
the others.

Failure modes, in the order they are checked:
- missing-config: the step declares no `file` (nothing touches the filesystem)
- file-not-found: the resolved path does not exist (detail = absolute path)
- load-error: importing the file raised (detail = exception text)

Step files are plain Python modules. The artifact is the module-level
`step` attribute when the module defines one, otherwise the module itself.
"""

import hashlib
import importlib.util
import logging
import sys
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Any, Optional, Protocol, runtime_checkable

from stepwright.schemas import SkipReason, StepConfig

logger = logging.getLogger(__name__)

# Conventional sub-directory of a framework that holds its step files
STEPS_DIRNAME = "steps"

# Module attribute that names the exported artifact
EXPORT_ATTR = "step"

DEFAULT_SUFFIX = ".py"
MODULE_PREFIX = "stepwright_steps"


@dataclass(frozen=True)
class LoadResult:
    """
    Outcome of loading one step artifact.

    Attributes:
        ok: True when the artifact was imported
        artifact: The exported artifact (only when ok)
        path: Resolved absolute path, when resolution got that far
        reason: Failure classification (only when not ok)
        detail: Failure detail (only when not ok)
    """
    ok: bool
    artifact: Any = None
    path: Optional[Path] = None
    reason: Optional[SkipReason] = None
    detail: str = ""

    @classmethod
    def success(cls, artifact: Any, path: Path) -> "LoadResult":
        return cls(ok=True, artifact=artifact, path=path)

    @classmethod
    def failure(cls, reason: SkipReason, detail: str, path: Optional[Path] = None) -> "LoadResult":
        return cls(ok=False, reason=reason, detail=detail, path=path)


@runtime_checkable
class ArtifactLoader(Protocol):
    """Protocol for artifact loaders used by the discovery engine."""

    def load(self, step_config: StepConfig, file_root: Path) -> LoadResult:
        """Load the artifact declared by `step_config` under `file_root`."""
        ...


def normalize_step_file(file: str) -> PurePosixPath:
    """
    Normalize a declared step file reference.

    Backslashes become forward slashes, `.` segments are dropped and a
    leading `steps/` segment is stripped, because declarations are already
    relative to the steps directory.

    Examples:
        "steps/deploy.py"   -> deploy.py
        "./steps/a/b.py"    -> a/b.py
        "deploy.py"         -> deploy.py
    """
    parts = [p for p in PurePosixPath(file.replace("\\", "/")).parts if p not in (".", "")]
    if len(parts) > 1 and parts[0] == STEPS_DIRNAME:
        parts = parts[1:]
    return PurePosixPath(*parts) if parts else PurePosixPath()


def _module_name_for(path: Path) -> str:
    digest = hashlib.sha1(str(path).encode()).hexdigest()[:12]
    stem = "".join(c if c.isalnum() else "_" for c in path.stem)
    return f"{MODULE_PREFIX}_{stem}_{digest}"


class FileArtifactLoader:
    """
    Loads step artifacts from Python source files.

    Each load executes the file afresh under a module name derived from its
    path, replacing any module left by an earlier discovery pass.

    Usage:
        loader = FileArtifactLoader()
        result = loader.load(step_config, Path("/frameworks/refactoring"))
        if result.ok:
            artifact = result.artifact
    """

    def __init__(self, steps_dirname: str = STEPS_DIRNAME):
        """
        Initialize the loader.

        Args:
            steps_dirname: Name of the steps sub-directory inside a framework
        """
        self._steps_dirname = steps_dirname

    def resolve(self, file: str, file_root: Path) -> Path:
        """Resolve a declared file reference to an absolute path."""
        relative = normalize_step_file(file)
        return (Path(file_root) / self._steps_dirname / relative).resolve()

    def load(self, step_config: StepConfig, file_root: Path) -> LoadResult:
        """
        Load the artifact declared by a step.

        Args:
            step_config: The step declaration
            file_root: The owning framework's directory

        Returns:
            LoadResult; never raises
        """
        if not step_config.file:
            return LoadResult.failure(
                SkipReason.MISSING_CONFIG,
                f"step '{step_config.name}' declares no file",
            )

        path = self.resolve(step_config.file, file_root)
        if not self._exists(path) and not path.suffix:
            candidate = path.with_suffix(DEFAULT_SUFFIX)
            if self._exists(candidate):
                path = candidate

        if not self._exists(path):
            return LoadResult.failure(
                SkipReason.FILE_NOT_FOUND,
                f"step file not found: {path}",
                path=path,
            )

        try:
            artifact = self._import_artifact(path)
        except (Exception, SystemExit) as e:
            # sys.exit() at step module level counts as a load failure
            logger.debug(f"Import of {path} failed", exc_info=True)
            return LoadResult.failure(
                SkipReason.LOAD_ERROR,
                f"{type(e).__name__}: {e}",
                path=path,
            )

        return LoadResult.success(artifact, path)

    def _exists(self, path: Path) -> bool:
        return path.is_file()

    def _import_artifact(self, path: Path) -> Any:
        """
        Import a step file and return its exported artifact.

        Raises:
            ImportError: If no import spec can be built for the path
            Exception: Anything raised while executing the module
        """
        module_name = _module_name_for(path)
        spec = importlib.util.spec_from_file_location(module_name, path)
        if spec is None or spec.loader is None:
            raise ImportError(f"Cannot build import spec for {path}")

        module = importlib.util.module_from_spec(spec)
        # Registered before exec so dataclasses/typing inside the step can find it
        sys.modules[module_name] = module
        try:
            spec.loader.exec_module(module)
        except BaseException:
            sys.modules.pop(module_name, None)
            raise

        return getattr(module, EXPORT_ATTR, module)
