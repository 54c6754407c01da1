"""
Discovery engine - walk framework roots and build the flat step table.

For every framework root:
1. Parse the descriptor (framework.yaml, framework.yml or framework.json).
   A broken descriptor skips the whole framework with one report entry.
2. For each declared step, in declaration order: load the artifact, then
   validate its shape. Every failure becomes a skip entry; processing
   continues with the next step.
3. Steps that load and validate become LoadedStep records.

Descriptor parsing and artifact loading are the only blocking points.
Both run under a timeout so a stalled file system cannot hold up the rest
of the pass. Frameworks share no state during discovery, so they may be
processed concurrently (max_workers > 1); results are always merged in
(framework name, root path) order, which makes reports repeatable.

The engine never fails as a whole; it always returns a DiscoveryReport.
"""

import json
import logging
import threading
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

from stepwright.errors import DescriptorError, FrameworkRootError
from stepwright.loader import ArtifactLoader, FileArtifactLoader, LoadResult
from stepwright.schemas import (
    DiscoveryReport,
    FrameworkDescriptor,
    LoadedStep,
    SkipEntry,
    SkipReason,
    StepConfig,
    ValidationResult,
    make_key,
)
from stepwright.validator import validate

logger = logging.getLogger(__name__)

# Preference order: YAML first, then JSON
DESCRIPTOR_NAMES = ("framework.yaml", "framework.yml", "framework.json")

DEFAULT_LOAD_TIMEOUT_S = 30.0

ValidateFn = Callable[[Any, Any], ValidationResult]


def find_descriptor(root: Path) -> Optional[Path]:
    """Return the descriptor file of a framework root, or None."""
    for name in DESCRIPTOR_NAMES:
        candidate = root / name
        if candidate.is_file():
            return candidate
    return None


def load_descriptor(root: Path | str) -> FrameworkDescriptor:
    """
    Read and parse the descriptor of a framework root.

    Args:
        root: Framework directory

    Returns:
        The parsed FrameworkDescriptor

    Raises:
        DescriptorError: If the descriptor is missing, unreadable or malformed
    """
    root = Path(root)
    path = find_descriptor(root)
    if path is None:
        raise DescriptorError(
            f"No framework descriptor in {root} (expected one of {', '.join(DESCRIPTOR_NAMES)})"
        )

    try:
        with open(path) as f:
            if path.suffix in (".yaml", ".yml"):
                data = yaml.safe_load(f)
            else:
                data = json.load(f)
    except (OSError, yaml.YAMLError, json.JSONDecodeError) as e:
        raise DescriptorError(f"Failed to read descriptor {path}: {e}") from e

    return FrameworkDescriptor.from_dict(data, root.resolve())


def _call_with_timeout(fn: Callable[..., Any], timeout_s: Optional[float], *args: Any) -> Any:
    """
    Run fn(*args) and give up waiting after timeout_s seconds.

    The call runs on a daemon thread; a call that times out keeps running
    in the background but no longer blocks the caller.

    Raises:
        TimeoutError: If the call did not finish in time
        Exception: Whatever fn raised
    """
    if timeout_s is None:
        return fn(*args)

    outcome: dict[str, Any] = {}

    def target() -> None:
        try:
            outcome["value"] = fn(*args)
        except BaseException as e:
            outcome["error"] = e

    worker = threading.Thread(target=target, name="stepwright-load", daemon=True)
    worker.start()
    worker.join(timeout_s)
    if worker.is_alive():
        raise TimeoutError(f"timed out after {timeout_s}s")
    if "error" in outcome:
        raise outcome["error"]
    return outcome.get("value")


@dataclass
class FrameworkOutcome:
    """Discovery result for a single framework root."""
    name: str
    root: Path
    parsed: bool = False
    loaded: list[LoadedStep] = field(default_factory=list)
    skipped: list[SkipEntry] = field(default_factory=list)


class DiscoveryEngine:
    """
    Discovers, loads and validates steps declared by framework roots.

    Usage:
        engine = DiscoveryEngine(load_timeout_s=10, max_workers=4)
        report = engine.discover([Path("frameworks/refactoring"), Path("frameworks/testing")])

        # Or scan a directory of frameworks
        report = engine.discover_directory(Path("frameworks"))
    """

    def __init__(
        self,
        loader: Optional[ArtifactLoader] = None,
        validate_fn: ValidateFn = validate,
        load_timeout_s: Optional[float] = DEFAULT_LOAD_TIMEOUT_S,
        max_workers: int = 1,
    ):
        """
        Initialize the engine.

        Args:
            loader: Artifact loader (defaults to FileArtifactLoader)
            validate_fn: Structural validator
            load_timeout_s: Timeout for each descriptor parse and step load; None disables
            max_workers: Number of frameworks processed concurrently
        """
        self._loader = loader if loader is not None else FileArtifactLoader()
        self._validate = validate_fn
        self._load_timeout_s = load_timeout_s
        self._max_workers = max(1, int(max_workers))

    @property
    def loader(self) -> ArtifactLoader:
        return self._loader

    def list_framework_roots(self, base_path: Path | str) -> list[Path]:
        """
        List framework directories below a base path.

        Only immediate sub-directories holding a descriptor are returned;
        files and plain directories are ignored.

        Raises:
            FrameworkRootError: If base_path cannot be listed
        """
        base = Path(base_path)
        try:
            entries = sorted(base.iterdir())
        except OSError as e:
            raise FrameworkRootError(f"Cannot list framework directory {base}: {e}") from e

        roots = []
        for entry in entries:
            if not entry.is_dir():
                continue
            if find_descriptor(entry) is None:
                logger.debug(f"Ignoring {entry}: no framework descriptor")
                continue
            roots.append(entry)
        return roots

    def discover_directory(self, base_path: Path | str) -> DiscoveryReport:
        """
        Discover every framework found below a base path.

        Raises:
            FrameworkRootError: If base_path cannot be listed
        """
        return self.discover(self.list_framework_roots(base_path))

    def discover(self, roots: Iterable[Path | str]) -> DiscoveryReport:
        """
        Run a discovery pass over framework roots.

        Args:
            roots: Framework directories

        Returns:
            DiscoveryReport with loaded steps and skip entries
        """
        root_list = [Path(r) for r in roots]

        if self._max_workers > 1 and len(root_list) > 1:
            with ThreadPoolExecutor(
                max_workers=self._max_workers, thread_name_prefix="stepwright-discover"
            ) as pool:
                outcomes = list(pool.map(self.discover_framework, root_list))
        else:
            outcomes = [self.discover_framework(root) for root in root_list]

        outcomes.sort(key=lambda o: (o.name, str(o.root)))
        return self._merge(outcomes)

    def _merge(self, outcomes: list[FrameworkOutcome]) -> DiscoveryReport:
        report = DiscoveryReport()
        seen: dict[str, Path] = {}

        for outcome in outcomes:
            if outcome.parsed and outcome.name in seen:
                detail = (
                    f"duplicate framework name '{outcome.name}' in {outcome.root} "
                    f"(already discovered in {seen[outcome.name]})"
                )
                logger.warning(f"Skipping framework: {detail}")
                report.skipped.append(
                    SkipEntry(key=outcome.name, reason=SkipReason.DESCRIPTOR_ERROR, detail=detail)
                )
                continue

            if outcome.parsed:
                seen[outcome.name] = outcome.root
                report.frameworks.append(outcome.name)
                report.framework_roots[outcome.name] = outcome.root
            report.loaded.extend(outcome.loaded)
            report.skipped.extend(outcome.skipped)

        logger.info(
            f"Discovery complete: {len(report.frameworks)} frameworks, "
            f"{len(report.loaded)} steps loaded, {len(report.skipped)} skipped"
        )
        return report

    def discover_framework(self, root: Path | str) -> FrameworkOutcome:
        """
        Discover the steps of a single framework root.

        Never raises; descriptor problems are recorded as a skip entry.
        """
        root = Path(root)
        outcome = FrameworkOutcome(name=root.name, root=root)

        try:
            descriptor = _call_with_timeout(load_descriptor, self._load_timeout_s, root)
        except TimeoutError as e:
            detail = f"descriptor parse {e}"
            logger.warning(f"Skipping framework {root.name}: {detail}")
            outcome.skipped.append(
                SkipEntry(key=root.name, reason=SkipReason.DESCRIPTOR_ERROR, detail=detail)
            )
            return outcome
        except Exception as e:
            logger.warning(f"Skipping framework {root.name}: {e}", extra={"framework": root.name})
            outcome.skipped.append(
                SkipEntry(key=root.name, reason=SkipReason.DESCRIPTOR_ERROR, detail=str(e))
            )
            return outcome

        outcome.name = descriptor.name
        outcome.parsed = True
        logger.info(
            f"Discovered framework {descriptor.name} v{descriptor.version} "
            f"({len(descriptor.steps)} steps declared)"
        )

        for step_config in descriptor.steps.values():
            result = self._load_step(descriptor, step_config)
            if isinstance(result, LoadedStep):
                outcome.loaded.append(result)
            else:
                outcome.skipped.append(result)

        return outcome

    def _load_step(self, descriptor: FrameworkDescriptor, step_config: StepConfig) -> LoadedStep | SkipEntry:
        key = make_key(descriptor.name, step_config.name)

        try:
            loaded: LoadResult = _call_with_timeout(
                self._loader.load, self._load_timeout_s, step_config, descriptor.file_root
            )
        except TimeoutError as e:
            return self._skip(key, SkipReason.LOAD_TIMEOUT, f"loading {step_config.file} {e}")
        except (Exception, SystemExit) as e:
            # Loaders report failures as values; a raising loader is treated the same way
            return self._skip(key, SkipReason.LOAD_ERROR, f"{type(e).__name__}: {e}")

        if not loaded.ok:
            return self._skip(key, loaded.reason or SkipReason.LOAD_ERROR, loaded.detail)

        validation = self._validate(loaded.artifact, loaded.path)
        if not validation.is_valid:
            return self._skip(
                key,
                SkipReason.INVALID_SHAPE,
                f"{loaded.path}: {'; '.join(validation.errors)}",
                errors=list(validation.errors),
            )

        for warning in validation.warnings:
            logger.info(f"Step {key}: {warning}")

        logger.debug(f"Loaded step {key} ({validation.shape_kind.value}) from {loaded.path}")
        return LoadedStep(
            framework=descriptor.name,
            name=step_config.name,
            config=step_config,
            artifact=loaded.artifact,
            file_path=loaded.path,
            shape=validation.shape_kind,
        )

    @staticmethod
    def _skip(key: str, reason: SkipReason, detail: str, errors: Optional[list[str]] = None) -> SkipEntry:
        logger.warning(f"Skipping step {key} [{reason.value}]: {detail}", extra={"step_key": key})
        return SkipEntry(key=key, reason=reason, detail=detail, errors=errors or [])
