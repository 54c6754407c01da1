"""
FrameworkStepRegistry - discover framework steps and keep them registered.

The registry provides:
- Discovery of every framework below a base directory
- A flat step table keyed by `framework.step_name`, replaced wholesale on
  every discovery pass
- Registration of all loaded steps into a StepRuntime
- Lookup of loaded steps by key or framework
- Reloading a single framework without rescanning the others

Example directory structure:
    frameworks/
        refactoring_management/
            framework.yaml
            steps/
                refactor_step.py
                refactor_analyze.py
        testing_management/
            framework.json
            steps/
                run_tests.py
"""

import logging
import threading
from collections.abc import Iterable
from pathlib import Path
from typing import Any, Optional

from stepwright.adapter import register_all
from stepwright.discovery import DiscoveryEngine
from stepwright.errors import FrameworkNotFoundError
from stepwright.schemas import DiscoveryReport, LoadedStep

logger = logging.getLogger(__name__)


class FrameworkStepRegistry:
    """
    Registry for framework-provided steps.

    Usage:
        runtime = StepRuntime()
        registry = FrameworkStepRegistry(runtime)
        report = registry.initialize("frameworks/")

        registry.get_framework_steps_by_name("refactoring_management")
        runtime.invoke("refactoring_management.refactor_step", {"project_path": "/repo"})
    """

    def __init__(self, runtime: Any = None, engine: Optional[DiscoveryEngine] = None):
        """
        Initialize the registry.

        Args:
            runtime: Step runtime to register into; may be supplied later
            engine: Discovery engine (defaults to a sequential DiscoveryEngine)
        """
        self.runtime = runtime
        self.framework_base_path: Optional[Path] = None
        self._engine = engine if engine is not None else DiscoveryEngine()
        self._steps: dict[str, LoadedStep] = {}
        self._framework_roots: dict[str, Path] = {}
        self._registered: set[str] = set()
        self._report = DiscoveryReport()
        self._lock = threading.RLock()

    @property
    def engine(self) -> DiscoveryEngine:
        return self._engine

    @property
    def report(self) -> DiscoveryReport:
        """Report of the most recent discovery pass."""
        return self._report

    @property
    def registered_keys(self) -> list[str]:
        """Keys successfully published into the runtime, sorted."""
        with self._lock:
            return sorted(self._registered)

    def initialize(self, framework_base_path: Path | str, runtime: Any = None) -> DiscoveryReport:
        """
        Discover all frameworks below a base path and register their steps.

        Args:
            framework_base_path: Directory holding one sub-directory per framework
            runtime: Step runtime; overrides the one given at construction

        Returns:
            The DiscoveryReport of this pass

        Raises:
            FrameworkRootError: If the base path cannot be listed
        """
        self.framework_base_path = Path(framework_base_path)
        if runtime is not None:
            self.runtime = runtime

        report = self.load(self.discover_frameworks(self.framework_base_path))
        self.register_framework_steps()
        return report

    def discover_frameworks(self, framework_base_path: Path | str) -> list[Path]:
        """
        List framework directories below a base path.

        Raises:
            FrameworkRootError: If the base path cannot be listed
        """
        return self._engine.list_framework_roots(framework_base_path)

    def load(self, roots: Iterable[Path | str]) -> DiscoveryReport:
        """
        Run a discovery pass over framework roots and replace the step table.

        Steps are not registered; call register_framework_steps() for that.
        """
        report = self._engine.discover(roots)
        with self._lock:
            self._report = report
            self._steps = {step.key: step for step in report.loaded}
            self._framework_roots = dict(report.framework_roots)
            self._registered = set()
        return report

    def register_framework_steps(self) -> list[str]:
        """
        Register every loaded step with the runtime.

        Returns:
            Keys that were published; steps that could not be registered
            stay loaded and show up in unregistered_keys()
        """
        with self._lock:
            steps = list(self._steps.values())

        registered = register_all(steps, self.runtime)

        with self._lock:
            self._registered.update(registered)
        return registered

    def reload_framework(self, framework_name: str) -> DiscoveryReport:
        """
        Rediscover one framework and re-register its steps.

        Old entries of the framework are dropped from the step table and the
        runtime before the new ones are registered. Invocations already in
        flight keep using the shim they obtained.

        Args:
            framework_name: Name of a previously discovered framework

        Returns:
            DiscoveryReport for this framework only

        Raises:
            FrameworkNotFoundError: If the framework is unknown
        """
        with self._lock:
            root = self._framework_roots.get(framework_name)
        if root is None:
            raise FrameworkNotFoundError(f"Framework {framework_name} not found")

        logger.info(f"Reloading framework {framework_name} from {root}")
        partial = self._engine.discover([root])

        with self._lock:
            stale = [key for key, step in self._steps.items() if step.framework == framework_name]
            for key in stale:
                del self._steps[key]
                self._registered.discard(key)
                self._unpublish(key)

            self._framework_roots.pop(framework_name, None)
            self._framework_roots.update(partial.framework_roots)
            for step in partial.loaded:
                self._steps[step.key] = step

            self._report = self._merge_report(framework_name, partial)

        registered = register_all(partial.loaded, self.runtime)
        with self._lock:
            self._registered.update(registered)
        return partial

    def _unpublish(self, key: str) -> None:
        remove = getattr(self.runtime, "remove", None)
        if callable(remove):
            remove(key)

    def _merge_report(self, framework_name: str, partial: DiscoveryReport) -> DiscoveryReport:
        previous = self._report
        replaced = {framework_name, *partial.frameworks}

        merged = DiscoveryReport(
            loaded=[s for s in previous.loaded if s.framework not in replaced],
            skipped=[e for e in previous.skipped if e.framework not in replaced],
            frameworks=[f for f in previous.frameworks if f not in replaced],
            framework_roots={
                name: root for name, root in previous.framework_roots.items() if name not in replaced
            },
        )
        merged.loaded.extend(partial.loaded)
        merged.skipped.extend(partial.skipped)
        merged.frameworks.extend(partial.frameworks)
        merged.framework_roots.update(partial.framework_roots)
        merged.frameworks.sort()
        return merged

    def get_framework_steps(self) -> list[str]:
        """All loaded step keys."""
        with self._lock:
            return list(self._steps)

    def get_framework_steps_by_name(self, framework_name: str) -> list[str]:
        """Loaded step keys of one framework."""
        with self._lock:
            return [key for key, step in self._steps.items() if step.framework == framework_name]

    def is_framework_step(self, key: str) -> bool:
        """Check if a key belongs to a loaded framework step."""
        with self._lock:
            return key in self._steps

    def get_framework_step_info(self, key: str) -> Optional[LoadedStep]:
        """Get the LoadedStep for a key, or None."""
        with self._lock:
            return self._steps.get(key)

    def get_loaded_frameworks(self) -> list[str]:
        """Names of frameworks with at least one loaded step, sorted."""
        with self._lock:
            return sorted({step.framework for step in self._steps.values()})

    def unregistered_keys(self) -> list[str]:
        """Loaded steps that are not registered with the runtime."""
        with self._lock:
            return sorted(set(self._steps) - self._registered)
