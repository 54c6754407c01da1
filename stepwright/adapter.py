"""
Registration adapter - publish loaded steps into the step runtime.

Each LoadedStep is wrapped in a StepShim before it is registered. The shim:
1. Injects framework identity into the call context (`framework`,
   `step_name`, `step_runtime`); injected values always override what the
   caller passed, so a caller cannot impersonate another framework
2. Dispatches on the shape detected at validation time: constructible
   steps get a fresh instance per call, capability objects are called directly
3. Propagates anything the step raises, unchanged

Registration itself is best-effort: a missing or malformed runtime only
produces a log entry, and the step stays loaded in the discovery report.
"""

import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Any, Optional

from stepwright.schemas import LoadedStep, ShapeKind

logger = logging.getLogger(__name__)

# Context keys owned by the shim
CONTEXT_FRAMEWORK = "framework"
CONTEXT_STEP_NAME = "step_name"
CONTEXT_RUNTIME = "step_runtime"
RESERVED_CONTEXT_KEYS = frozenset({CONTEXT_FRAMEWORK, CONTEXT_STEP_NAME, CONTEXT_RUNTIME})


class StepShim:
    """
    Invocable wrapper published into the step runtime for one step.

    Attributes mirror the step declaration (type, category, description,
    dependencies) so the orchestrator can inspect a step without touching
    its artifact.
    """

    def __init__(self, loaded_step: LoadedStep, runtime: Any):
        self._step = loaded_step
        self._runtime = runtime

    @property
    def key(self) -> str:
        return self._step.key

    @property
    def framework(self) -> str:
        return self._step.framework

    @property
    def name(self) -> str:
        return self._step.name

    @property
    def type(self) -> str:
        return self._step.config.type

    @property
    def category(self) -> str:
        return self._step.config.category

    @property
    def description(self) -> str:
        return self._step.config.description

    @property
    def dependencies(self) -> list[str]:
        return list(self._step.config.dependencies)

    @property
    def shape(self) -> ShapeKind:
        return self._step.shape

    @property
    def file_path(self) -> Path:
        return self._step.file_path

    def build_context(self, call_context: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        """Merge the caller's context with the injected identity (identity wins)."""
        context = dict(call_context or {})
        spoofed = RESERVED_CONTEXT_KEYS.intersection(context)
        if spoofed:
            logger.warning(f"Step {self.key}: ignoring caller-supplied reserved keys {sorted(spoofed)}")
        context[CONTEXT_FRAMEWORK] = self._step.framework
        context[CONTEXT_STEP_NAME] = self._step.name
        context[CONTEXT_RUNTIME] = self._runtime
        return context

    def invoke(self, call_context: Optional[dict[str, Any]] = None, options: Optional[dict[str, Any]] = None) -> Any:
        """
        Invoke the underlying step.

        Args:
            call_context: Per-call context from the orchestrator
            options: Per-call options, passed through unchanged

        Returns:
            Whatever the step's execute() returns

        Raises:
            Exception: Anything the step raises, unchanged
        """
        context = self.build_context(call_context)
        options = dict(options or {})
        artifact = self._step.artifact

        if self._step.shape is ShapeKind.CONSTRUCTIBLE:
            instance = artifact()
            return instance.execute(context, options)
        if self._step.shape is ShapeKind.CAPABILITY_OBJECT:
            return artifact.execute(context, options)
        raise TypeError(f"Step {self.key} has unrecognized shape and cannot be invoked")

    def __call__(self, call_context: Optional[dict[str, Any]] = None, options: Optional[dict[str, Any]] = None) -> Any:
        return self.invoke(call_context, options)

    def __repr__(self) -> str:
        return f"StepShim(key={self.key}, shape={self.shape.value})"


def register(loaded_step: LoadedStep, runtime: Any) -> bool:
    """
    Publish one loaded step into the runtime under its composite key.

    Args:
        loaded_step: A step from DiscoveryReport.loaded
        runtime: The step runtime; anything exposing register(key, invocable)

    Returns:
        True if the step was published, False if registration was skipped
    """
    if runtime is None:
        logger.warning(
            f"Step runtime not available, skipping registration of {loaded_step.key}",
            extra={"step_key": loaded_step.key},
        )
        return False

    register_fn = getattr(runtime, "register", None)
    if not callable(register_fn):
        logger.warning(
            f"Step runtime {type(runtime).__name__} has no register(), "
            f"skipping registration of {loaded_step.key}"
        )
        return False

    shim = StepShim(loaded_step, runtime)
    try:
        register_fn(loaded_step.key, shim)
    except Exception as e:
        logger.error(f"Failed to register step {loaded_step.key}: {e}")
        return False

    logger.debug(f"Registered step {loaded_step.key}")
    return True


def register_all(steps: Iterable[LoadedStep], runtime: Any) -> list[str]:
    """
    Publish loaded steps into the runtime.

    Returns:
        Keys that were actually published
    """
    registered = [step.key for step in steps if register(step, runtime)]
    logger.info(f"Registered {len(registered)} steps")
    return registered
