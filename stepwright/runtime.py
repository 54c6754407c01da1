"""
Central step runtime - the shared key -> invocable map.

The runtime is the single address space the orchestrator uses to invoke
steps by composite key (`framework.step_name`). It is constructed once
and passed explicitly to whoever registers or invokes steps.

Registration is the only shared mutable state of the registry, so every
access to the map goes through one lock: concurrent registrations of
different keys never interfere, and concurrent registrations of the same
key resolve to one of the writes (last write wins).
"""

import logging
import threading
from typing import Any, Optional

from stepwright.errors import StepNotFoundError

logger = logging.getLogger(__name__)


class StepRuntime:
    """
    Registry for invocable steps by composite key.

    Usage:
        runtime = StepRuntime()
        runtime.register("refactoring.analyze", shim)

        result = runtime.invoke("refactoring.analyze", {"project_path": "/repo"})
    """

    def __init__(self) -> None:
        """Initialize an empty runtime."""
        self._steps: dict[str, Any] = {}
        self._lock = threading.RLock()

    def register(self, key: str, invocable: Any) -> None:
        """
        Register an invocable under a key, replacing any previous entry.

        Args:
            key: Composite step key
            invocable: Object exposing invoke(context, options), or a plain callable
        """
        with self._lock:
            replaced = key in self._steps
            self._steps[key] = invocable
        if replaced:
            logger.debug(f"Re-registered step {key}")

    def get(self, key: str) -> Any:
        """
        Get the invocable registered under a key.

        Raises:
            StepNotFoundError: If no step is registered under the key
        """
        with self._lock:
            try:
                return self._steps[key]
            except KeyError:
                registered = sorted(self._steps)
        raise StepNotFoundError(f"No step registered for key: {key}. Registered: {registered}")

    def has(self, key: str) -> bool:
        """Check if a step is registered under a key."""
        with self._lock:
            return key in self._steps

    def remove(self, key: str) -> bool:
        """
        Remove a registered step.

        Returns:
            True if a step was removed
        """
        with self._lock:
            if key not in self._steps:
                return False
            del self._steps[key]
            return True

    def list_keys(self, prefix: Optional[str] = None) -> list[str]:
        """
        List registered keys, sorted.

        Args:
            prefix: Only return keys starting with this prefix (e.g. "refactoring.")
        """
        with self._lock:
            keys = list(self._steps)
        if prefix is not None:
            keys = [k for k in keys if k.startswith(prefix)]
        return sorted(keys)

    def invoke(self, key: str, context: Optional[dict[str, Any]] = None, options: Optional[dict[str, Any]] = None) -> Any:
        """
        Invoke a registered step.

        The invocable is looked up under the lock and called outside it, so
        a long-running step never blocks registration.

        Raises:
            StepNotFoundError: If no step is registered under the key
            Exception: Anything the step raises, unchanged
        """
        invocable = self.get(key)
        if hasattr(invocable, "invoke"):
            return invocable.invoke(context, options)
        return invocable(context, options)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.has(key)

    def __len__(self) -> int:
        with self._lock:
            return len(self._steps)
