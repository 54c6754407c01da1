"""
LoadedStep schema - a step whose artifact was loaded and validated.

LoadedStep records are created by the discovery engine only after both
loading and validation succeeded. They are immutable and live in the
flat step table until the next discovery pass replaces them.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .descriptor import StepConfig
from .validation import ShapeKind

KEY_SEPARATOR = "."


def make_key(framework: str, name: str) -> str:
    """Build the composite key `framework.name`."""
    return f"{framework}{KEY_SEPARATOR}{name}"


def split_key(key: str) -> tuple[str, str]:
    """
    Split a composite key into (framework, name).

    Framework names cannot contain dots, so the first dot is the separator.

    Raises:
        ValueError: If the key has no separator
    """
    framework, sep, name = key.partition(KEY_SEPARATOR)
    if not sep or not framework or not name:
        raise ValueError(f"Not a composite step key: {key!r}")
    return framework, name


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class LoadedStep:
    """
    A loaded, validated step.

    Attributes:
        framework: Owning framework name
        name: Step name
        config: Declared StepConfig
        artifact: The loaded artifact (class, module or object); opaque to the registry
        file_path: Absolute path the artifact was loaded from
        shape: Shape detected by the validator
        loaded_at: UTC timestamp of the load
    """
    framework: str
    name: str
    config: StepConfig
    artifact: Any
    file_path: Path
    shape: ShapeKind
    loaded_at: datetime = field(default_factory=_utcnow)

    @property
    def key(self) -> str:
        """Composite key under which the step is registered."""
        return make_key(self.framework, self.name)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON output (artifact omitted)."""
        return {
            "key": self.key,
            "framework": self.framework,
            "name": self.name,
            "config": self.config.to_dict(),
            "file_path": str(self.file_path),
            "shape": self.shape.value,
            "loaded_at": self.loaded_at.isoformat(),
        }
