"""
FrameworkDescriptor and StepConfig - the declarative framework definition.

A framework descriptor is authored alongside the framework package and
lists the steps it provides. The registry only reads it; once its steps
are absorbed into the flat step table the descriptor itself is dropped.

Example (framework.yaml):
    name: refactoring_management
    version: 1.0.0
    description: Refactoring steps
    steps:
      refactor_step:
        type: refactoring
        category: orchestration
        description: Main refactoring orchestration step
        dependencies: [step_runtime]
        file: steps/refactor_step.py
"""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from stepwright.errors import DescriptorError

logger = logging.getLogger(__name__)

FRAMEWORK_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9_-]+$")
FRAMEWORK_NAME_MAX_LENGTH = 50
VERSION_PATTERN = re.compile(r"^\d+\.\d+\.\d+$")


@dataclass(frozen=True)
class StepConfig:
    """
    A step declaration within a framework descriptor.

    Attributes:
        name: Step name, unique within its framework
        type: Free-form step type (e.g. "refactoring")
        category: Step category (e.g. "orchestration")
        description: Human-readable description
        dependencies: Capability names the step expects (informational)
        file: Path of the step artifact relative to the framework's
              steps/ directory. None means the declaration is incomplete.
    """
    name: str
    type: str = ""
    category: str = ""
    description: str = ""
    dependencies: list[str] = field(default_factory=list)
    file: Optional[str] = None

    @classmethod
    def from_dict(cls, name: str, data: dict[str, Any]) -> "StepConfig":
        """
        Build a StepConfig from a descriptor entry.

        Args:
            name: The mapping key the entry was declared under
            data: The entry itself

        Returns:
            StepConfig with `name` taken from the entry, falling back to the key
        """
        dependencies = data.get("dependencies") or []
        if isinstance(dependencies, str):
            dependencies = [dependencies]

        file = data.get("file")
        return cls(
            name=str(data.get("name") or name),
            type=str(data.get("type") or ""),
            category=str(data.get("category") or ""),
            description=str(data.get("description") or ""),
            dependencies=[str(d) for d in dependencies],
            file=str(file) if file else None,
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON output."""
        result = {
            "name": self.name,
            "type": self.type,
            "category": self.category,
            "description": self.description,
            "dependencies": list(self.dependencies),
        }
        if self.file is not None:
            result["file"] = self.file
        return result


@dataclass(frozen=True)
class FrameworkDescriptor:
    """
    A parsed framework descriptor.

    Attributes:
        name: Framework name (first half of every composite key)
        version: Framework version string
        file_root: Directory the descriptor was found in
        steps: Declared steps in declaration order, keyed by step name
        description: Optional framework description
        category: Optional framework category
    """
    name: str
    version: str
    file_root: Path
    steps: dict[str, StepConfig] = field(default_factory=dict)
    description: str = ""
    category: str = ""

    @classmethod
    def from_dict(cls, data: Any, file_root: Path | str) -> "FrameworkDescriptor":
        """
        Parse a descriptor mapping.

        Args:
            data: Parsed descriptor content
            file_root: Framework directory; its name is the default framework name

        Returns:
            FrameworkDescriptor

        Raises:
            DescriptorError: If the structure or framework name is invalid
        """
        file_root = Path(file_root)
        if not isinstance(data, dict):
            raise DescriptorError(
                f"Descriptor in {file_root} must be a mapping, got {type(data).__name__}"
            )

        name = data.get("name") or file_root.name
        if not isinstance(name, str):
            raise DescriptorError(f"Framework name must be a string, got {type(name).__name__}")
        if len(name) > FRAMEWORK_NAME_MAX_LENGTH:
            raise DescriptorError(
                f"Framework name too long (max {FRAMEWORK_NAME_MAX_LENGTH} characters): {name}"
            )
        if not FRAMEWORK_NAME_PATTERN.match(name):
            raise DescriptorError(f"Framework name contains invalid characters: {name!r}")

        version = str(data.get("version") or "0.0.0")
        if not VERSION_PATTERN.match(version):
            logger.warning(f"Framework {name}: version '{version}' is not semantic (x.y.z)")

        raw_steps = data.get("steps") or {}
        if not isinstance(raw_steps, dict):
            raise DescriptorError(f"Framework {name}: 'steps' must be a mapping")

        steps: dict[str, StepConfig] = {}
        for key, entry in raw_steps.items():
            if not isinstance(entry, dict):
                raise DescriptorError(f"Framework {name}: step '{key}' must be a mapping")
            step = StepConfig.from_dict(str(key), entry)
            if not step.name.strip():
                raise DescriptorError(f"Framework {name}: step names must not be empty")
            if step.name in steps:
                logger.warning(
                    f"Framework {name}: step '{step.name}' declared more than once, last declaration wins"
                )
                del steps[step.name]
            steps[step.name] = step

        return cls(
            name=name,
            version=version,
            file_root=file_root,
            steps=steps,
            description=str(data.get("description") or ""),
            category=str(data.get("category") or ""),
        )
