"""
ValidationResult schema - outcome of structural validation of an artifact.

The validator classifies every artifact once into a ShapeKind. Downstream
code (LoadedStep, StepShim) dispatches on that tag instead of probing the
artifact again.
"""

from dataclasses import dataclass, field
from enum import Enum


class ShapeKind(str, Enum):
    """
    Structural shape of a step artifact.

    CONSTRUCTIBLE: a class; instantiated per invocation, then `execute` is called
    CAPABILITY_OBJECT: a module or object exposing `execute` directly
    UNRECOGNIZED: nothing usable was loaded
    """
    CONSTRUCTIBLE = "constructible"
    CAPABILITY_OBJECT = "capability-object"
    UNRECOGNIZED = "unrecognized"


@dataclass
class ValidationResult:
    """
    Result of validating a loaded artifact.

    Attributes:
        is_valid: True when the artifact exposes an invocable entry point
        errors: Hard failures (only a missing entry point today)
        warnings: Soft findings, such as a missing config declaration
        shape_kind: Detected shape
        has_invoke: Whether an `execute` capability was found
        has_metadata: Whether a `config` / `get_config` capability was found
    """
    is_valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    shape_kind: ShapeKind = ShapeKind.UNRECOGNIZED
    has_invoke: bool = False
    has_metadata: bool = False
