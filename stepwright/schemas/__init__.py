"""
stepwright.schemas - Data shapes shared by every registry component.

FrameworkDescriptor -> StepConfig -> ValidationResult -> LoadedStep -> DiscoveryReport

Lifecycle:
1. FrameworkDescriptor: parsed from framework.yaml/json, dropped after discovery
2. StepConfig: one declared step, carried into LoadedStep
3. ValidationResult: transient outcome of structural validation
4. LoadedStep: immutable record of a loaded, validated step
5. DiscoveryReport: loaded steps plus skip entries for one discovery pass
"""

from .descriptor import (
    FrameworkDescriptor,
    StepConfig,
)
from .validation import (
    ShapeKind,
    ValidationResult,
)
from .loaded_step import (
    LoadedStep,
    make_key,
    split_key,
)
from .report import (
    DiscoveryReport,
    SkipEntry,
    SkipReason,
)

__all__ = [
    # Descriptor
    "FrameworkDescriptor",
    "StepConfig",
    # Validation
    "ShapeKind",
    "ValidationResult",
    # Loaded steps
    "LoadedStep",
    "make_key",
    "split_key",
    # Report
    "DiscoveryReport",
    "SkipEntry",
    "SkipReason",
]
