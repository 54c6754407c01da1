"""
DiscoveryReport schema - the result of a discovery pass.

The report is the primary diagnostics surface: it lists every step that
was loaded and every step or framework that was skipped, with a reason
precise enough to tell a missing `file` declaration from a broken file
from a file that does not exist.
"""

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from .loaded_step import LoadedStep, split_key


class SkipReason(str, Enum):
    """Why a step (or a whole framework) did not make it into the step table."""
    MISSING_CONFIG = "missing-config"
    FILE_NOT_FOUND = "file-not-found"
    LOAD_ERROR = "load-error"
    LOAD_TIMEOUT = "load-timeout"
    INVALID_SHAPE = "invalid-shape"
    DESCRIPTOR_ERROR = "descriptor-error"


@dataclass(frozen=True)
class SkipEntry:
    """
    A skipped step or framework.

    Attributes:
        key: Composite key for step skips, framework name for descriptor skips
        reason: Skip classification
        detail: Human-readable detail (resolved path, exception text, ...)
        errors: Validator errors, verbatim, for INVALID_SHAPE skips
    """
    key: str
    reason: SkipReason
    detail: str = ""
    errors: list[str] = field(default_factory=list)

    @property
    def framework(self) -> str:
        """Framework the entry belongs to."""
        if self.reason is SkipReason.DESCRIPTOR_ERROR:
            return self.key
        return split_key(self.key)[0]

    def to_dict(self) -> dict[str, Any]:
        result = {
            "key": self.key,
            "reason": self.reason.value,
            "detail": self.detail,
        }
        if self.errors:
            result["errors"] = list(self.errors)
        return result


@dataclass
class DiscoveryReport:
    """
    Result of a discovery pass.

    Attributes:
        loaded: Loaded, validated steps (unique composite keys)
        skipped: Skipped steps and frameworks, with reasons
        frameworks: Names of frameworks whose descriptor was parsed
        framework_roots: Directory each parsed framework was discovered in
    """
    loaded: list[LoadedStep] = field(default_factory=list)
    skipped: list[SkipEntry] = field(default_factory=list)
    frameworks: list[str] = field(default_factory=list)
    framework_roots: dict[str, Path] = field(default_factory=dict)

    def keys(self) -> list[str]:
        """Composite keys of all loaded steps, in report order."""
        return [step.key for step in self.loaded]

    def get(self, key: str) -> Optional[LoadedStep]:
        """Look up a loaded step by composite key."""
        for step in self.loaded:
            if step.key == key:
                return step
        return None

    def by_framework(self) -> dict[str, dict[str, int]]:
        """Loaded/skipped counts per framework, sorted by framework name."""
        counts: dict[str, dict[str, int]] = {}
        for name in self.frameworks:
            counts.setdefault(name, {"loaded": 0, "skipped": 0})
        for step in self.loaded:
            counts.setdefault(step.framework, {"loaded": 0, "skipped": 0})["loaded"] += 1
        for entry in self.skipped:
            counts.setdefault(entry.framework, {"loaded": 0, "skipped": 0})["skipped"] += 1
        return dict(sorted(counts.items()))

    def reason_counts(self) -> dict[str, int]:
        """Number of skips per reason."""
        return dict(sorted(Counter(entry.reason.value for entry in self.skipped).items()))

    def summary(self) -> dict[str, Any]:
        """Aggregate counts for display or JSON output."""
        return {
            "frameworks": len(self.frameworks),
            "loaded": len(self.loaded),
            "skipped": len(self.skipped),
            "by_framework": self.by_framework(),
            "by_reason": self.reason_counts(),
        }

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON output."""
        return {
            "summary": self.summary(),
            "loaded": [step.to_dict() for step in self.loaded],
            "skipped": [entry.to_dict() for entry in self.skipped],
        }
