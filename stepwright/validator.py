"""
Structural validation of step artifacts.

A step artifact comes in one of two shapes:

- constructible: a class. `execute` and the optional `config` live on the
  class; the runtime creates a fresh instance for every invocation.
- capability object: anything else (typically the step module itself, or
  a module-level object). `execute` and `config` are plain attributes.

The only hard requirement is an invocable `execute`. A missing config
declaration is reported as a warning.

validate() never raises; every outcome is encoded in the ValidationResult.
"""

import inspect
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from stepwright.schemas import ShapeKind, ValidationResult

logger = logging.getLogger(__name__)

INVOKE_ATTR = "execute"
METADATA_ATTR = "config"
METADATA_GETTER_ATTR = "get_config"

NO_ARTIFACT_ERROR = "no artifact loaded"
NO_INVOKE_ERROR = "no invocable entry point"
NO_METADATA_WARNING = "no declared config"


def classify(artifact: Any) -> ShapeKind:
    """Return the ShapeKind of an artifact without probing its capabilities."""
    if artifact is None:
        return ShapeKind.UNRECOGNIZED
    if inspect.isclass(artifact):
        return ShapeKind.CONSTRUCTIBLE
    return ShapeKind.CAPABILITY_OBJECT


def _safe_getattr(obj: Any, name: str) -> Any:
    # Properties and __getattr__ hooks on arbitrary artifacts may raise
    try:
        return getattr(obj, name, None)
    except Exception:
        return None


def _has_invoke(artifact: Any) -> bool:
    return callable(_safe_getattr(artifact, INVOKE_ATTR))


def _has_metadata(artifact: Any) -> bool:
    if isinstance(_safe_getattr(artifact, METADATA_ATTR), Mapping):
        return True
    return callable(_safe_getattr(artifact, METADATA_GETTER_ATTR))


def validate(artifact: Any, source_path: Path | str | None = None) -> ValidationResult:
    """
    Check that an artifact exposes the step capability contract.

    Args:
        artifact: Loaded artifact of any shape (may be None)
        source_path: Where the artifact came from; used only in log messages

    Returns:
        ValidationResult with the detected shape and any errors/warnings
    """
    shape = classify(artifact)
    if shape is ShapeKind.UNRECOGNIZED:
        logger.warning(f"Validation failed for {source_path}: {NO_ARTIFACT_ERROR}")
        return ValidationResult(
            is_valid=False,
            errors=[NO_ARTIFACT_ERROR],
            shape_kind=shape,
        )

    # For classes the probes hit the class surface; for everything else the value itself
    has_invoke = _has_invoke(artifact)
    has_metadata = _has_metadata(artifact)

    errors: list[str] = []
    warnings: list[str] = []
    if not has_invoke:
        errors.append(NO_INVOKE_ERROR)
    if not has_metadata:
        warnings.append(NO_METADATA_WARNING)

    result = ValidationResult(
        is_valid=has_invoke and not errors,
        errors=errors,
        warnings=warnings,
        shape_kind=shape,
        has_invoke=has_invoke,
        has_metadata=has_metadata,
    )

    if errors:
        logger.warning(f"Validation failed for {source_path} ({shape.value}): {'; '.join(errors)}")
    elif warnings:
        logger.debug(f"Validation warnings for {source_path} ({shape.value}): {'; '.join(warnings)}")

    return result
