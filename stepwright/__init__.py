"""
stepwright - Dynamic step registry

Discovers steps declared by framework packages, loads and validates their
artifacts, and registers them into a step runtime by `framework.step_name`.
"""

__version__ = "0.1.0"
__author__ = "Local Pipeline Team"


__all__ = [
    "DiscoveryEngine",
    "FrameworkStepRegistry",
    "StepRuntime",
    "StepwrightConfig",
    "load_config",
    "get_stepwright_home",
]

from .config import StepwrightConfig, load_config, get_stepwright_home
from .discovery import DiscoveryEngine
from .registry import FrameworkStepRegistry
from .runtime import StepRuntime
