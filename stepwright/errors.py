"""
Error classes for stepwright.

Discovery and registration are best-effort: defects in a single framework
or step are recorded in the DiscoveryReport instead of being raised. The
exceptions below cover the remaining boundaries:

- DescriptorError: a framework descriptor cannot be read or is malformed
  (caught by the discovery engine and turned into a skip entry)
- FrameworkRootError: the framework base directory cannot be scanned
- FrameworkNotFoundError: reload requested for an unknown framework
- StepNotFoundError: runtime lookup of an unregistered step key
- ConfigError: invalid stepwright configuration

Errors raised by a step while it is being invoked are never wrapped;
they reach the caller unchanged.
"""


class StepwrightError(Exception):
    """Base exception for stepwright."""
    pass


class DescriptorError(StepwrightError):
    """
    Framework descriptor could not be parsed.

    Examples:
    - Descriptor file missing from the framework directory
    - Invalid YAML/JSON syntax
    - Top level is not a mapping, or `steps` is not a mapping
    - Framework name contains invalid characters
    """
    pass


class FrameworkRootError(StepwrightError):
    """Raised when the framework base directory cannot be listed."""
    pass


class FrameworkNotFoundError(StepwrightError):
    """Raised when a framework is not known to the registry."""
    pass


class StepNotFoundError(StepwrightError, KeyError):
    """
    Raised when a step key is not registered in the runtime.

    Subclasses KeyError so callers treating the runtime as a mapping
    can keep catching KeyError.
    """

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message
        return str(self.args[0]) if self.args else ""


class ConfigError(StepwrightError):
    """Configuration validation error."""
    pass
