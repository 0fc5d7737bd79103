"""metrics.errors

Exception types shared across the harness.

Only conditions that stop something are exceptions. A failing probe is a
value (:class:`metrics.execution.model.InvocationResult` with ``ok=False``)
and a missing KSM control file is a log line, so neither appears here.
"""

from __future__ import annotations


class MetricsError(Exception):
    """Base class for harness errors."""


class UsageError(MetricsError):
    """Malformed or unknown command-line flag."""


class ConfigError(MetricsError):
    """Invalid value in the environment / ``.env`` configuration."""


class KsmStateError(MetricsError):
    """KSM mutation attempted before its settings were captured, or a
    control file holding something other than an integer."""


class VersionLookupError(MetricsError):
    """The version manifest could not provide the requested key."""


class UnsuitableImageError(ConfigError):
    """Container image cannot run the launch-time probe (no full ``date``)."""
