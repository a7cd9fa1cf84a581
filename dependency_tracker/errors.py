"""
Exception types raised by the dependency tracker pipeline.

Only discovery-level and unexpected failures abort a run. Resolution and
per-file extraction problems are collected on the result instead of raised.
"""


class TrackerError(Exception):
    """Base class for all dependency tracker errors."""


class DiscoveryError(TrackerError):
    """Project files could not be enumerated or exceeded a resource limit."""


class AnalysisCancelled(TrackerError):
    """The run was cancelled before it produced a result."""


class ConfigError(TrackerError):
    """A settings or compiler configuration file is unusable."""
