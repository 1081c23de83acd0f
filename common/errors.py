"""Error types surfaced by the adjuster.

ConfigError and DataError are kept distinct so the CLI can map them to
separate exit codes and messages.
"""
from __future__ import annotations


class AdjusterError(Exception):
    """Base class for all errors raised by the adjuster."""

    pass


class ConfigError(AdjusterError):
    """Raised when the target configuration is malformed or incomplete."""

    pass


class DataError(AdjusterError):
    """Raised when the holdings input is malformed."""

    pass
