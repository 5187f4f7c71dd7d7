"""Exception types for null-e.

Only configuration errors are fatal to a scan. Everything else that can go
wrong while scanning is recovered locally and reported as data.
"""


class NullEError(Exception):
    """Base class for all null-e errors."""


class ConfigError(NullEError):
    """Invalid or missing scan configuration (bad root, no roots)."""


class ScanCancelled(NullEError):
    """Raised at a traversal checkpoint once the consumer has gone away."""


class ChannelClosed(NullEError):
    """Raised when sending on a channel whose receiver was closed or dropped."""

