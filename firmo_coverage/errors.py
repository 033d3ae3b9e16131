"""
Exception types for coverage tracking.

Configuration and lifecycle errors are raised to the caller. Faults inside
tracking calls are recorded as anomalies instead, so they never reach the
program under test.
"""


class CoverageError(Exception):
    """Base class for all coverage errors."""


class ConfigurationError(CoverageError, ValueError):
    """Invalid coverage configuration (bad include/exclude rule, unknown formatter)."""


class SessionStateError(CoverageError):
    """Operation not valid in the session's current lifecycle state."""


class SessionAlreadyActiveError(SessionStateError):
    """Another session is already running in this process."""


class SessionClosedError(SessionStateError):
    """Mutation attempted on a stopped session."""


class UnknownFileError(CoverageError, KeyError):
    """Strict lookup of a file that was never registered."""

    def __init__(self, path: str):
        super().__init__(path)
        self.path = path

    def __str__(self) -> str:
        return f"File not registered: {self.path}"


class TraceFormatError(CoverageError, ValueError):
    """A recorded trace file is malformed."""
