"""
Firmo Coverage - line, block and assertion coverage for Lua code.

Distinguishes lines that merely ran from lines an assertion validated.

Usage:
    firmo-coverage classify <file>     # Show how each line is classified
    firmo-coverage report <trace>      # Replay a trace and render a report
    firmo-coverage init                # Write a sample configuration
"""

__version__ = "0.1.0"

from firmo_coverage.analysis import classify
from firmo_coverage.config import ConfigLoader, CoverageConfig, PathFilter
from firmo_coverage.coverage import (
    CoverageEngine,
    CoverageSession,
    CoverageSummary,
    active_session,
    mark_current_line_covered,
    marks_coverage,
    start,
)
from firmo_coverage.errors import (
    ConfigurationError,
    CoverageError,
    SessionAlreadyActiveError,
    SessionClosedError,
    SessionStateError,
    UnknownFileError,
)
from firmo_coverage.models import LineKind, LineStatus

__all__ = [
    "ConfigLoader",
    "ConfigurationError",
    "CoverageConfig",
    "CoverageEngine",
    "CoverageError",
    "CoverageSession",
    "CoverageSummary",
    "LineKind",
    "LineStatus",
    "PathFilter",
    "SessionAlreadyActiveError",
    "SessionClosedError",
    "SessionStateError",
    "UnknownFileError",
    "__version__",
    "active_session",
    "classify",
    "mark_current_line_covered",
    "marks_coverage",
    "start",
]
