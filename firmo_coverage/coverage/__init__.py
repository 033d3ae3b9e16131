"""
Coverage engine.

Session lifecycle, the public tracking API, and summary aggregation.
"""

from firmo_coverage.coverage.assertion import mark_current_line_covered, marks_coverage
from firmo_coverage.coverage.engine import CoverageEngine, active_session, start
from firmo_coverage.coverage.session import CoverageSession, SessionState
from firmo_coverage.coverage.summary import (
    AnomalySummary,
    BlockSummary,
    ConditionSummary,
    CoverageSummary,
    FileSummary,
    FunctionSummary,
    LineSummary,
)

__all__ = [
    "AnomalySummary",
    "BlockSummary",
    "ConditionSummary",
    "CoverageEngine",
    "CoverageSession",
    "CoverageSummary",
    "FileSummary",
    "FunctionSummary",
    "LineSummary",
    "SessionState",
    "active_session",
    "mark_current_line_covered",
    "marks_coverage",
    "start",
]
