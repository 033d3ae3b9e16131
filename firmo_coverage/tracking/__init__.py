"""
Dynamic coverage tracking.

Execution counts, assertion coverage, and the per-file record store.
"""

from firmo_coverage.tracking.marker import CoverageMarker
from firmo_coverage.tracking.store import (
    AnomalyCounter,
    AnomalyKind,
    FileCoverage,
    FileRegistry,
)
from firmo_coverage.tracking.tracker import ExecutionTracker

__all__ = [
    "AnomalyCounter",
    "AnomalyKind",
    "CoverageMarker",
    "ExecutionTracker",
    "FileCoverage",
    "FileRegistry",
]
