"""
Coverage Marker - records that a test assertion validated a line.

Covered lines are a subset of executed lines: marking a line that has not
executed yet records one execution first, under the same lock, so no reader
ever sees ``covered`` without an execution. Marking is idempotent.
"""

import logging

from firmo_coverage.tracking.store import AnomalyKind, FileRegistry
from firmo_coverage.tracking.tracker import ExecutionTracker

logger = logging.getLogger(__name__)


class CoverageMarker:
    """Mark and query assertion-validated lines."""

    def __init__(self, registry: FileRegistry, tracker: ExecutionTracker):
        self.registry = registry
        self.tracker = tracker

    def mark_covered(self, path: str, line: int) -> None:
        """Mark ``line`` covered; no-op for unknown files or already-covered lines."""
        file = self.registry.lookup(path)
        if file is None:
            return

        with file.lock:
            file.ensure_open()
            try:
                record = file.line_record(line)
                if record.covered:
                    return
                if record.execution_count == 0:
                    self.tracker.apply_execution(file, line, record)
                record.covered = True
                if not record.kind.is_executable:
                    file.anomalies[AnomalyKind.NON_EXECUTABLE_COVERAGE] += 1
            except Exception:
                file.anomalies[AnomalyKind.INTERNAL_ERROR] += 1
                logger.exception("Failed to mark %s:%s covered", file.path, line)

    def was_covered(self, path: str, line: int) -> bool:
        """Whether an assertion validated ``line``; False for unknown files or lines."""
        file = self.registry.get(path)
        if file is None:
            return False
        record = file.lines.get(line)
        return record is not None and record.covered
