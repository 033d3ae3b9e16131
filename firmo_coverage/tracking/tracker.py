"""
Execution Tracker - counts line executions reported by the instrumentation hook.

A line executing also counts as an entry into every block whose entry line it
is; entering a function body counts a call of that function. Executions of
non-executable lines are accepted and counted as anomalies, since the
classifier can be wrong and the tracked program must keep running.
"""

import logging

from firmo_coverage.models import ConditionRecord, LineKind, LineRecord
from firmo_coverage.tracking.store import AnomalyKind, FileCoverage, FileRegistry

logger = logging.getLogger(__name__)


class ExecutionTracker:
    """Record and query line executions."""

    def __init__(
        self,
        registry: FileRegistry,
        track_blocks: bool = True,
        track_conditions: bool = False,
    ):
        self.registry = registry
        self.track_blocks = track_blocks
        self.track_conditions = track_conditions

    def record_execution(self, path: str, line: int) -> None:
        """Count one execution of ``line``; no-op for unknown files."""
        file = self.registry.lookup(path)
        if file is None:
            return

        with file.lock:
            file.ensure_open()
            try:
                self.apply_execution(file, line, file.line_record(line))
            except Exception:
                file.anomalies[AnomalyKind.INTERNAL_ERROR] += 1
                logger.exception("Failed to record execution of %s:%s", file.path, line)

    def apply_execution(self, file: FileCoverage, line: int, record: LineRecord) -> None:
        """Increment counters for one execution. Caller holds ``file.lock``."""
        record.execution_count += 1
        if not record.kind.is_executable and not _is_block_end(record):
            file.anomalies[AnomalyKind.NON_EXECUTABLE_EXECUTION] += 1

        for key in file.entries.get(line, ()):
            if self.track_blocks:
                file.blocks[key].execution_count += 1
            function = file.functions.get(key)
            if function is not None:
                function.execution_count += 1

    def record_condition(self, path: str, line: int, index: int, outcome: bool) -> None:
        """Count one evaluation of a condition operand."""
        if not self.track_conditions:
            return

        file = self.registry.lookup(path)
        if file is None:
            return

        with file.lock:
            file.ensure_open()
            try:
                key = (line, index)
                condition = file.conditions.get(key)
                if condition is None:
                    condition = ConditionRecord(line, index)
                    file.conditions[key] = condition
                if outcome:
                    condition.true_count += 1
                else:
                    condition.false_count += 1
            except Exception:
                file.anomalies[AnomalyKind.INTERNAL_ERROR] += 1
                logger.exception("Failed to record condition %s:%s[%s]", file.path, line, index)

    def was_executed(self, path: str, line: int) -> bool:
        """Whether ``line`` executed at least once; False for unknown files or lines."""
        file = self.registry.get(path)
        if file is None:
            return False
        record = file.lines.get(line)
        return record is not None and record.execution_count > 0

    def execution_count(self, path: str, line: int) -> int:
        file = self.registry.get(path)
        if file is None:
            return 0
        record = file.lines.get(line)
        return record.execution_count if record is not None else 0


def _is_block_end(record: LineRecord) -> bool:
    # interpreters report 'end' lines on return
    return record.kind == LineKind.BLOCK_END
