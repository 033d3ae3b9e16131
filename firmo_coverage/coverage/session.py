"""
CoverageSession - one coverage run and the handle every call site holds.

Lifecycle is ``created -> running -> stopped``. Registration and tracking
calls are valid only while running; ``summary()`` works while running and
after stopping; nothing leaves ``stopped``. ``stop()`` returns only after every
tracking call already in progress has finished, so a summary taken after it is
complete and stable.
"""

import logging
import threading
from collections.abc import Callable
from enum import Enum
from pathlib import Path
from typing import Any
from uuid import uuid4

from firmo_coverage.analysis.source import normalize_path, read_source
from firmo_coverage.config import CoverageConfig, FilterDecision, PathFilter, ensure_config
from firmo_coverage.coverage.frames import caller_location
from firmo_coverage.coverage.summary import CoverageSummary, combine, summarize_file
from firmo_coverage.errors import SessionClosedError, SessionStateError, UnknownFileError
from firmo_coverage.models import SourceFile
from firmo_coverage.tracking import CoverageMarker, ExecutionTracker, FileRegistry

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    """Lifecycle states of a coverage session."""

    CREATED = "created"
    RUNNING = "running"
    STOPPED = "stopped"


class CoverageSession:
    """
    Owns the per-file coverage data of one run.

    Sessions can be created freely (tests often run several side by side);
    only ``CoverageEngine.start`` enforces one running session per process.
    """

    def __init__(
        self,
        config: CoverageConfig | dict[str, Any] | None = None,
        session_id: str | None = None,
    ):
        """
        Initialize a coverage session.

        Args:
            config: Session configuration (defaults if None)
            session_id: Unique session identifier (generated if None)

        Raises:
            ConfigurationError: If the configuration or its path rules are invalid
        """
        self.config = ensure_config(config)
        self.path_filter = PathFilter.from_config(self.config)
        self.session_id = session_id or f"cov-{uuid4().hex[:8]}"
        self.state = SessionState.CREATED

        self._lifecycle_lock = threading.Lock()
        self._on_stop: list[Callable[["CoverageSession"], None]] = []
        self._registry = FileRegistry(self.path_filter)
        self.tracker = ExecutionTracker(
            self._registry,
            track_blocks=self.config.track_blocks,
            track_conditions=self.config.track_conditions,
        )
        self.marker = CoverageMarker(self._registry, self.tracker)

    def __repr__(self) -> str:
        return f"CoverageSession(session_id={self.session_id!r}, state={self.state.value})"

    def __enter__(self) -> "CoverageSession":
        if self.state == SessionState.CREATED:
            self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    # Lifecycle

    @property
    def running(self) -> bool:
        return self.state == SessionState.RUNNING

    def start(self) -> "CoverageSession":
        """Move from created to running."""
        with self._lifecycle_lock:
            if self.state == SessionState.STOPPED:
                msg = f"Session {self.session_id} is stopped and cannot be restarted"
                raise SessionClosedError(msg)
            if self.state == SessionState.RUNNING:
                msg = f"Session {self.session_id} is already running"
                raise SessionStateError(msg)
            self.state = SessionState.RUNNING

        logger.info("Started coverage session %s", self.session_id)
        return self

    def stop(self) -> None:
        """Finalize the session. Stopping twice is a no-op."""
        with self._lifecycle_lock:
            if self.state == SessionState.STOPPED:
                return
            self.state = SessionState.STOPPED
            files = self._registry.close()

        logger.info("Stopped coverage session %s (%d files)", self.session_id, len(files))
        for callback in self._on_stop:
            callback(self)

    def add_stop_callback(self, callback: Callable[["CoverageSession"], None]) -> None:
        self._on_stop.append(callback)

    def _require_running(self) -> None:
        if self.state == SessionState.RUNNING:
            return
        if self.state == SessionState.STOPPED:
            msg = f"Session {self.session_id} is stopped; coverage data is read-only"
            raise SessionClosedError(msg)
        msg = f"Session {self.session_id} has not been started"
        raise SessionStateError(msg)

    # Registration

    def register_file(self, path: str | Path, source_text: str | bytes | None = None) -> bool:
        """
        Register a file and classify its source.

        Re-registering with identical text is a no-op; different text replaces
        the classification and resets the file's records.

        Args:
            path: File path
            source_text: Source text; read from ``path`` if None

        Returns:
            True if the file is tracked, False if the path rules exclude it
        """
        self._require_running()
        if source_text is None:
            if not self.path_filter.matches(normalize_path(path)):
                return False
            source_text = read_source(path)
        return self._registry.register(str(path), source_text) is not None

    def explain(self, path: str | Path) -> FilterDecision:
        """Which include/exclude rule decides whether ``path`` is tracked."""
        return self.path_filter.explain(normalize_path(path))

    # Tracking (hot path)

    def record_execution(self, path: str, line: int) -> None:
        """Count one execution of a line. No-op for unregistered or excluded files."""
        if self.state != SessionState.RUNNING:
            self._require_running()
        self.tracker.record_execution(path, line)

    def mark_covered(self, path: str, line: int) -> None:
        """Mark a line as validated by an assertion. Idempotent."""
        if self.state != SessionState.RUNNING:
            self._require_running()
        self.marker.mark_covered(path, line)

    def record_condition(self, path: str, line: int, index: int, outcome: bool) -> None:
        """Count one outcome of a condition operand (only with ``track_conditions``)."""
        if self.state != SessionState.RUNNING:
            self._require_running()
        self.tracker.record_condition(path, line, index, outcome)

    def mark_current_line_covered(self, stack_depth: int = 1) -> bool:
        """
        Mark the calling line covered.

        Args:
            stack_depth: 1 marks the direct caller, 2 its caller, and so on

        Returns:
            True if a location was resolved
        """
        location = caller_location(stack_depth)
        if location is None:
            return False
        self.mark_covered(*location)
        return True

    # Queries

    def was_executed(self, path: str, line: int) -> bool:
        return self.tracker.was_executed(path, line)

    def was_covered(self, path: str, line: int) -> bool:
        return self.marker.was_covered(path, line)

    def execution_count(self, path: str, line: int) -> int:
        return self.tracker.execution_count(path, line)

    @property
    def files(self) -> list[str]:
        """Normalized paths of all registered files."""
        return [file.path for file in self._registry.files()]

    def file(self, path: str | Path) -> SourceFile:
        """
        Get the classified source of a registered file.

        Raises:
            UnknownFileError: If the file was never registered
        """
        file = self._registry.get(str(path))
        if file is None:
            raise UnknownFileError(normalize_path(path))
        return file.source

    def summary(self) -> CoverageSummary:
        """Compute the coverage summary."""
        if self.state == SessionState.CREATED:
            msg = f"Session {self.session_id} has not been started"
            raise SessionStateError(msg)

        file_summaries = []
        for file in self._registry.files():
            with file.lock:
                file_summaries.append(
                    summarize_file(
                        file,
                        track_blocks=self.config.track_blocks,
                        track_conditions=self.config.track_conditions,
                    )
                )
        return combine(self.session_id, file_summaries, self._registry.anomalies.snapshot())

    def meets_threshold(self) -> bool:
        """Whether line coverage reaches the configured threshold."""
        return self.summary().coverage_percent >= self.config.threshold

    def report(self, format_: str | None = None, **options: Any) -> str:
        """
        Finalize the session and render a report.

        Args:
            format_: Formatter name (config.report_format if None)
            **options: Formatter options

        Returns:
            Rendered report text
        """
        from firmo_coverage.reporting import get_formatter

        formatter = get_formatter(format_ or self.config.report_format, **options)
        self.stop()
        return formatter.render(self.summary())

    def write_report(self, path: str | Path | None = None, format_: str | None = None) -> Path:
        """Render a report and write it to ``path`` (or config.report_path)."""
        target = path or self.config.report_path
        if target is None:
            msg = "No report path given and none configured"
            raise ValueError(msg)

        content = self.report(format_)
        output_path = Path(target)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(content, encoding="utf-8")
        logger.info("Wrote coverage report to %s", output_path)
        return output_path
