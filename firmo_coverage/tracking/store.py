"""
Per-file coverage records and the path registry.

Each FileCoverage carries its own lock; the tracker and marker hold it for
every mutation, so updates to different files never contend. The registry
lock guards only the path map and is never taken on the tracking hot path.
"""

import logging
import threading
from collections import Counter, defaultdict
from enum import Enum

from firmo_coverage.analysis.source import analyze_source, normalize_path
from firmo_coverage.config import PathFilter
from firmo_coverage.errors import SessionClosedError
from firmo_coverage.models import (
    BlockKey,
    BlockRecord,
    ConditionRecord,
    FunctionRecord,
    LineRecord,
    SourceFile,
)

logger = logging.getLogger(__name__)


class AnomalyKind(str, Enum):
    """Tracking events that were accepted but look wrong."""

    NON_EXECUTABLE_EXECUTION = "non_executable_executions"
    NON_EXECUTABLE_COVERAGE = "non_executable_coverage"
    UNREGISTERED_FILE_EVENT = "unregistered_file_events"
    FILTERED_FILE_EVENT = "filtered_file_events"
    INTERNAL_ERROR = "internal_errors"


class AnomalyCounter:
    """Lock-guarded counters for events that do not belong to a registered file."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counts: Counter[AnomalyKind] = Counter()

    def add(self, kind: AnomalyKind, amount: int = 1) -> None:
        with self._lock:
            self._counts[kind] += amount

    def snapshot(self) -> Counter[AnomalyKind]:
        with self._lock:
            return Counter(self._counts)


class FileCoverage:
    """Static source plus all dynamic records for one file."""

    def __init__(self, source: SourceFile):
        self.lock = threading.Lock()
        self.closed = False
        self.load(source)

    def load(self, source: SourceFile) -> None:
        """Install a (new) source and reset every dynamic record. Caller holds ``lock``."""
        self.source = source
        self.lines: dict[int, LineRecord] = {}
        self.blocks: dict[BlockKey, BlockRecord] = {
            definition.key: BlockRecord(definition) for definition in source.blocks
        }
        self.functions: dict[BlockKey, FunctionRecord] = {
            fn.body: FunctionRecord(fn) for fn in source.functions
        }
        self.conditions: dict[tuple[int, int], ConditionRecord] = {
            (c.line, c.index): ConditionRecord(c.line, c.index, c.expression)
            for c in source.conditions
        }
        self.anomalies: Counter[AnomalyKind] = Counter()
        self.entries: dict[int, list[BlockKey]] = defaultdict(list)
        for definition in source.blocks:
            if definition.entry_line is not None:
                self.entries[definition.entry_line].append(definition.key)

    @property
    def path(self) -> str:
        return self.source.path

    def line_record(self, line: int) -> LineRecord:
        """Get or create the record for a line. Caller holds ``lock``."""
        record = self.lines.get(line)
        if record is None:
            record = LineRecord(kind=self.source.kind_of(line))
            self.lines[line] = record
        return record

    def ensure_open(self) -> None:
        """Raise if the owning session has stopped. Caller holds ``lock``."""
        if self.closed:
            msg = f"Coverage session is stopped; cannot update {self.path}"
            raise SessionClosedError(msg)


class FileRegistry:
    """
    Map of normalized path to FileCoverage for one session.

    Registration of the same path is serialized by the registry lock
    (last writer wins); lookups are plain dict reads.
    """

    def __init__(self, path_filter: PathFilter):
        self.path_filter = path_filter
        self.anomalies = AnomalyCounter()
        self._lock = threading.Lock()
        self._files: dict[str, FileCoverage] = {}
        self._closed = False

    def register(self, path: str, source_text: str | bytes) -> FileCoverage | None:
        """
        Register (or re-register) a file.

        Returns:
            The file's records, or None when the path is filtered out
        """
        key = normalize_path(path)
        decision = self.path_filter.explain(key)
        if not decision.included:
            logger.debug("Not tracking %s: %s", key, decision.reason)
            return None

        source = analyze_source(key, source_text)

        with self._lock:
            if self._closed:
                msg = f"Coverage session is stopped; cannot register {key}"
                raise SessionClosedError(msg)

            existing = self._files.get(key)
            if existing is None:
                file = FileCoverage(source)
                self._files[key] = file
                logger.debug("Registered %s (%d lines)", key, source.line_count)
                return file

            with existing.lock:
                if existing.source.text != source.text:
                    logger.info("Source of %s changed; resetting its coverage records", key)
                    existing.load(source)
            return existing

    def lookup(self, path: str) -> FileCoverage | None:
        """Find a file for a tracking event, counting events for unknown files."""
        key = normalize_path(path)
        file = self._files.get(key)
        if file is None:
            if self.path_filter.matches(key):
                self.anomalies.add(AnomalyKind.UNREGISTERED_FILE_EVENT)
            else:
                self.anomalies.add(AnomalyKind.FILTERED_FILE_EVENT)
        return file

    def get(self, path: str) -> FileCoverage | None:
        """Find a file without recording anything."""
        return self._files.get(normalize_path(path))

    def files(self) -> list[FileCoverage]:
        """Snapshot of registered files, sorted by path."""
        with self._lock:
            return [self._files[key] for key in sorted(self._files)]

    def close(self) -> list[FileCoverage]:
        """Refuse further registrations and close every file for updates."""
        with self._lock:
            self._closed = True
            files = [self._files[key] for key in sorted(self._files)]

        # Taking each file lock waits out any update already in progress.
        for file in files:
            with file.lock:
                file.closed = True
        return files
