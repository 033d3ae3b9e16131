"""
Recorded coverage traces.

A trace is the event stream an instrumentation hook produced, saved as YAML or
JSON so it can be replayed into a session later::

    files:
      - path: src/calc.lua          # source read relative to the trace file
      - path: src/inline.lua
        source: |
          local x = 1
    executions:
      src/calc.lua: {1: 1, 2: 3}    # line -> count (a list means once each)
    covered:
      src/calc.lua: [2]
    conditions:
      - {path: src/calc.lua, line: 4, index: 1, outcome: true, count: 2}
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from firmo_coverage.coverage.session import CoverageSession
from firmo_coverage.errors import TraceFormatError

logger = logging.getLogger(__name__)


@dataclass
class TraceFile:
    path: str
    source: str | None = None


@dataclass
class ConditionEvent:
    path: str
    line: int
    index: int
    outcome: bool
    count: int = 1


@dataclass
class Trace:
    """Parsed trace contents."""

    files: list[TraceFile] = field(default_factory=list)
    executions: dict[str, dict[int, int]] = field(default_factory=dict)
    covered: dict[str, list[int]] = field(default_factory=dict)
    conditions: list[ConditionEvent] = field(default_factory=list)
    base_dir: Path = field(default_factory=Path)

    @property
    def event_count(self) -> int:
        return (
            sum(sum(counts.values()) for counts in self.executions.values())
            + sum(len(lines) for lines in self.covered.values())
            + sum(event.count for event in self.conditions)
        )


def _line_number(value: Any, where: str) -> int:
    try:
        line = int(value)
    except (TypeError, ValueError) as e:
        msg = f"{where}: line numbers must be integers, got {value!r}"
        raise TraceFormatError(msg) from e
    if line < 1:
        msg = f"{where}: line numbers start at 1, got {line}"
        raise TraceFormatError(msg)
    return line


def _parse_files(data: Any) -> list[TraceFile]:
    if data is None:
        return []
    if isinstance(data, dict):
        return [TraceFile(str(path), source) for path, source in data.items()]
    if not isinstance(data, list):
        msg = "'files' must be a list or a mapping of path to source"
        raise TraceFormatError(msg)

    files = []
    for entry in data:
        if isinstance(entry, str):
            files.append(TraceFile(entry))
        elif isinstance(entry, dict) and "path" in entry:
            files.append(TraceFile(str(entry["path"]), entry.get("source")))
        else:
            msg = f"Invalid file entry: {entry!r}"
            raise TraceFormatError(msg)
    return files


def _parse_executions(data: Any) -> dict[str, dict[int, int]]:
    if data is None:
        return {}
    if not isinstance(data, dict):
        msg = "'executions' must map paths to line counts"
        raise TraceFormatError(msg)

    executions: dict[str, dict[int, int]] = {}
    for path, lines in data.items():
        where = f"executions[{path}]"
        counts: dict[int, int] = {}
        if isinstance(lines, list):
            for line in lines:
                number = _line_number(line, where)
                counts[number] = counts.get(number, 0) + 1
        elif isinstance(lines, dict):
            for line, count in lines.items():
                if not isinstance(count, int) or count < 0:
                    msg = f"{where}: counts must be non-negative integers, got {count!r}"
                    raise TraceFormatError(msg)
                counts[_line_number(line, where)] = count
        else:
            msg = f"{where}: expected a list of lines or a line -> count mapping"
            raise TraceFormatError(msg)
        executions[str(path)] = counts
    return executions


def _parse_covered(data: Any) -> dict[str, list[int]]:
    if data is None:
        return {}
    if not isinstance(data, dict):
        msg = "'covered' must map paths to line lists"
        raise TraceFormatError(msg)

    covered = {}
    for path, lines in data.items():
        if not isinstance(lines, list):
            msg = f"covered[{path}]: expected a list of lines"
            raise TraceFormatError(msg)
        covered[str(path)] = [_line_number(line, f"covered[{path}]") for line in lines]
    return covered


def _parse_conditions(data: Any) -> list[ConditionEvent]:
    if data is None:
        return []
    if not isinstance(data, list):
        msg = "'conditions' must be a list of events"
        raise TraceFormatError(msg)

    events = []
    for entry in data:
        if not isinstance(entry, dict):
            msg = f"Invalid condition event: {entry!r}"
            raise TraceFormatError(msg)
        missing = {"path", "line", "index", "outcome"} - entry.keys()
        if missing:
            msg = f"Condition event missing {', '.join(sorted(missing))}: {entry!r}"
            raise TraceFormatError(msg)
        if not isinstance(entry["outcome"], bool):
            msg = f"Condition outcome must be true or false: {entry!r}"
            raise TraceFormatError(msg)
        events.append(
            ConditionEvent(
                path=str(entry["path"]),
                line=_line_number(entry["line"], "conditions"),
                index=int(entry["index"]),
                outcome=entry["outcome"],
                count=int(entry.get("count", 1)),
            )
        )
    return events


def parse_trace(data: Any, base_dir: str | Path = ".") -> Trace:
    """
    Validate raw trace data.

    Raises:
        TraceFormatError: If the data does not have the trace shape
    """
    if data is None:
        data = {}
    if not isinstance(data, dict):
        msg = f"Trace must be a mapping, got {type(data).__name__}"
        raise TraceFormatError(msg)

    trace = Trace(
        files=_parse_files(data.get("files")),
        executions=_parse_executions(data.get("executions")),
        covered=_parse_covered(data.get("covered")),
        conditions=_parse_conditions(data.get("conditions")),
        base_dir=Path(base_dir),
    )

    # Paths only named by events still get registered
    known = {file.path for file in trace.files}
    for path in [*trace.executions, *trace.covered, *(e.path for e in trace.conditions)]:
        if path not in known:
            trace.files.append(TraceFile(path))
            known.add(path)
    return trace


def load_trace(path: str | Path) -> Trace:
    """
    Load a trace from a YAML or JSON file.

    Sources of files without inline text are resolved relative to the trace
    file's directory.
    """
    path = Path(path)
    if not path.exists():
        msg = f"Trace file not found: {path}"
        raise FileNotFoundError(msg)

    text = path.read_text(encoding="utf-8")
    try:
        if path.suffix.lower() == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        msg = f"Invalid trace file {path}: {e}"
        raise TraceFormatError(msg) from e

    return parse_trace(data, base_dir=path.parent)


def replay_trace(session: CoverageSession, trace: Trace) -> int:
    """
    Feed a trace into a running session.

    Files are registered first, then executions, coverage marks and condition
    outcomes are applied in that order.

    Returns:
        Number of files the session tracks after registration
    """
    tracked = 0
    for file in trace.files:
        source = file.source
        if source is None:
            candidate = Path(file.path)
            if not candidate.is_absolute():
                candidate = trace.base_dir / candidate
            if not candidate.exists():
                logger.warning("Source for %s not found; skipping", file.path)
                continue
            source = candidate.read_text(encoding="utf-8", errors="replace")
        if session.register_file(file.path, source):
            tracked += 1

    for path, counts in trace.executions.items():
        for line, count in sorted(counts.items()):
            for _ in range(count):
                session.record_execution(path, line)

    for path, lines in trace.covered.items():
        for line in lines:
            session.mark_covered(path, line)

    for event in trace.conditions:
        for _ in range(event.count):
            session.record_condition(event.path, event.line, event.index, event.outcome)

    logger.debug("Replayed %d events into %s", trace.event_count, session.session_id)
    return tracked
