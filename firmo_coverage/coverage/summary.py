"""
Coverage summary models.

The summary is the only data handed to report formatters. It is a frozen,
computed view: building it never mutates session state, and two summaries of
the same finalized session compare equal.
"""

from collections import Counter

from pydantic import BaseModel, ConfigDict, Field

from firmo_coverage.models import BlockType, LineKind, LineStatus
from firmo_coverage.tracking.store import AnomalyKind, FileCoverage


def percent(part: int, whole: int) -> float:
    """Percentage with 0/0 counted as fully covered."""
    if whole == 0:
        return 100.0
    return (part / whole) * 100.0


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class LineSummary(_Frozen):
    """One line of a file with its report state."""

    number: int = Field(..., description="1-based line number")
    kind: LineKind
    status: LineStatus
    execution_count: int = 0
    covered: bool = False
    source: str = ""


class BlockSummary(_Frozen):
    """Execution count of a block; ``parent`` is the key of the enclosing block."""

    key: str = Field(..., description="Block key, '<type>:<start>-<end>'")
    start_line: int
    end_line: int
    block_type: BlockType
    execution_count: int = 0
    entry_line: int | None = None
    parent: str | None = None

    @property
    def executed(self) -> bool:
        return self.execution_count > 0


class FunctionSummary(_Frozen):
    """Per-function breakdown entry."""

    path: str
    function_id: str
    name: str = ""
    start_line: int
    end_line: int
    execution_count: int = 0

    @property
    def anonymous(self) -> bool:
        return not self.name

    @property
    def executed(self) -> bool:
        return self.execution_count > 0


class ConditionSummary(_Frozen):
    """True/false outcome counts of one condition operand."""

    line: int
    index: int
    expression: str = ""
    true_count: int = 0
    false_count: int = 0

    @property
    def fully_covered(self) -> bool:
        return self.true_count > 0 and self.false_count > 0


class AnomalySummary(_Frozen):
    """Counts of accepted-but-suspicious tracking events."""

    non_executable_executions: int = 0
    non_executable_coverage: int = 0
    unregistered_file_events: int = 0
    filtered_file_events: int = 0
    internal_errors: int = 0

    @property
    def total(self) -> int:
        """Anomalies that point at classifier drift or internal faults."""
        return self.non_executable_executions + self.non_executable_coverage + self.internal_errors

    @classmethod
    def from_counter(cls, counts: Counter) -> "AnomalySummary":
        return cls(**{kind.value: counts.get(kind, 0) for kind in AnomalyKind})


class FileSummary(_Frozen):
    """Coverage of one file."""

    path: str
    total_lines: int = 0
    executable_lines: int = 0
    executed_lines: int = 0
    covered_lines: int = 0
    coverage_percent: float = 100.0
    execution_percent: float = 100.0
    lines: list[LineSummary] = Field(default_factory=list)
    functions: list[FunctionSummary] = Field(default_factory=list)
    blocks: list[BlockSummary] = Field(default_factory=list)
    conditions: list[ConditionSummary] = Field(default_factory=list)
    anomalies: AnomalySummary = Field(default_factory=AnomalySummary)

    def line(self, number: int) -> LineSummary | None:
        if 1 <= number <= len(self.lines):
            return self.lines[number - 1]
        return None

    def block(self, key: str) -> BlockSummary | None:
        """Resolve a block key (e.g. a ``parent`` reference)."""
        for block in self.blocks:
            if block.key == key:
                return block
        return None

    @property
    def trackable_blocks(self) -> list[BlockSummary]:
        """Blocks that contain at least one executable line."""
        return [b for b in self.blocks if b.entry_line is not None]


class CoverageSummary(_Frozen):
    """Aggregated coverage for a session."""

    session_id: str
    total_files: int = 0
    total_lines: int = 0
    executable_lines: int = 0
    executed_lines: int = 0
    covered_lines: int = 0
    coverage_percent: float = 100.0
    execution_percent: float = 100.0
    functions_total: int = 0
    functions_executed: int = 0
    blocks_total: int = 0
    blocks_executed: int = 0
    conditions_total: int = 0
    conditions_fully_covered: int = 0
    files: dict[str, FileSummary] = Field(default_factory=dict)
    functions: list[FunctionSummary] = Field(default_factory=list)
    anomalies: AnomalySummary = Field(default_factory=AnomalySummary)

    @property
    def function_percent(self) -> float:
        return percent(self.functions_executed, self.functions_total)

    @property
    def block_percent(self) -> float:
        return percent(self.blocks_executed, self.blocks_total)

    @property
    def condition_percent(self) -> float:
        return percent(self.conditions_fully_covered, self.conditions_total)


def summarize_file(
    file: FileCoverage, track_blocks: bool = True, track_conditions: bool = False
) -> FileSummary:
    """Build the summary of one file. Caller holds ``file.lock``."""
    source = file.source
    lines: list[LineSummary] = []
    executable = executed = covered = 0

    for number, kind in enumerate(source.kinds, start=1):
        record = file.lines.get(number)
        count = record.execution_count if record else 0
        is_covered = record.covered if record else False

        if not kind.is_executable:
            status = LineStatus.NON_EXECUTABLE
        else:
            executable += 1
            if is_covered:
                status = LineStatus.COVERED
            elif count > 0:
                status = LineStatus.EXECUTED
            else:
                status = LineStatus.NOT_EXECUTED
            if count > 0:
                executed += 1
            if is_covered:
                covered += 1

        lines.append(
            LineSummary(
                number=number,
                kind=kind,
                status=status,
                execution_count=count,
                covered=is_covered,
                source=source.lines[number - 1],
            )
        )

    functions = [
        FunctionSummary(
            path=source.path,
            function_id=record.function_id,
            name=record.definition.name,
            start_line=record.defined_line,
            end_line=record.definition.end_line,
            execution_count=record.execution_count,
        )
        for record in sorted(file.functions.values(), key=lambda r: r.defined_line)
    ]

    blocks = []
    if track_blocks:
        blocks = [
            BlockSummary(
                key=str(record.key),
                start_line=record.key.start_line,
                end_line=record.key.end_line,
                block_type=record.key.block_type,
                execution_count=record.execution_count,
                entry_line=record.definition.entry_line,
                parent=str(record.parent) if record.parent is not None else None,
            )
            for record in file.blocks.values()
        ]

    conditions = []
    if track_conditions:
        conditions = [
            ConditionSummary(
                line=record.line,
                index=record.index,
                expression=record.expression,
                true_count=record.true_count,
                false_count=record.false_count,
            )
            for _, record in sorted(file.conditions.items())
        ]

    return FileSummary(
        path=source.path,
        total_lines=source.line_count,
        executable_lines=executable,
        executed_lines=executed,
        covered_lines=covered,
        coverage_percent=percent(covered, executable),
        execution_percent=percent(executed, executable),
        lines=lines,
        functions=functions,
        blocks=blocks,
        conditions=conditions,
        anomalies=AnomalySummary.from_counter(file.anomalies),
    )


def combine(
    session_id: str, files: list[FileSummary], session_anomalies: Counter
) -> CoverageSummary:
    """Aggregate per-file summaries into the session summary."""
    anomalies: Counter = Counter(session_anomalies)
    for file in files:
        for kind in AnomalyKind:
            anomalies[kind] += getattr(file.anomalies, kind.value)

    executable = sum(f.executable_lines for f in files)
    executed = sum(f.executed_lines for f in files)
    covered = sum(f.covered_lines for f in files)
    functions = [fn for f in files for fn in f.functions]
    blocks = [b for f in files for b in f.trackable_blocks]
    conditions = [c for f in files for c in f.conditions]

    return CoverageSummary(
        session_id=session_id,
        total_files=len(files),
        total_lines=sum(f.total_lines for f in files),
        executable_lines=executable,
        executed_lines=executed,
        covered_lines=covered,
        coverage_percent=percent(covered, executable),
        execution_percent=percent(executed, executable),
        functions_total=len(functions),
        functions_executed=sum(1 for fn in functions if fn.executed),
        blocks_total=len(blocks),
        blocks_executed=sum(1 for b in blocks if b.executed),
        conditions_total=len(conditions),
        conditions_fully_covered=sum(1 for c in conditions if c.fully_covered),
        files={f.path: f for f in files},
        functions=functions,
        anomalies=AnomalySummary.from_counter(anomalies),
    )
