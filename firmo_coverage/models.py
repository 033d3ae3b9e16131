"""
Core coverage data model.

Static metadata (SourceFile and the block/function/condition definitions
found by the structure analyzer) is immutable. Dynamic records (LineRecord,
BlockRecord, FunctionRecord, ConditionRecord) are mutated only by the
execution tracker and coverage marker while holding the owning file's lock.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import NamedTuple


class LineKind(str, Enum):
    """Static classification of a source line."""

    EXECUTABLE = "executable"
    NON_EXECUTABLE = "non_executable"
    BLOCK_START = "block_start"
    BLOCK_END = "block_end"

    @property
    def is_executable(self) -> bool:
        """Whether lines of this kind count toward executable totals."""
        return self in (LineKind.EXECUTABLE, LineKind.BLOCK_START)


class LineStatus(str, Enum):
    """The four states a report renders for a line."""

    NOT_EXECUTED = "not_executed"
    EXECUTED = "executed"
    COVERED = "covered"
    NON_EXECUTABLE = "non_executable"


class BlockType(str, Enum):
    """Kinds of lexical blocks."""

    BRANCH = "branch"
    LOOP = "loop"
    FUNCTION_BODY = "function_body"
    OTHER = "other"


class BlockKey(NamedTuple):
    """
    Lookup key for a block within one file.

    ``ordinal`` tells apart blocks sharing type and line range, such as the
    two branches of a one-line ``if ... else ... end``.
    """

    start_line: int
    end_line: int
    block_type: BlockType
    ordinal: int = 0

    def __str__(self) -> str:
        key = f"{self.block_type.value}:{self.start_line}-{self.end_line}"
        return f"{key}#{self.ordinal}" if self.ordinal else key


@dataclass(frozen=True)
class BlockDefinition:
    """A block found by static analysis."""

    key: BlockKey
    parent: BlockKey | None = None
    entry_line: int | None = None

    @property
    def start_line(self) -> int:
        return self.key.start_line

    @property
    def end_line(self) -> int:
        return self.key.end_line

    @property
    def block_type(self) -> BlockType:
        return self.key.block_type


@dataclass(frozen=True)
class FunctionDefinition:
    """A function found by static analysis."""

    function_id: str
    name: str
    start_line: int
    end_line: int
    body: BlockKey

    @property
    def anonymous(self) -> bool:
        return not self.name


@dataclass(frozen=True)
class ConditionDefinition:
    """One operand of a boolean condition."""

    line: int
    index: int
    expression: str


@dataclass(frozen=True)
class SourceFile:
    """
    Immutable source text and its static classification.

    Lines are 1-based in every public accessor; the tuples are 0-based.
    """

    path: str
    lines: tuple[str, ...]
    kinds: tuple[LineKind, ...]
    blocks: tuple[BlockDefinition, ...] = ()
    functions: tuple[FunctionDefinition, ...] = ()
    conditions: tuple[ConditionDefinition, ...] = ()
    text: str = field(default="", repr=False)

    @property
    def line_count(self) -> int:
        return len(self.lines)

    def kind_of(self, line: int) -> LineKind:
        """Kind of a 1-based line; lines outside the file are non-executable."""
        if 1 <= line <= len(self.kinds):
            return self.kinds[line - 1]
        return LineKind.NON_EXECUTABLE

    def line_text(self, line: int) -> str:
        if 1 <= line <= len(self.lines):
            return self.lines[line - 1]
        return ""

    @property
    def executable_lines(self) -> list[int]:
        """1-based numbers of all executable lines."""
        return [i for i, kind in enumerate(self.kinds, start=1) if kind.is_executable]


@dataclass(slots=True)
class LineRecord:
    """Dynamic state of one line. Invariant: covered implies execution_count >= 1."""

    kind: LineKind
    execution_count: int = 0
    covered: bool = False

    @property
    def status(self) -> LineStatus:
        if not self.kind.is_executable:
            return LineStatus.NON_EXECUTABLE
        if self.covered:
            return LineStatus.COVERED
        if self.execution_count > 0:
            return LineStatus.EXECUTED
        return LineStatus.NOT_EXECUTED


@dataclass(slots=True)
class BlockRecord:
    """Execution count for a block; the parent is a key, resolved on demand."""

    definition: BlockDefinition
    execution_count: int = 0

    @property
    def key(self) -> BlockKey:
        return self.definition.key

    @property
    def parent(self) -> BlockKey | None:
        return self.definition.parent


@dataclass(slots=True)
class FunctionRecord:
    """Execution count for a function, counted on entry into its body."""

    definition: FunctionDefinition
    execution_count: int = 0

    @property
    def function_id(self) -> str:
        return self.definition.function_id

    @property
    def defined_line(self) -> int:
        return self.definition.start_line


@dataclass(slots=True)
class ConditionRecord:
    """Outcome counts for one condition operand."""

    line: int
    index: int
    expression: str = ""
    true_count: int = 0
    false_count: int = 0

    @property
    def fully_covered(self) -> bool:
        """Both outcomes observed."""
        return self.true_count > 0 and self.false_count > 0
