"""
Structure Analyzer - static discovery of blocks, functions and conditions.

Works on the comment-free, string-collapsed code produced by the line
classifier, so keywords inside comments and strings are never seen. This is a
keyword scan, not a parser: malformed input (stray ``end``, unclosed blocks)
degrades to a partial structure instead of failing.
"""

import logging
import re
from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass, field

from firmo_coverage.models import (
    BlockDefinition,
    BlockKey,
    BlockType,
    ConditionDefinition,
    FunctionDefinition,
    LineKind,
)

logger = logging.getLogger(__name__)

KEYWORD_PATTERN = re.compile(
    r"\b(function|if|elseif|else|while|for|do|repeat|until|end)\b"
)
NAMED_FUNCTION = re.compile(r"function\s+([\w.:]+)\s*\(")
ASSIGNED_FUNCTION = re.compile(r"(?:local\s+)?([\w.:\[\]]+)\s*=\s*$")
CONDITION_END = {
    "if": re.compile(r"\bthen\b"),
    "elseif": re.compile(r"\bthen\b"),
    "while": re.compile(r"\bdo\b"),
}
SPLIT_TOKENS = re.compile(r"[(\[{]|[)\]}]|\band\b|\bor\b")


@dataclass
class _OpenBlock:
    """A block on the analyzer stack (mutable while scanning)."""

    block_type: BlockType
    start_line: int
    column: int = 1
    parent: "_OpenBlock | None" = None
    end_line: int | None = None
    awaiting_do: bool = False
    awaiting_until: bool = False
    function_name: str | None = None
    ordinal: int = 0

    def key(self) -> BlockKey:
        return BlockKey(
            self.start_line, self.end_line or self.start_line, self.block_type, self.ordinal
        )


@dataclass(frozen=True)
class FileStructure:
    """Blocks, functions and conditions of one file."""

    blocks: tuple[BlockDefinition, ...] = ()
    functions: tuple[FunctionDefinition, ...] = ()
    conditions: tuple[ConditionDefinition, ...] = ()


def split_condition(expression: str) -> list[str]:
    """
    Split a boolean expression into its top-level ``and``/``or`` operands.

    Operands inside parentheses, brackets or braces are not split.
    """
    operands: list[str] = []
    depth = 0
    start = 0
    for match in SPLIT_TOKENS.finditer(expression):
        token = match.group(0)
        if token in "([{":
            depth += 1
        elif token in ")]}":
            depth = max(depth - 1, 0)
        elif depth == 0:
            operands.append(expression[start : match.start()])
            start = match.end()
    operands.append(expression[start:])
    return [op.strip() for op in operands if op.strip()]


def _function_name(code: str, position: int) -> str:
    named = NAMED_FUNCTION.match(code, position)
    if named:
        return named.group(1)
    assigned = ASSIGNED_FUNCTION.search(code[:position])
    if assigned:
        return assigned.group(1)
    return ""


def _condition_text(code: str, keyword: str, end: int) -> str:
    closer = CONDITION_END.get(keyword)
    if closer is None:
        # until: the rest of the statement
        return code[end:].split(";", 1)[0]
    found = closer.search(code, end)
    return code[end : found.start()] if found else code[end:]


@dataclass
class StructureAnalyzer:
    """Scan code lines and collect the file's static structure."""

    path: str
    code_lines: Sequence[str]
    kinds: Sequence[LineKind]
    _stack: list[_OpenBlock] = field(default_factory=list)
    _closed: list[_OpenBlock] = field(default_factory=list)
    _conditions: list[ConditionDefinition] = field(default_factory=list)

    def analyze(self) -> FileStructure:
        for line_number, code in enumerate(self.code_lines, start=1):
            condition_index = 0
            for match in KEYWORD_PATTERN.finditer(code):
                keyword = match.group(1)
                if keyword in ("if", "elseif", "while", "until"):
                    text = _condition_text(code, keyword, match.end())
                    for operand in split_condition(text):
                        self._conditions.append(
                            ConditionDefinition(line_number, condition_index, operand)
                        )
                        condition_index += 1
                self._handle_keyword(keyword, line_number, code, match.start())

        last_line = max(len(self.code_lines), 1)
        if self._stack:
            logger.debug(
                "%s: %d unclosed block(s) closed at end of file",
                self.path,
                len(self._stack),
            )
        while self._stack:
            self._close(self._stack.pop(), last_line)

        return self._build()

    def _push(self, block_type: BlockType, line: int, column: int, **kwargs) -> _OpenBlock:
        parent = self._stack[-1] if self._stack else None
        block = _OpenBlock(block_type, line, column, parent=parent, **kwargs)
        self._stack.append(block)
        return block

    def _close(self, block: _OpenBlock, line: int) -> None:
        block.end_line = max(line, block.start_line)
        self._closed.append(block)

    def _handle_keyword(self, keyword: str, line: int, code: str, position: int) -> None:
        top = self._stack[-1] if self._stack else None
        column = position + 1

        if keyword == "function":
            self._push(
                BlockType.FUNCTION_BODY,
                line,
                column,
                function_name=_function_name(code, position),
            )
        elif keyword == "if":
            self._push(BlockType.BRANCH, line, column)
        elif keyword in ("elseif", "else"):
            if top is not None and top.block_type == BlockType.BRANCH:
                self._stack.pop()
                self._close(top, line - 1 if line > top.start_line else line)
            self._push(BlockType.BRANCH, line, column)
        elif keyword in ("while", "for"):
            self._push(BlockType.LOOP, line, column, awaiting_do=True)
        elif keyword == "do":
            if top is not None and top.awaiting_do:
                top.awaiting_do = False
            else:
                self._push(BlockType.OTHER, line, column)
        elif keyword == "repeat":
            self._push(BlockType.LOOP, line, column, awaiting_until=True)
        elif keyword == "until":
            if top is not None and top.awaiting_until:
                self._close(self._stack.pop(), line)
        elif keyword == "end":
            if top is None:
                logger.debug("%s:%d: unmatched 'end' ignored", self.path, line)
                return
            self._close(self._stack.pop(), line)

    def _entry_line(self, block: _OpenBlock) -> int | None:
        end = block.end_line or block.start_line
        if end == block.start_line:
            return block.start_line if self.kinds[block.start_line - 1].is_executable else None
        for line in range(block.start_line + 1, end + 1):
            if self.kinds[line - 1].is_executable:
                return line
        return None

    def _build(self) -> FileStructure:
        ordered = sorted(
            self._closed,
            key=lambda b: (b.start_line, -(b.end_line or 0), b.block_type.value, b.column),
        )
        seen: Counter[BlockKey] = Counter()
        for block in ordered:
            base = block.key()
            block.ordinal = seen[base]
            seen[base] += 1

        blocks = tuple(
            BlockDefinition(
                key=block.key(),
                parent=block.parent.key() if block.parent is not None else None,
                entry_line=self._entry_line(block),
            )
            for block in ordered
        )

        functions = []
        for block in ordered:
            if block.block_type != BlockType.FUNCTION_BODY:
                continue
            name = block.function_name or ""
            functions.append(
                FunctionDefinition(
                    function_id=name
                    or f"<anonymous:{self.path}:{block.start_line}:{block.column}>",
                    name=name,
                    start_line=block.start_line,
                    end_line=block.end_line or block.start_line,
                    body=block.key(),
                )
            )

        return FileStructure(
            blocks=blocks,
            functions=tuple(functions),
            conditions=tuple(self._conditions),
        )


def analyze_structure(
    path: str, code_lines: Sequence[str], kinds: Sequence[LineKind]
) -> FileStructure:
    """Find blocks, functions and conditions in classified code lines."""
    return StructureAnalyzer(path=path, code_lines=code_lines, kinds=kinds).analyze()
