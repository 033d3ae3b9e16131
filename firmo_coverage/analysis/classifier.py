"""
Line Classifier - static line classification for Lua source.

Scans a file once, left to right, and classifies each line as executable,
non-executable (blank, comment, string continuation), block start or block end.
The only state carried between lines is whether the scanner is inside a long
comment, a long string, or a backslash-continued short string; long brackets
are matched by level, so ``]]`` never closes ``--[==[``.

Classification never fails: malformed or unterminated constructs degrade to
the best partial classification.
"""

import re
from dataclasses import dataclass

from firmo_coverage.models import LineKind

# Opening long bracket: [[, [=[, [==[, ...
LONG_BRACKET = re.compile(r"\[(=*)\[")

# Placeholder emitted for every string literal in stripped code
STRING_PLACEHOLDER = '""'

BLOCK_END_PATTERN = re.compile(r"(?:end|else|[\}\)\]])[\s\)\}\],;]*")

BLOCK_START_PATTERNS = (
    # function name(args) / local function name(args)
    re.compile(r"(?:local\s+)?function\b[^()]*\([^()]*\)"),
    # ... = function(args) / call(..., function(args)
    re.compile(r".*\bfunction\s*\([^()]*\)"),
    re.compile(r"(?:if|elseif)\b.*\bthen"),
    re.compile(r"(?:while|for)\b.*\bdo"),
    re.compile(r"do|repeat"),
)


def _closing_bracket(level: int) -> str:
    return "]" + "=" * level + "]"


@dataclass
class ScanState:
    """Cross-line scanner state."""

    comment_level: int | None = None
    string_level: int | None = None
    short_quote: str | None = None

    @property
    def in_multiline_comment(self) -> bool:
        return self.comment_level is not None

    def reset(self) -> None:
        self.comment_level = None
        self.string_level = None
        self.short_quote = None


def _skip_short_string(line: str, start: int, state: ScanState) -> int:
    """Advance past the body of a quoted string; return the index after it."""
    quote = state.short_quote
    i = start
    n = len(line)
    while i < n:
        ch = line[i]
        if ch == "\\":
            if i + 1 == n:
                # escaped newline: string continues on the next line
                return n
            i += 2
            continue
        if ch == quote:
            state.short_quote = None
            return i + 1
        i += 1
    # unterminated on this line without a continuation
    state.short_quote = None
    return n


def strip_line(line: str, state: ScanState) -> str:
    """
    Remove comments from a line and collapse string literals to a placeholder.

    Updates ``state`` when a long comment, long string, or continued short
    string is left open at the end of the line.
    """
    code: list[str] = []
    i = 0
    n = len(line)

    while i < n:
        if state.comment_level is not None:
            close = _closing_bracket(state.comment_level)
            end = line.find(close, i)
            if end == -1:
                break
            state.comment_level = None
            i = end + len(close)
            continue

        if state.string_level is not None:
            close = _closing_bracket(state.string_level)
            end = line.find(close, i)
            if end == -1:
                break
            state.string_level = None
            i = end + len(close)
            continue

        if state.short_quote is not None:
            i = _skip_short_string(line, i, state)
            continue

        ch = line[i]
        if ch == "-" and line.startswith("--", i):
            match = LONG_BRACKET.match(line, i + 2)
            if match is None:
                break  # single-line comment
            state.comment_level = len(match.group(1))
            i = match.end()
            continue

        if ch in "\"'":
            code.append(STRING_PLACEHOLDER)
            state.short_quote = ch
            i += 1
            continue

        if ch == "[":
            match = LONG_BRACKET.match(line, i)
            if match is not None:
                code.append(STRING_PLACEHOLDER)
                state.string_level = len(match.group(1))
                i = match.end()
                continue

        code.append(ch)
        i += 1

    return "".join(code)


def kind_of_code(code: str) -> LineKind:
    """Classify a line from its comment-free, string-collapsed code."""
    code = code.strip()
    if not code:
        return LineKind.NON_EXECUTABLE
    if BLOCK_END_PATTERN.fullmatch(code):
        return LineKind.BLOCK_END
    if any(pattern.fullmatch(code) for pattern in BLOCK_START_PATTERNS):
        return LineKind.BLOCK_START
    return LineKind.EXECUTABLE


def split_lines(source_text: str | bytes) -> list[str]:
    """Split source into lines, decoding bytes leniently."""
    if isinstance(source_text, bytes):
        source_text = source_text.decode("utf-8", errors="replace")
    return source_text.splitlines()


class LineClassifier:
    """
    Stateful line classifier.

    ``classify_line`` may be fed lines one at a time (the multiline state
    carries over); ``classify`` and ``code_lines`` process a whole file and
    reset the state first.
    """

    def __init__(self) -> None:
        self.state = ScanState()

    def reset(self) -> None:
        """Forget any open comment or string."""
        self.state.reset()

    def classify_line(self, line: str) -> LineKind:
        """Classify the next line of the file being scanned."""
        return kind_of_code(strip_line(line, self.state))

    def code_lines(self, source_text: str | bytes) -> list[str]:
        """Comment-free, string-collapsed code for each line."""
        self.reset()
        return [strip_line(line, self.state) for line in split_lines(source_text)]

    def classify(self, source_text: str | bytes) -> list[LineKind]:
        """
        Classify every line of a file.

        Returns:
            One LineKind per line; index 0 is line 1. Empty source yields [].
        """
        return [kind_of_code(code) for code in self.code_lines(source_text)]


def classify(source_text: str | bytes) -> list[LineKind]:
    """Classify every line of ``source_text``."""
    return LineClassifier().classify(source_text)
