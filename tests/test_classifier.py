"""
Tests for the line classifier.

Covers comment and string handling across lines, long bracket levels, and
block start/end detection.
"""

import pytest

from firmo_coverage.analysis import LineClassifier, classify
from firmo_coverage.analysis.classifier import ScanState, kind_of_code, strip_line
from firmo_coverage.models import LineKind

E = LineKind.EXECUTABLE
N = LineKind.NON_EXECUTABLE
S = LineKind.BLOCK_START
B = LineKind.BLOCK_END


def lua(*lines: str) -> str:
    return "\n".join(lines)


class TestComments:
    """Test single-line and long comments."""

    def test_blank_and_comment_lines(self):
        """Test blank and comment-only lines are non-executable."""
        kinds = classify(lua("local a = 1", "", "   ", "-- a comment", "print(a) -- trailing"))
        assert kinds == [E, N, N, N, E]

    def test_comment_closing_mid_line_with_code(self):
        """Test code after a same-line comment close makes the line executable."""
        kinds = classify(lua("local a = 1", "-- note", "--[[ block --]] x = 1", "print(x)"))
        assert kinds[2] == E
        assert kinds == [E, N, E, E]

    def test_multiline_comment_hides_code(self):
        """Test lines inside a long comment are non-executable even if they look like code."""
        kinds = classify(
            lua(
                "local a = 1",
                "local b = 2",
                "local c = 3",
                "--[[ disabled",
                "local y = 2",
                "if y then",
                "  return y",
                "end",
                "]]",
                "print(a)",
            )
        )
        assert kinds[3:9] == [N] * 6
        assert kinds[9] == E

    def test_code_before_unclosed_comment(self):
        """Test code before an opening long comment keeps the line executable."""
        kinds = classify(lua("x = 1 --[[ starts here", "still comment", "]]", "y = 2"))
        assert kinds == [E, N, N, E]

    def test_long_bracket_levels_must_match(self):
        """Test ']]' does not close a level-2 long comment."""
        kinds = classify(lua("--[==[", "]]", "x = 1", "]=]", "]==]", "y = 2"))
        assert kinds == [N, N, N, N, N, E]

    def test_unterminated_comment_at_eof(self):
        """Test an unterminated comment degrades without raising."""
        kinds = classify(lua("x = 1", "--[[", "foo()", "bar()"))
        assert kinds == [E, N, N, N]

    def test_dash_comment_that_is_not_long(self):
        """Test '--[' without a second bracket is a plain line comment."""
        kinds = classify(lua("--[ not long", "x = 1"))
        assert kinds == [N, E]


class TestStrings:
    """Test string literal handling."""

    def test_comment_marker_inside_string(self):
        """Test '--[[' inside a string literal does not open a comment."""
        kinds = classify(lua('s = "--[["', "y = 2"))
        assert kinds == [E, E]

    def test_single_quoted_string(self):
        """Test single-quoted strings are collapsed too."""
        kinds = classify(lua("s = '-- not a comment'", "y = 2"))
        assert kinds == [E, E]

    def test_long_string_continuation_lines(self):
        """Test continuation lines of a long string are non-executable."""
        kinds = classify(
            lua("local s = [[", "line one", "-- not a comment", "]]", "print(s)")
        )
        assert kinds == [E, N, N, N, E]

    def test_leveled_long_string(self):
        """Test long strings match their closing level."""
        kinds = classify(lua("local s = [=[", "]]", "]=]", "x = 1"))
        assert kinds == [E, N, N, E]

    def test_backslash_continued_short_string(self):
        """Test a short string continued with a trailing backslash."""
        kinds = classify(lua('s = "abc\\', 'def"', "x = 1"))
        assert kinds == [E, N, E]

    def test_strip_line_collapses_strings(self):
        """Test strings become a placeholder and comments disappear."""
        state = ScanState()
        assert strip_line('print("a -- b") -- done', state).strip() == 'print("")'
        assert state == ScanState()


class TestBlockKinds:
    """Test block start and block end detection."""

    @pytest.mark.parametrize(
        "code",
        [
            "function foo(a, b)",
            "local function bar()",
            "function M.baz:qux(x)",
            "if x > 1 then",
            "elseif x then",
            "for i = 1, 10 do",
            "for k, v in pairs(t) do",
            "while true do",
            "do",
            "repeat",
            "callback(function(x)",
            "local f = function()",
        ],
    )
    def test_block_start(self, code):
        """Test lines that open a block."""
        assert kind_of_code(code) == S

    @pytest.mark.parametrize("code", ["end", "else", "end)", "end,", "}", "},", ")", "end;"])
    def test_block_end(self, code):
        """Test lines that only close a block."""
        assert kind_of_code(code) == B

    @pytest.mark.parametrize(
        "code",
        [
            "return x",
            "until x > 5",
            "if x then return end",
            "local f = function(v) return v end",
            "x = x + 1",
            "t = {",
        ],
    )
    def test_plain_statements(self, code):
        """Test everything else is executable."""
        assert kind_of_code(code) == E

    def test_end_with_trailing_comment(self):
        """Test a block end followed by a comment."""
        assert classify("end -- of loop") == [B]


class TestLineClassifier:
    """Test LineClassifier entry points."""

    def test_empty_source(self):
        """Test empty text yields no lines."""
        assert classify("") == []

    def test_single_newline(self):
        """Test a lone newline is one blank line."""
        assert classify("\n") == [N]

    def test_bytes_input(self):
        """Test bytes are decoded before classification."""
        assert classify(b"x = 1\n-- c\n") == [E, N]

    def test_classify_line_carries_state(self):
        """Test feeding lines one at a time keeps multiline state."""
        classifier = LineClassifier()
        assert classifier.classify_line("--[[") == N
        assert classifier.classify_line("x = 1") == N
        assert classifier.classify_line("]] y = 1") == E

    def test_classify_resets_state(self):
        """Test whole-file classification starts from a clean state."""
        classifier = LineClassifier()
        classifier.classify_line("--[[")
        assert classifier.classify("x = 1") == [E]

    def test_kind_per_line(self):
        """Test one kind per line, index 0 is line 1."""
        source = lua("local t = {}", "for i = 1, 3 do", "  t[i] = i", "end")
        assert classify(source) == [E, S, E, B]
