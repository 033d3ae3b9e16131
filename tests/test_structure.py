"""
Tests for the structure analyzer and SourceFile construction.
"""

from firmo_coverage.analysis import analyze_source, normalize_path, split_condition
from firmo_coverage.models import BlockKey, BlockType, LineKind

MODULE = "\n".join(
    [
        "local function add(a, b)",
        "  return a + b",
        "end",
        "",
        "function M.check(x)",
        "  if x > 0 and x < 10 then",
        "    return true",
        "  elseif x == 0 then",
        "    return nil",
        "  else",
        "    return false",
        "  end",
        "end",
        "",
        "local cb = function(v) return v end",
        "for i = 1, 3 do",
        "  print(i)",
        "end",
    ]
)


def blocks_by_key(source):
    return {str(block.key): block for block in source.blocks}


class TestBlocks:
    """Test block discovery."""

    def test_block_keys(self):
        """Test every block is found with its line range and type."""
        source = analyze_source("lib/m.lua", MODULE)
        assert [str(block.key) for block in source.blocks] == [
            "function_body:1-3",
            "function_body:5-13",
            "branch:6-7",
            "branch:8-9",
            "branch:10-12",
            "function_body:15-15",
            "loop:16-18",
        ]

    def test_parent_is_a_key(self):
        """Test nested blocks reference their parent by key."""
        blocks = blocks_by_key(analyze_source("lib/m.lua", MODULE))
        assert blocks["branch:6-7"].parent == BlockKey(5, 13, BlockType.FUNCTION_BODY)
        assert blocks["function_body:1-3"].parent is None

    def test_entry_lines(self):
        """Test the entry line is the first executable line inside the block."""
        blocks = blocks_by_key(analyze_source("lib/m.lua", MODULE))
        assert blocks["function_body:1-3"].entry_line == 2
        assert blocks["function_body:5-13"].entry_line == 6
        assert blocks["branch:6-7"].entry_line == 7
        assert blocks["branch:10-12"].entry_line == 11
        assert blocks["loop:16-18"].entry_line == 17

    def test_one_line_block_enters_on_its_own_line(self):
        """Test a single-line function enters on the line it is defined."""
        blocks = blocks_by_key(analyze_source("lib/m.lua", MODULE))
        assert blocks["function_body:15-15"].entry_line == 15

    def test_block_without_executable_lines(self):
        """Test an empty block has no entry line."""
        source = analyze_source("e.lua", "function f()\nend")
        assert source.blocks[0].entry_line is None

    def test_repeat_until(self):
        """Test repeat blocks close on until."""
        source = analyze_source("r.lua", "repeat\n  x = x + 1\nuntil x > 5 or done")
        assert [str(b.key) for b in source.blocks] == ["loop:1-3"]
        assert [c.expression for c in source.conditions] == ["x > 5", "done"]

    def test_while_consumes_do(self):
        """Test 'do' after 'while' does not open a second block."""
        source = analyze_source("w.lua", "while x do\n  x = f()\nend")
        assert [str(b.key) for b in source.blocks] == ["loop:1-3"]

    def test_plain_do_block(self):
        """Test a bare do ... end block."""
        source = analyze_source("d.lua", "do\n  local x = 1\nend")
        assert [str(b.key) for b in source.blocks] == ["other:1-3"]

    def test_stray_end_is_ignored(self):
        """Test an unmatched end does not raise."""
        source = analyze_source("s.lua", "end\nx = 1")
        assert source.blocks == ()

    def test_unclosed_block_closes_at_eof(self):
        """Test an unclosed block ends on the last line."""
        source = analyze_source("u.lua", "function f()\n  x = 1\n  y = 2")
        assert [str(b.key) for b in source.blocks] == ["function_body:1-3"]

    def test_one_line_branches_get_distinct_keys(self):
        """Test if and else on one line are two blocks with separate keys."""
        source = analyze_source("p.lua", "if x then a() else b() end")
        assert [str(b.key) for b in source.blocks] == ["branch:1-1", "branch:1-1#1"]
        assert source.blocks[1].key == BlockKey(1, 1, BlockType.BRANCH, 1)
        assert [b.entry_line for b in source.blocks] == [1, 1]

    def test_keywords_in_comments_and_strings_are_ignored(self):
        """Test keywords hidden in comments and strings open no blocks."""
        source = analyze_source("k.lua", 'x = "if then end" -- function end\n--[[ do\nend ]]')
        assert source.blocks == ()


class TestFunctions:
    """Test function discovery."""

    def test_function_names(self):
        """Test named, dotted and assigned function names."""
        source = analyze_source("lib/m.lua", MODULE)
        assert [(f.function_id, f.start_line, f.end_line) for f in source.functions] == [
            ("add", 1, 3),
            ("M.check", 5, 13),
            ("cb", 15, 15),
        ]

    def test_anonymous_function_id(self):
        """Test anonymous functions get a synthetic id."""
        source = analyze_source("lib/cb.lua", "run(function(x)\n  return x\nend)")
        function = source.functions[0]
        assert function.function_id == "<anonymous:lib/cb.lua:1:5>"
        assert function.anonymous is True
        assert function.body == BlockKey(1, 3, BlockType.FUNCTION_BODY)

    def test_anonymous_functions_on_one_line(self):
        """Test two anonymous functions on one line keep separate ids and bodies."""
        source = analyze_source("q.lua", "register(function() return 1 end, function() return 2 end)")
        assert [f.function_id for f in source.functions] == [
            "<anonymous:q.lua:1:10>",
            "<anonymous:q.lua:1:35>",
        ]
        assert source.functions[0].body != source.functions[1].body


class TestConditions:
    """Test condition discovery and splitting."""

    def test_conditions_split_on_and_or(self):
        """Test one condition per top-level operand."""
        source = analyze_source("lib/m.lua", MODULE)
        assert [(c.line, c.index, c.expression) for c in source.conditions] == [
            (6, 0, "x > 0"),
            (6, 1, "x < 10"),
            (8, 0, "x == 0"),
        ]

    def test_strings_in_conditions_are_collapsed(self):
        """Test string contents cannot introduce operators."""
        source = analyze_source("c.lua", 'if name == "and or" then\nend')
        assert [c.expression for c in source.conditions] == ['name == ""']

    def test_split_condition_respects_parentheses(self):
        """Test operands inside brackets are not split."""
        assert split_condition("a and (b or c)") == ["a", "(b or c)"]
        assert split_condition("f(a and b) or not c") == ["f(a and b)", "not c"]
        assert split_condition("  single  ") == ["single"]
        assert split_condition("") == []


class TestSourceFile:
    """Test SourceFile accessors."""

    def test_kinds_and_lines(self):
        """Test lines and kinds line up."""
        source = analyze_source("./lib/../lib/m.lua", MODULE)
        assert source.path == "lib/m.lua"
        assert source.line_count == 18
        assert source.kind_of(1) == LineKind.BLOCK_START
        assert source.kind_of(4) == LineKind.NON_EXECUTABLE
        assert source.line_text(2) == "  return a + b"

    def test_lines_outside_file(self):
        """Test lines past EOF are non-executable."""
        source = analyze_source("x.lua", "x = 1")
        assert source.kind_of(0) == LineKind.NON_EXECUTABLE
        assert source.kind_of(99) == LineKind.NON_EXECUTABLE
        assert source.line_text(99) == ""

    def test_executable_lines(self):
        """Test executable lines include block starts but not block ends."""
        source = analyze_source("lib/m.lua", MODULE)
        assert source.executable_lines == [1, 2, 5, 6, 7, 8, 9, 11, 15, 16, 17]

    def test_normalize_path(self):
        """Test path normalization."""
        assert normalize_path("./a/b/../c.lua") == "a/c.lua"
        assert normalize_path("a\\b.lua") == "a/b.lua"
