"""Build immutable SourceFile objects from path + text."""

import os
from functools import lru_cache
from pathlib import Path

from firmo_coverage.analysis.classifier import LineClassifier, kind_of_code, split_lines
from firmo_coverage.analysis.structure import analyze_structure
from firmo_coverage.models import SourceFile


@lru_cache(maxsize=4096)
def normalize_path(path: str | Path) -> str:
    """Normalize a path to the form used as a file key (forward slashes, no ``./``)."""
    normalized = os.path.normpath(str(path))
    return normalized.replace("\\", "/")


def analyze_source(path: str | Path, source_text: str | bytes) -> SourceFile:
    """
    Classify a file and discover its structure.

    Args:
        path: File path (normalized here)
        source_text: Full source text

    Returns:
        SourceFile with line kinds, blocks, functions and conditions
    """
    key = normalize_path(path)
    if isinstance(source_text, bytes):
        source_text = source_text.decode("utf-8", errors="replace")

    code_lines = LineClassifier().code_lines(source_text)
    kinds = [kind_of_code(code) for code in code_lines]
    structure = analyze_structure(key, code_lines, kinds)

    return SourceFile(
        path=key,
        lines=tuple(split_lines(source_text)),
        kinds=tuple(kinds),
        blocks=structure.blocks,
        functions=structure.functions,
        conditions=structure.conditions,
        text=source_text,
    )


def read_source(path: str | Path) -> str:
    """Read a source file from disk."""
    return Path(path).read_text(encoding="utf-8", errors="replace")
