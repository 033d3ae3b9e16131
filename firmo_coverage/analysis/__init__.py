"""
Static analysis of Lua source.

Line classification plus block, function and condition discovery.
"""

from firmo_coverage.analysis.classifier import LineClassifier, classify
from firmo_coverage.analysis.source import analyze_source, normalize_path, read_source
from firmo_coverage.analysis.structure import (
    FileStructure,
    StructureAnalyzer,
    analyze_structure,
    split_condition,
)

__all__ = [
    "FileStructure",
    "LineClassifier",
    "StructureAnalyzer",
    "analyze_source",
    "analyze_structure",
    "classify",
    "normalize_path",
    "read_source",
    "split_condition",
]
