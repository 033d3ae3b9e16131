"""
Machine-readable reports: JSON document and CSV table of line records.
"""

import csv
import io
import json
from typing import Any

from firmo_coverage.coverage.summary import CoverageSummary
from firmo_coverage.reporting.base import ReportFormatter, register_formatter


@register_formatter
class JsonFormatter(ReportFormatter):
    """The full summary as JSON."""

    name = "json"
    extension = "json"
    description = "Full coverage summary as JSON"

    def __init__(self, indent: int | None = 2, include_lines: bool = True):
        self.indent = indent
        self.include_lines = include_lines

    def to_dict(self, summary: CoverageSummary) -> dict[str, Any]:
        """Convert the summary to a JSON-ready dictionary."""
        data = summary.model_dump(mode="json")
        data["function_percent"] = round(summary.function_percent, 2)
        data["block_percent"] = round(summary.block_percent, 2)
        data["condition_percent"] = round(summary.condition_percent, 2)
        if not self.include_lines:
            for file in data["files"].values():
                file.pop("lines", None)
        return data

    def render(self, summary: CoverageSummary) -> str:
        return json.dumps(self.to_dict(summary), indent=self.indent, sort_keys=True) + "\n"


@register_formatter
class CsvFormatter(ReportFormatter):
    """One CSV row per line record."""

    name = "csv"
    extension = "csv"
    description = "Table of per-line records (CSV)"

    COLUMNS = ("path", "line", "kind", "status", "execution_count", "covered")

    def __init__(self, executable_only: bool = False):
        self.executable_only = executable_only

    def rows(self, summary: CoverageSummary) -> list[dict[str, Any]]:
        """The table of records, one per line."""
        records = []
        for file in summary.files.values():
            for line in file.lines:
                if self.executable_only and not line.kind.is_executable:
                    continue
                records.append(
                    {
                        "path": file.path,
                        "line": line.number,
                        "kind": line.kind.value,
                        "status": line.status.value,
                        "execution_count": line.execution_count,
                        "covered": str(line.covered).lower(),
                    }
                )
        return records

    def render(self, summary: CoverageSummary) -> str:
        buffer = io.StringIO()
        writer = csv.DictWriter(buffer, fieldnames=self.COLUMNS, lineterminator="\n")
        writer.writeheader()
        writer.writerows(self.rows(summary))
        return buffer.getvalue()
