"""
Plain-text report: a summary table followed by an annotated listing.

Each listed line carries one of four markers::

    +  covered (executed and validated by an assertion)
    *  executed but not covered
    -  executable, never executed
       non-executable
"""

from firmo_coverage.coverage.summary import CoverageSummary, FileSummary
from firmo_coverage.reporting.base import (
    STATUS_MARKERS,
    ReportFormatter,
    format_percent,
    register_formatter,
)

LEGEND = "Legend: + covered, * executed not covered, - not executed, (blank) non-executable"


@register_formatter
class TextFormatter(ReportFormatter):
    """Summary table plus per-line annotated listing."""

    name = "text"
    extension = "txt"
    description = "Plain-text summary and annotated line listing"

    def __init__(self, show_source: bool = True, show_details: bool = True):
        """
        Args:
            show_source: Include the annotated line listing for each file
            show_details: Include function, block, condition and anomaly totals
        """
        self.show_source = show_source
        self.show_details = show_details

    def render(self, summary: CoverageSummary) -> str:
        out: list[str] = []
        title = f"Coverage report ({summary.session_id})"
        out.append(title)
        out.append("=" * len(title))
        out.extend(self._summary_table(summary))

        if self.show_details:
            out.append("")
            out.extend(self._details(summary))

        if self.show_source:
            for file in summary.files.values():
                out.append("")
                out.extend(self._listing(file))
            if summary.files:
                out.append("")
                out.append(LEGEND)

        return "\n".join(out) + "\n"

    def _summary_table(self, summary: CoverageSummary) -> list[str]:
        width = max([len("File"), len("Total")] + [len(p) for p in summary.files])
        header = (
            f"{'File':<{width}}  {'Lines':>6}  {'Exec':>6}  {'Ran':>6}  "
            f"{'Covered':>7}  {'Coverage':>9}"
        )
        rows = [header, "-" * len(header)]
        for file in summary.files.values():
            rows.append(
                f"{file.path:<{width}}  {file.total_lines:>6}  {file.executable_lines:>6}  "
                f"{file.executed_lines:>6}  {file.covered_lines:>7}  "
                f"{format_percent(file.coverage_percent):>9}"
            )
        rows.append("-" * len(header))
        rows.append(
            f"{'Total':<{width}}  {summary.total_lines:>6}  {summary.executable_lines:>6}  "
            f"{summary.executed_lines:>6}  {summary.covered_lines:>7}  "
            f"{format_percent(summary.coverage_percent):>9}"
        )
        return rows

    def _details(self, summary: CoverageSummary) -> list[str]:
        lines = [
            f"Executed lines:  {summary.executed_lines}/{summary.executable_lines} "
            f"({format_percent(summary.execution_percent)})",
            f"Covered lines:   {summary.covered_lines}/{summary.executable_lines} "
            f"({format_percent(summary.coverage_percent)})",
            f"Functions:       {summary.functions_executed}/{summary.functions_total} "
            f"({format_percent(summary.function_percent)})",
        ]
        if summary.blocks_total:
            lines.append(
                f"Blocks:          {summary.blocks_executed}/{summary.blocks_total} "
                f"({format_percent(summary.block_percent)})"
            )
        if summary.conditions_total:
            lines.append(
                f"Conditions:      {summary.conditions_fully_covered}/{summary.conditions_total} "
                f"({format_percent(summary.condition_percent)})"
            )
        if summary.anomalies.total:
            anomalies = summary.anomalies
            lines.append(
                f"Anomalies:       {anomalies.non_executable_executions} non-executable "
                f"executions, {anomalies.non_executable_coverage} non-executable marks, "
                f"{anomalies.internal_errors} internal errors"
            )
        return lines

    def _listing(self, file: FileSummary) -> list[str]:
        heading = f"{file.path} ({format_percent(file.coverage_percent)} covered)"
        out = [heading, "-" * len(heading)]
        number_width = len(str(max(file.total_lines, 1)))
        count_width = max([len(str(line.execution_count)) for line in file.lines] + [1])

        for line in file.lines:
            marker = STATUS_MARKERS[line.status]
            count = str(line.execution_count) if line.kind.is_executable else ""
            out.append(
                f"{line.number:>{number_width}} {marker} {count:>{count_width}} | {line.source}"
                .rstrip()
            )
        return out
