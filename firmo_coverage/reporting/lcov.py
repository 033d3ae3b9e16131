"""
LCOV tracefile output for genhtml, Codecov, Coveralls and similar tools.

Each condition operand becomes a pair of branches (true, false) in BRDA
records, with the operand index as the block number.
"""

from firmo_coverage.coverage.summary import CoverageSummary, FileSummary
from firmo_coverage.reporting.base import ReportFormatter, register_formatter


@register_formatter
class LcovFormatter(ReportFormatter):
    """LCOV tracefile."""

    name = "lcov"
    extension = "info"
    description = "LCOV tracefile (genhtml, Codecov, Coveralls)"

    def __init__(self, covered_only: bool = False):
        """
        Args:
            covered_only: Count a line as hit only when an assertion covered
                it, instead of whenever it executed
        """
        self.covered_only = covered_only

    def render(self, summary: CoverageSummary) -> str:
        records: list[str] = []
        for file in summary.files.values():
            records.append(f"TN:{summary.session_id}")
            records.extend(self._file_records(file))
        return "\n".join(records) + ("\n" if records else "")

    def _file_records(self, file: FileSummary) -> list[str]:
        out = [f"SF:{file.path}"]

        for fn in file.functions:
            out.append(f"FN:{fn.start_line},{fn.function_id}")
        for fn in file.functions:
            out.append(f"FNDA:{fn.execution_count},{fn.function_id}")
        out.append(f"FNF:{len(file.functions)}")
        out.append(f"FNH:{sum(1 for fn in file.functions if fn.executed)}")

        branches = 0
        branches_hit = 0
        for condition in file.conditions:
            for branch, count in enumerate((condition.true_count, condition.false_count)):
                taken = str(count) if count else "-"
                out.append(f"BRDA:{condition.line},{condition.index},{branch},{taken}")
                branches += 1
                branches_hit += 1 if count else 0
        if file.conditions:
            out.append(f"BRF:{branches}")
            out.append(f"BRH:{branches_hit}")

        found = 0
        hit = 0
        for line in file.lines:
            if not line.kind.is_executable:
                continue
            count = line.execution_count
            if self.covered_only and not line.covered:
                count = 0
            out.append(f"DA:{line.number},{count}")
            found += 1
            hit += 1 if count > 0 else 0
        out.append(f"LF:{found}")
        out.append(f"LH:{hit}")
        out.append("end_of_record")
        return out
