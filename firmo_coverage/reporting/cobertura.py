"""
Cobertura XML output for CI coverage dashboards.

Files are grouped into packages by directory. Condition operands are reported
as line branches with ``condition-coverage`` attributes.
"""

from itertools import groupby
from posixpath import basename, dirname
from typing import Any

from jinja2 import Environment, Template

from firmo_coverage import __version__
from firmo_coverage.coverage.summary import CoverageSummary, FileSummary
from firmo_coverage.reporting.base import ReportFormatter, register_formatter

COBERTURA_TEMPLATE = """<?xml version="1.0" ?>
<!DOCTYPE coverage SYSTEM "http://cobertura.sourceforge.net/xml/coverage-04.dtd">
<coverage line-rate="{{ totals.line_rate }}" branch-rate="{{ totals.branch_rate }}" lines-covered="{{ totals.lines_covered }}" lines-valid="{{ totals.lines_valid }}" branches-covered="{{ totals.branches_covered }}" branches-valid="{{ totals.branches_valid }}" complexity="0" version="{{ version }}" timestamp="0">
  <sources>
    <source>{{ source_root }}</source>
  </sources>
  <packages>
{% for package in packages %}
    <package name="{{ package.name }}" line-rate="{{ package.line_rate }}" branch-rate="{{ package.branch_rate }}" complexity="0">
      <classes>
{% for cls in package.classes %}
        <class name="{{ cls.name }}" filename="{{ cls.filename }}" line-rate="{{ cls.line_rate }}" branch-rate="{{ cls.branch_rate }}" complexity="0">
          <methods>
{% for method in cls.methods %}
            <method name="{{ method.name }}" signature="" line-rate="{{ method.line_rate }}" branch-rate="0" complexity="0">
              <lines>
                <line number="{{ method.line }}" hits="{{ method.hits }}"/>
              </lines>
            </method>
{% endfor %}
          </methods>
          <lines>
{% for line in cls.lines %}
{% if line.branches %}
            <line number="{{ line.number }}" hits="{{ line.hits }}" branch="true" condition-coverage="{{ line.condition_coverage }}"/>
{% else %}
            <line number="{{ line.number }}" hits="{{ line.hits }}" branch="false"/>
{% endif %}
{% endfor %}
          </lines>
        </class>
{% endfor %}
      </classes>
    </package>
{% endfor %}
  </packages>
</coverage>
"""


def _rate(part: int, whole: int) -> str:
    return f"{(part / whole) if whole else 1.0:.4f}"


@register_formatter
class CoberturaFormatter(ReportFormatter):
    """Cobertura XML report."""

    name = "cobertura"
    extension = "xml"
    description = "Cobertura XML (Jenkins, GitLab, Azure DevOps)"

    def __init__(
        self,
        source_root: str = ".",
        covered_only: bool = False,
        template: str | None = None,
    ):
        """
        Args:
            source_root: Value of the <source> element
            covered_only: Count a line as hit only when an assertion covered it
            template: Optional custom Jinja2 template string
        """
        self.source_root = source_root
        self.covered_only = covered_only
        self.version = __version__
        self.env = Environment(autoescape=True, trim_blocks=True, lstrip_blocks=True)
        self.template: Template = self.env.from_string(template or COBERTURA_TEMPLATE)

    def render(self, summary: CoverageSummary) -> str:
        classes = sorted(
            (self._class_context(file) for file in summary.files.values()),
            key=lambda c: (c["package"], c["filename"]),
        )

        packages = []
        for name, members in groupby(classes, key=lambda c: c["package"]):
            members = list(members)
            packages.append(
                {
                    "name": name,
                    "classes": members,
                    **self._rates(members),
                }
            )

        totals = self._rates(classes)
        return self.template.render(
            totals=totals,
            packages=packages,
            source_root=self.source_root,
            version=self.version,
        )

    def _hits(self, line: Any) -> int:
        if self.covered_only and not line.covered:
            return 0
        return line.execution_count

    def _class_context(self, file: FileSummary) -> dict[str, Any]:
        conditions: dict[int, list[tuple[int, int]]] = {}
        for condition in file.conditions:
            conditions.setdefault(condition.line, []).append(
                (condition.true_count, condition.false_count)
            )

        lines = []
        for line in file.lines:
            if not line.kind.is_executable:
                continue
            outcomes = conditions.get(line.number, [])
            total = 2 * len(outcomes)
            taken = sum((t > 0) + (f > 0) for t, f in outcomes)
            lines.append(
                {
                    "number": line.number,
                    "hits": self._hits(line),
                    "branches": total,
                    "branches_taken": taken,
                    "condition_coverage": (
                        f"{round(100 * taken / total)}% ({taken}/{total})" if total else ""
                    ),
                }
            )

        methods = [
            {
                "name": fn.function_id,
                "line": fn.start_line,
                "hits": fn.execution_count,
                "line_rate": "1.0000" if fn.executed else "0.0000",
            }
            for fn in file.functions
        ]

        context = {
            "name": basename(file.path).rsplit(".", 1)[0] or file.path,
            "filename": file.path,
            "package": dirname(file.path).replace("/", ".") or ".",
            "lines": lines,
            "methods": methods,
        }
        context.update(self._rates([context]))
        return context

    @staticmethod
    def _rates(classes: list[dict[str, Any]]) -> dict[str, Any]:
        lines = [line for cls in classes for line in cls["lines"]]
        lines_covered = sum(1 for line in lines if line["hits"] > 0)
        branches_valid = sum(line["branches"] for line in lines)
        branches_covered = sum(line["branches_taken"] for line in lines)
        return {
            "lines_valid": len(lines),
            "lines_covered": lines_covered,
            "branches_valid": branches_valid,
            "branches_covered": branches_covered,
            "line_rate": _rate(lines_covered, len(lines)),
            "branch_rate": _rate(branches_covered, branches_valid),
        }
