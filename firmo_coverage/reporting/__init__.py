"""
Firmo Coverage Reporting.

Render coverage summaries as text, JSON, CSV, LCOV and Cobertura XML.
"""

from firmo_coverage.reporting.base import (
    ReportFormatter,
    available_formatters,
    describe_formatters,
    get_formatter,
    register_formatter,
)
from firmo_coverage.reporting.cobertura import CoberturaFormatter
from firmo_coverage.reporting.lcov import LcovFormatter
from firmo_coverage.reporting.structured import CsvFormatter, JsonFormatter
from firmo_coverage.reporting.text import TextFormatter

__all__ = [
    "CoberturaFormatter",
    "CsvFormatter",
    "JsonFormatter",
    "LcovFormatter",
    "ReportFormatter",
    "TextFormatter",
    "available_formatters",
    "describe_formatters",
    "get_formatter",
    "register_formatter",
]
