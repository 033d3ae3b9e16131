"""
Report formatter interface and registry.

A formatter turns a CoverageSummary into text. Formatters are pure: the same
summary always renders to the same output and nothing in the session is
touched. New formats are added by registering a subclass, never by changing
the engine.
"""

from abc import ABC, abstractmethod
from typing import Any, ClassVar

from firmo_coverage.coverage.summary import CoverageSummary
from firmo_coverage.errors import ConfigurationError
from firmo_coverage.models import LineStatus

_REGISTRY: dict[str, type["ReportFormatter"]] = {}

STATUS_MARKERS = {
    LineStatus.COVERED: "+",
    LineStatus.EXECUTED: "*",
    LineStatus.NOT_EXECUTED: "-",
    LineStatus.NON_EXECUTABLE: " ",
}


class ReportFormatter(ABC):
    """Base class for report formatters."""

    name: ClassVar[str] = ""
    extension: ClassVar[str] = "txt"
    description: ClassVar[str] = ""

    @abstractmethod
    def render(self, summary: CoverageSummary) -> str:
        """Render a coverage summary."""


def register_formatter(cls: type[ReportFormatter]) -> type[ReportFormatter]:
    """Class decorator adding a formatter to the registry under ``cls.name``."""
    if not cls.name:
        msg = f"Formatter {cls.__name__} has no name"
        raise ValueError(msg)
    _REGISTRY[cls.name] = cls
    return cls


def get_formatter(name: str, **options: Any) -> ReportFormatter:
    """
    Instantiate a registered formatter.

    Args:
        name: Formatter name (text, json, csv, lcov, cobertura, ...)
        **options: Passed to the formatter's constructor

    Raises:
        ConfigurationError: If no formatter has that name
    """
    cls = _REGISTRY.get(name.lower())
    if cls is None:
        available = ", ".join(available_formatters())
        msg = f"Unknown report format: {name}. Available: {available}"
        raise ConfigurationError(msg)
    return cls(**options)


def available_formatters() -> list[str]:
    """Names of all registered formatters."""
    return sorted(_REGISTRY)


def describe_formatters() -> dict[str, str]:
    """Map formatter names to their descriptions."""
    return {name: _REGISTRY[name].description for name in available_formatters()}


def format_percent(value: float) -> str:
    return f"{value:.2f}%"
