"""
Coverage configuration.

CoverageConfig is the in-memory structure passed to ``start()``. PathFilter
applies its include/exclude globs (exclude wins) and can explain which rule
decided a path. ConfigLoader reads the same settings from YAML.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from firmo_coverage.errors import ConfigurationError

DECISION_CACHE_SIZE = 4096


class CoverageConfig(BaseModel):
    """Settings for one coverage session."""

    model_config = ConfigDict(extra="forbid")

    track_blocks: bool = Field(default=True, description="Track block entry counts")
    track_conditions: bool = Field(
        default=False, description="Track true/false outcomes of condition operands"
    )
    include_patterns: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("include_patterns", "include"),
        description="Glob patterns of files to track (empty means all files)",
    )
    exclude_patterns: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("exclude_patterns", "exclude"),
        description="Glob patterns of files to ignore; exclude wins over include",
    )
    threshold: float = Field(
        default=0.0, ge=0.0, le=100.0, description="Minimum coverage percentage"
    )
    report_format: str = Field(default="text", description="Default report formatter name")
    report_path: str | None = Field(default=None, description="Where to write the report")


class RuleKind(str, Enum):
    """Which kind of rule decided a path."""

    INCLUDE = "include"
    EXCLUDE = "exclude"
    DEFAULT = "default"


def translate_glob(pattern: str) -> re.Pattern[str]:
    """
    Compile a path glob to a regex.

    ``*`` and ``?`` stay within one path segment, ``**`` spans segments and
    ``**/`` may match zero directories. Relative patterns match at any
    directory boundary, so ``lib/*.lua`` matches ``/project/lib/a.lua``.
    """
    parts: list[str] = []
    i = 0
    n = len(pattern)
    while i < n:
        ch = pattern[i]
        if ch == "*":
            if pattern.startswith("**", i):
                i += 2
                if i < n and pattern[i] == "/":
                    i += 1
                    parts.append("(?:.*/)?")
                else:
                    parts.append(".*")
                continue
            parts.append("[^/]*")
        elif ch == "?":
            parts.append("[^/]")
        else:
            parts.append(re.escape(ch))
        i += 1

    prefix = "" if pattern.startswith("/") else "(?:.*/)?"
    return re.compile(prefix + "".join(parts) + r"\Z")


@dataclass(frozen=True)
class FilterRule:
    """One compiled include or exclude pattern."""

    pattern: str
    kind: RuleKind
    regex: re.Pattern[str] = field(compare=False, repr=False)

    def matches(self, path: str) -> bool:
        return self.regex.match(path) is not None


@dataclass(frozen=True)
class FilterDecision:
    """Outcome of filtering one path, with the rule that decided it."""

    path: str
    included: bool
    kind: RuleKind
    pattern: str | None = None
    overridden: tuple[str, ...] = ()

    @property
    def reason(self) -> str:
        """Human-readable explanation."""
        if self.kind == RuleKind.EXCLUDE:
            text = f"excluded by '{self.pattern}'"
            if self.overridden:
                text += f" (overrides include {', '.join(repr(p) for p in self.overridden)})"
            return text
        if self.kind == RuleKind.INCLUDE:
            return f"included by '{self.pattern}'"
        if self.included:
            return "included (no include patterns configured)"
        return "not matched by any include pattern"


class PathFilter:
    """
    Include/exclude filter over normalized paths.

    Raises ConfigurationError for empty patterns and for a pattern listed as
    both include and exclude, which has no meaningful reading.
    """

    def __init__(self, include: list[str] | None = None, exclude: list[str] | None = None):
        include = list(include or [])
        exclude = list(exclude or [])

        for pattern in include + exclude:
            if not isinstance(pattern, str) or not pattern.strip():
                msg = f"Invalid path pattern: {pattern!r}"
                raise ConfigurationError(msg)

        conflicting = sorted(set(include) & set(exclude))
        if conflicting:
            msg = f"Patterns listed as both include and exclude: {', '.join(conflicting)}"
            raise ConfigurationError(msg)

        self.include_rules = [FilterRule(p, RuleKind.INCLUDE, translate_glob(p)) for p in include]
        self.exclude_rules = [FilterRule(p, RuleKind.EXCLUDE, translate_glob(p)) for p in exclude]
        self._lookup = lru_cache(maxsize=DECISION_CACHE_SIZE)(self._decide)

    @classmethod
    def from_config(cls, config: CoverageConfig) -> "PathFilter":
        return cls(config.include_patterns, config.exclude_patterns)

    def explain(self, path: str) -> FilterDecision:
        """Decide whether ``path`` is tracked and name the deciding rule."""
        return self._lookup(path)

    def matches(self, path: str) -> bool:
        return self.explain(path).included

    def _decide(self, path: str) -> FilterDecision:
        for rule in self.exclude_rules:
            if rule.matches(path):
                overridden = tuple(r.pattern for r in self.include_rules if r.matches(path))
                return FilterDecision(path, False, RuleKind.EXCLUDE, rule.pattern, overridden)

        if not self.include_rules:
            return FilterDecision(path, True, RuleKind.DEFAULT)

        for rule in self.include_rules:
            if rule.matches(path):
                return FilterDecision(path, True, RuleKind.INCLUDE, rule.pattern)

        return FilterDecision(path, False, RuleKind.DEFAULT)


def ensure_config(config: CoverageConfig | dict[str, Any] | None) -> CoverageConfig:
    """Accept a config object, a mapping, or None (defaults)."""
    if config is None:
        return CoverageConfig()
    if isinstance(config, CoverageConfig):
        return config
    if isinstance(config, dict):
        return ConfigLoader.from_dict(config)
    msg = f"Unsupported configuration type: {type(config).__name__}"
    raise ConfigurationError(msg)


class ConfigLoader:
    """Load and validate coverage configuration from YAML files."""

    DEFAULT_FILENAME = ".firmo-coverage.yml"
    SECTION = "coverage"

    @classmethod
    def from_yaml(cls, path: str | Path) -> CoverageConfig:
        """
        Load configuration from a YAML file.

        Args:
            path: Path to YAML configuration file

        Returns:
            CoverageConfig loaded from file
        """
        path = Path(path)
        if not path.exists():
            msg = f"Configuration file not found: {path}"
            raise FileNotFoundError(msg)

        with path.open() as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                msg = f"Invalid YAML in {path}: {e}"
                raise ConfigurationError(msg) from e

        return cls.from_dict(data or {})

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CoverageConfig:
        """
        Create configuration from a dictionary.

        Accepts either the settings themselves or a mapping with a
        ``coverage`` section.
        """
        if not isinstance(data, dict):
            msg = f"Configuration must be a mapping, got {type(data).__name__}"
            raise ConfigurationError(msg)

        section = data.get(cls.SECTION, data)
        if not isinstance(section, dict):
            msg = f"'{cls.SECTION}' section must be a mapping"
            raise ConfigurationError(msg)

        try:
            return CoverageConfig.model_validate(section)
        except ValidationError as e:
            msg = f"Invalid coverage configuration: {e}"
            raise ConfigurationError(msg) from e

    @classmethod
    def discover(cls, directory: str | Path = ".") -> CoverageConfig:
        """Load ``.firmo-coverage.yml`` from a directory, or defaults if absent."""
        candidate = Path(directory) / cls.DEFAULT_FILENAME
        if candidate.exists():
            return cls.from_yaml(candidate)
        return CoverageConfig()

    @classmethod
    def generate_sample_config(cls) -> str:
        """
        Generate a sample YAML configuration file.

        Returns:
            YAML string for sample configuration
        """
        sample = {
            cls.SECTION: {
                "track_blocks": True,
                "track_conditions": False,
                "include": ["lib/**/*.lua", "src/**/*.lua"],
                "exclude": ["tests/**", "**/vendor/**"],
                "threshold": 80.0,
                "report_format": "text",
                "report_path": "./coverage-reports/coverage.txt",
            }
        }
        return yaml.dump(sample, default_flow_style=False, sort_keys=False)
