"""Shared fixtures for firmo_coverage tests."""

import pytest

from firmo_coverage.coverage import CoverageEngine, CoverageSession


@pytest.fixture(autouse=True)
def _no_active_session():
    """Make sure no test leaks a running process-wide session."""
    CoverageEngine.stop()
    yield
    CoverageEngine.stop()


@pytest.fixture
def session():
    """A running standalone session with default configuration."""
    with CoverageSession(session_id="cov-test") as running:
        yield running


@pytest.fixture
def calc_source():
    """Small Lua file with a function, a branch and a comment."""
    return "\n".join(
        [
            "local function add(a, b)",
            "  return a + b",
            "end",
            "-- helper",
            "local total = add(1, 2)",
            "if total > 2 then",
            "  print(total)",
            "end",
        ]
    )
