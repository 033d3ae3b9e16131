"""
Assertion framework integration.

Assertion machinery calls ``mark_current_line_covered`` (or is wrapped with
``marks_coverage``) so each successful assertion marks the line it was called
from as covered in the active session.
"""

import functools
from collections.abc import Callable
from typing import TypeVar

from firmo_coverage.coverage.engine import CoverageEngine
from firmo_coverage.coverage.frames import caller_location

F = TypeVar("F", bound=Callable)


def mark_current_line_covered(stack_depth: int = 1) -> bool:
    """
    Mark a calling line covered in the active session.

    Args:
        stack_depth: 1 marks the line that called this function, 2 the line
            that called that function, and so on

    Returns:
        True if a session was running and a location was resolved
    """
    session = CoverageEngine.active()
    if session is None or not session.running:
        return False

    location = caller_location(stack_depth)
    if location is None:
        return False
    session.mark_covered(*location)
    return True


def marks_coverage(func: F) -> F:
    """
    Wrap an assertion function so each passing call marks its call site covered.

    Failing assertions raise before anything is marked.
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        result = func(*args, **kwargs)
        mark_current_line_covered(stack_depth=2)
        return result

    return wrapper  # type: ignore[return-value]
