"""Call-stack helpers for resolving the line an assertion was called from."""

import sys


def caller_location(stack_depth: int = 1) -> tuple[str, int] | None:
    """
    File and line of a frame above the caller.

    ``caller_location(0)`` is the line that called this function,
    ``caller_location(1)`` that function's caller, and so on.

    Returns:
        (filename, line) or None when the stack is not that deep
    """
    try:
        frame = sys._getframe(stack_depth + 1)
    except ValueError:
        return None
    return frame.f_code.co_filename, frame.f_lineno
