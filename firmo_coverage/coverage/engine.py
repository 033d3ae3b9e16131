"""
CoverageEngine - process-wide entry point for live coverage.

Holds the single running session that instrumentation hooks and assertion
helpers report into. Callers keep the handle returned by ``start()``; the
active-session lookup exists only for code that cannot be handed one (such as
assertion helpers deep in a test framework).
"""

import logging
import threading
from typing import Any

from firmo_coverage.config import CoverageConfig
from firmo_coverage.coverage.session import CoverageSession
from firmo_coverage.errors import SessionAlreadyActiveError

logger = logging.getLogger(__name__)


class CoverageEngine:
    """Start sessions and enforce one running session per process."""

    _lock = threading.Lock()
    _active: CoverageSession | None = None

    @classmethod
    def start(
        cls,
        config: CoverageConfig | dict[str, Any] | None = None,
        session_id: str | None = None,
    ) -> CoverageSession:
        """
        Create and start the process-wide coverage session.

        Args:
            config: Session configuration
            session_id: Optional session identifier

        Returns:
            The running session (the handle for all tracking calls)

        Raises:
            ConfigurationError: If the configuration is invalid
            SessionAlreadyActiveError: If a session is already running
        """
        session = CoverageSession(config, session_id=session_id)

        with cls._lock:
            if cls._active is not None:
                msg = f"Coverage session {cls._active.session_id} is already running"
                raise SessionAlreadyActiveError(msg)
            session.add_stop_callback(cls._release)
            session.start()
            cls._active = session

        return session

    @classmethod
    def active(cls) -> CoverageSession | None:
        """The running session, if any."""
        return cls._active

    @classmethod
    def stop(cls) -> CoverageSession | None:
        """Stop the running session, if any, and return it."""
        session = cls._active
        if session is not None:
            session.stop()
        return session

    @classmethod
    def _release(cls, session: CoverageSession) -> None:
        with cls._lock:
            if cls._active is session:
                cls._active = None
                logger.debug("Released active session %s", session.session_id)


def start(
    config: CoverageConfig | dict[str, Any] | None = None, session_id: str | None = None
) -> CoverageSession:
    """Start the process-wide coverage session."""
    return CoverageEngine.start(config, session_id=session_id)


def active_session() -> CoverageSession | None:
    """The running session, if any."""
    return CoverageEngine.active()
