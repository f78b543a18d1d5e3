"""Session manager holding the conversation state of every user.

Sessions live in process memory only: a restart drops every in-flight
conversation, including running batch jobs. Sessions are never expired.
"""

import logging
from datetime import UTC, datetime
from threading import Lock
from typing import Any

from fleetlog.model.session import ConversationSession, ConversationState

logger = logging.getLogger(__name__)


class SessionManager:
    """Per-session state label plus data bag, created on first use.

    Example:
        >>> manager = SessionManager()
        >>> manager.get_state("telegram:-100123:42")
        <ConversationState.IDLE: 'idle'>
        >>> manager.transition("telegram:-100123:42", ConversationState.FUEL_AWAITING_KM, {"draft": draft})
    """

    def __init__(self) -> None:
        self._lock = Lock()
        self._sessions: dict[str, ConversationSession] = {}

    def get(self, session_key: str) -> ConversationSession:
        """Get a session, creating an idle one if needed."""
        with self._lock:
            session = self._sessions.get(session_key)
            if session is None:
                session = ConversationSession()
                self._sessions[session_key] = session
                logger.debug(f"Created session: {session_key}")
            return session

    def get_state(self, session_key: str) -> ConversationState:
        return self.get(session_key).state

    def transition(
        self,
        session_key: str,
        state: ConversationState | str,
        data: dict[str, Any] | None = None,
    ) -> ConversationSession:
        """Move a session to a new state.

        The state is replaced unconditionally. ``data`` replaces the data
        bag only when given; ``None`` keeps the existing data. Entering the
        idle state always clears the data.

        Raises:
            ValueError: ``state`` is not a known conversation state.
        """
        new_state = ConversationState(state)
        session = self.get(session_key)

        with self._lock:
            old_state = session.state
            session.state = new_state
            if new_state == ConversationState.IDLE:
                session.data = {}
            elif data is not None:
                session.data = data
            session.last_active_at = datetime.now(UTC)

        logger.debug(f"{session_key}: {old_state} -> {new_state}")
        return session

    def reset(self, session_key: str) -> ConversationSession:
        """Return a session to idle with an empty data bag."""
        return self.transition(session_key, ConversationState.IDLE, {})

    def list_sessions(self) -> dict[str, ConversationSession]:
        """Snapshot of all sessions, keyed by session key."""
        with self._lock:
            return dict(self._sessions)
