"""In-memory conversation session store."""

from fleetlog.runtime.session.manager import SessionManager

__all__ = ["SessionManager"]
