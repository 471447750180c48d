"""
In-process store of call sessions keyed by carrier call identifier.
"""

from __future__ import annotations

import threading

from voice_booking.calls.session import CallSession
from voice_booking.shared.exceptions import AppError, NotFoundError


class DuplicateSessionError(AppError):
    """A session already exists for this call identifier."""

    def __init__(self, call_id: str) -> None:
        super().__init__(f"Call session already exists: {call_id}", "DUPLICATE_SESSION")
        self.call_id = call_id


class SessionNotFoundError(NotFoundError):
    """No session is registered for this call identifier."""

    def __init__(self, call_id: str) -> None:
        super().__init__(f"Call not found: {call_id}", "CALL_NOT_FOUND")
        self.call_id = call_id


class SessionRegistry:
    """Thread-safe map of call id -> CallSession.

    At most one session per id for the life of the process. Sessions are never
    removed.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, CallSession] = {}
        self._lock = threading.Lock()

    def create(self, call_id: str, session: CallSession) -> CallSession:
        if session.id != call_id:
            raise ValueError(f"Session id {session.id!r} does not match key {call_id!r}")
        with self._lock:
            if call_id in self._sessions:
                raise DuplicateSessionError(call_id)
            self._sessions[call_id] = session
        return session

    def get(self, call_id: str) -> CallSession:
        session = self.find(call_id)
        if session is None:
            raise SessionNotFoundError(call_id)
        return session

    def find(self, call_id: str | None) -> CallSession | None:
        if not call_id:
            return None
        with self._lock:
            return self._sessions.get(call_id)

    def __contains__(self, call_id: object) -> bool:
        with self._lock:
            return call_id in self._sessions

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
