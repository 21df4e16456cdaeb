"""In-memory IG session storage keyed by connection identity."""

from __future__ import annotations

import secrets
import time
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from ig_mcp.models import IGCredentials, IGSession


@dataclass(slots=True)
class _ConnectionEntry:
    session: Optional[IGSession] = None
    credentials: Optional[IGCredentials] = None


class SessionStore:
    """
    Maps a connection identity to its broker session and cached credentials.

    Every mutation is a plain dict operation; callers run on one event loop,
    so no locking is done here.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, _ConnectionEntry] = {}

    def get(self, connection_id: str) -> Optional[IGSession]:
        entry = self._entries.get(connection_id)
        return entry.session if entry is not None else None

    def set(self, connection_id: str, session: IGSession) -> None:
        self._entries.setdefault(connection_id, _ConnectionEntry()).session = session

    def set_credentials(self, connection_id: str, credentials: IGCredentials) -> None:
        self._entries.setdefault(connection_id, _ConnectionEntry()).credentials = credentials

    def get_credentials(self, connection_id: str) -> Optional[IGCredentials]:
        entry = self._entries.get(connection_id)
        return entry.credentials if entry is not None else None

    def clear(self, connection_id: str) -> None:
        """Drop both the session and the cached credentials of a connection."""
        self._entries.pop(connection_id, None)

    def clear_all(self) -> None:
        self._entries.clear()

    def list_all(self) -> List[Tuple[str, Optional[IGSession]]]:
        return [(conn_id, entry.session) for conn_id, entry in self._entries.items()]

    def is_authenticated(self, connection_id: str) -> bool:
        session = self.get(connection_id)
        return session is not None and session.authenticated is True

    @staticmethod
    def generate_connection_id() -> str:
        return f"conn_{int(time.time() * 1000)}_{secrets.token_urlsafe(12)}"


__all__ = ["SessionStore"]
