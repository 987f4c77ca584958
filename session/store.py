# session/store.py

import threading
from contextlib import contextmanager
from typing import Dict, Optional

from session.context import Session


class _IdentityLock:
    def __init__(self):
        self.lock = threading.Lock()
        self.users = 0


class ConversationStore:
    """
    identity -> Session, plus one lock per identity.

    Requests are served on several threads, so callers wrap each
    read-modify-write of a session in `with store.lock(identity):`.
    A lock only exists while some thread holds or waits on it.
    """

    def __init__(self):
        self._sessions: Dict[str, Session] = {}
        self._locks: Dict[str, _IdentityLock] = {}
        self._guard = threading.Lock()

    @contextmanager
    def lock(self, identity: str):
        with self._guard:
            entry = self._locks.get(identity)
            if entry is None:
                entry = self._locks[identity] = _IdentityLock()
            entry.users += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._guard:
                entry.users -= 1
                if entry.users == 0:
                    del self._locks[identity]

    def get(self, identity: str) -> Optional[Session]:
        return self._sessions.get(identity)

    def create(self, identity: str, display_name: str) -> Session:
        # Replaces any in-flight session for this identity, no merge
        session = Session.seeded(identity, display_name)
        self._sessions[identity] = session
        return session

    def delete(self, identity: str) -> bool:
        return self._sessions.pop(identity, None) is not None

    def __contains__(self, identity: str) -> bool:
        return identity in self._sessions

    def __len__(self):
        return len(self._sessions)
