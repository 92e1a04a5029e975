import logging
from typing import Optional

from common.keyed_lock import KeyedLock
from .flows import Session, new_session

log = logging.getLogger(__name__)


class SessionStore:
    """
    Live sessions keyed by identifier, plus the per-identifier lock that
    serializes everything touching one user (inbound messages and reminders).

    A session is present only while its dialogue is unfinished.
    """

    def __init__(self, locks: KeyedLock | None = None):
        self._sessions: dict[str, Session] = {}
        self.lock = locks if locks is not None else KeyedLock()

    def get(self, identifier: str) -> Optional[Session]:
        return self._sessions.get(identifier)

    def create(self, identifier: str, phone: str) -> Session:
        sess = new_session(identifier, phone)
        self._sessions[identifier] = sess
        log.info(f"[SESSION] Created session for {identifier} (phone={phone or 'unknown'})")
        return sess

    def put(self, session: Session):
        if session.identifier not in self._sessions:
            raise KeyError(f"no live session for {session.identifier}")
        self._sessions[session.identifier] = session

    def remove(self, identifier: str) -> Optional[Session]:
        sess = self._sessions.pop(identifier, None)
        if sess:
            log.info(f"[SESSION] Removed session for {identifier}")
        return sess

    def __contains__(self, identifier: str) -> bool:
        return identifier in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)
