"""
Session state: sole owner of the current Session.

The session is replaced wholesale on login, signup and user refresh, and
cleared on logout. Every change is persisted so that a restarted process
resumes authenticated.
"""

import copy
import dataclasses
import json
import logging
import threading
from typing import Any, Optional

from .errors import ProtocolError
from .types import KeyValueStore, Session


logger = logging.getLogger("baasbox")

SESSION_KEY = "baasbox.session"


class SessionState:
    """Thread-safe holder for the process' single live Session."""

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store
        self._lock = threading.RLock()
        self._session = self._load()

    def _load(self) -> Session:
        raw = self._store.get(SESSION_KEY)
        if raw is None:
            return Session()
        try:
            return Session.from_record(json.loads(raw.decode("utf-8")))
        except (ValueError, ProtocolError) as e:
            logger.warning("Discarding unreadable persisted session: %s", e)
            return Session()

    def _persist(self) -> None:
        self._store.set(SESSION_KEY, json.dumps(self._session.to_record()).encode("utf-8"))

    @property
    def session(self) -> Session:
        """A detached snapshot of the current session."""
        with self._lock:
            return copy.deepcopy(self._session)

    @property
    def token(self) -> str:
        with self._lock:
            return self._session.token

    def is_authenticated(self) -> bool:
        with self._lock:
            return self._session.is_authenticated()

    def replace(self, session: Session) -> None:
        """Overwrite the session and persist it."""
        with self._lock:
            self._session = copy.deepcopy(session)
            self._persist()

    def update(self, **changes: Any) -> Session:
        """Change individual fields (e.g. push token) and persist."""
        with self._lock:
            self._session = dataclasses.replace(self._session, **changes)
            self._persist()
            return copy.deepcopy(self._session)

    def reload(self, store: Optional[KeyValueStore] = None) -> None:
        """Re-read the persisted session, optionally from a new store."""
        with self._lock:
            if store is not None:
                self._store = store
            self._session = self._load()

    def clear(self) -> None:
        """Forget the session in memory and in the store."""
        with self._lock:
            self._session = Session()
            self._store.delete(SESSION_KEY)
