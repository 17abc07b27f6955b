"""Explicit per-browser sessions replacing ambient auth state"""
import re
import secrets
from enum import Enum
from pathlib import Path
from threading import RLock
from typing import Any, Dict, Optional
from app.core.cache.recents_cache import RecentsCache
from app.core.security import is_token_expired
from app.core.storage import LocalStorage
from app.utils.exceptions import NotAuthenticatedError
from app.utils.logger import logger

_SESSION_ID_RE = re.compile(r"^[A-Za-z0-9_-]{16,128}$")


class SessionState(str, Enum):
    """Lifecycle of a session"""
    ANONYMOUS = "anonymous"
    AUTHENTICATED = "authenticated"
    EXPIRED = "expired"


class Session:
    """
    One browser's view of the portal: bearer token, user profile, and the
    locally persisted state (recents, saved settings, language).

    Lifecycle: anonymous -> authenticated -> expired. An expired session keeps
    its cached profile until the user signs in again or signs out.
    """

    def __init__(self, session_id: str, storage: LocalStorage, recents_limit: int = 10):
        self.id = session_id
        self.storage = storage
        self.recents = RecentsCache(storage, max_size=recents_limit)
        self.settings_sync = None
        self._expired = False

    @property
    def token(self) -> Optional[str]:
        return self.storage.get_item("token")

    @property
    def user(self) -> Optional[Dict[str, Any]]:
        return self.storage.get_item("user")

    @property
    def state(self) -> SessionState:
        token = self.token
        if not token:
            return SessionState.ANONYMOUS
        if self._expired or is_token_expired(token):
            return SessionState.EXPIRED
        return SessionState.AUTHENTICATED

    @property
    def is_authenticated(self) -> bool:
        return self.state == SessionState.AUTHENTICATED

    def sign_in(self, token: str, user: Optional[Dict[str, Any]] = None) -> None:
        self.storage.set_item("token", token)
        if user is not None:
            self.storage.set_item("user", user)
        self._expired = False
        self.settings_sync = None
        logger.info(f"Session {self.id[:8]} authenticated")

    def update_user(self, **fields) -> Optional[Dict[str, Any]]:
        """Merge fields into the cached profile; no-op when nobody is signed in"""
        user = self.user
        if user is None:
            return None
        user = {**user, **fields}
        self.storage.set_item("user", user)
        return user

    def expire(self) -> None:
        if self.token and not self._expired:
            logger.info(f"Session {self.id[:8]} expired")
        self._expired = True

    def sign_out(self) -> None:
        self.storage.remove_item("token")
        self.storage.remove_item("user")
        self._expired = False
        self.settings_sync = None
        logger.info(f"Session {self.id[:8]} signed out")

    def require_token(self) -> str:
        """Return the bearer token or raise when the session cannot make authenticated calls"""
        state = self.state
        if state == SessionState.ANONYMOUS:
            raise NotAuthenticatedError("Please sign in to continue")
        if state == SessionState.EXPIRED:
            raise NotAuthenticatedError("Your session has expired, please sign in again")
        return self.token


class SessionManager:
    """Registry of signed-in sessions, restoring them from storage on first access"""

    def __init__(self, storage_dir: str, recents_limit: int = 10):
        self.storage_dir = Path(storage_dir)
        self.recents_limit = recents_limit
        self._sessions: Dict[str, Session] = {}
        self._lock = RLock()

    def _storage_for(self, session_id: str) -> LocalStorage:
        return LocalStorage(self.storage_dir / f"{session_id}.json")

    @staticmethod
    def is_valid_id(session_id: Optional[str]) -> bool:
        return bool(session_id) and bool(_SESSION_ID_RE.match(session_id))

    def get(self, session_id: Optional[str]) -> Optional[Session]:
        """Look up a session, reloading it from disk after a restart"""
        if not self.is_valid_id(session_id):
            return None
        with self._lock:
            session = self._sessions.get(session_id)
            if session is not None:
                return session
            path = self.storage_dir / f"{session_id}.json"
            if not path.exists():
                return None
            session = Session(session_id, self._storage_for(session_id), self.recents_limit)
            self._sessions[session_id] = session
            logger.debug(f"Session {session_id[:8]} restored ({session.state.value})")
            return session

    def create(self) -> Session:
        """
        Fresh anonymous session, not yet tracked.

        It only joins the registry through `register`, once it holds a token.
        """
        session_id = secrets.token_urlsafe(32)
        return Session(session_id, self._storage_for(session_id), self.recents_limit)

    def register(self, session: Session) -> None:
        with self._lock:
            if session.id not in self._sessions:
                self._sessions[session.id] = session
                logger.debug(f"Session {session.id[:8]} registered")

    def discard(self, session_id: str) -> None:
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is not None:
            session.storage.clear()

    def __len__(self) -> int:
        return len(self._sessions)
