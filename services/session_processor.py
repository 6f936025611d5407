"""Request-scoped session processing.

The processor holds no session state between calls. Each request's state
arrives in its Cookie header, the session manager runs against a
throwaway in-memory handler, and the resulting writes leave as Set-Cookie
headers. Concurrent requests therefore never share a mutable store.
"""

from typing import Dict, List, Optional, Tuple

from config import (
    CLIENT_ID_LIFETIME_YEARS,
    COOKIE_PREFIX,
    RANDOMNESS_LENGTH,
    SESSION_KEYS,
    SESSION_TIMEOUT_MS,
    USE_STUBS,
    cookie_options,
)
from models import ProcessedSession
from services.server_storage import ServerStorage
from utils.logging_ import logger
from utils.push_id import TimeLike
from utils.session import SessionConfig, SessionManager


class RequestStorage:
    """Storage handler living for one request.

    Reads fall through to the request cookies until a key is written.
    """

    def __init__(self, server_storage: ServerStorage, cookie_header: Optional[str]):
        self.server_storage = server_storage
        self.cookie_header = cookie_header or ""
        self.writes: Dict[str, Tuple[str, dict]] = {}

    def get(self, key: str) -> Optional[str]:
        if key in self.writes:
            return self.writes[key][0] or None
        return self.server_storage.get(key, self.cookie_header)

    def set(self, key: str, value: str, options: Optional[dict] = None):
        self.writes[key] = (value, dict(options or {}))

    def clear(self):
        self.writes.clear()

    def set_cookie_headers(self) -> List[str]:
        headers = []
        for key, (value, options) in self.writes.items():
            headers.extend(self.server_storage.set(key, value, options))
        return headers


class SessionProcessor:
    """Runs session transitions for cookie-carrying HTTP requests."""

    def __init__(self, manager: Optional[SessionManager] = None, storage: Optional[ServerStorage] = None):
        self.manager = manager or SessionManager(SessionConfig(
            session_timeout=SESSION_TIMEOUT_MS,
            randomness_length=RANDOMNESS_LENGTH,
            use_stubs=USE_STUBS,
            client_id_lifetime_years=CLIENT_ID_LIFETIME_YEARS,
        ))
        self.storage = storage or ServerStorage(prefix=COOKIE_PREFIX, cookie_options=cookie_options())
        self.stats = {"events": 0, "new_clients": 0, "new_sessions": 0, "clears": 0}

    def process(self, cookie_header: Optional[str], now: Optional[TimeLike] = None) -> Tuple[ProcessedSession, List[str]]:
        """Process one event.

        Returns the session data and the Set-Cookie headers carrying the
        new state back to the client.
        """
        request_storage = RequestStorage(self.storage, cookie_header)
        session = self.manager.process(request_storage, now=now)

        self.stats["events"] += 1
        if session.changes.is_new_client:
            self.stats["new_clients"] += 1
        if session.changes.is_new_session:
            self.stats["new_sessions"] += 1

        return session, request_storage.set_cookie_headers()

    def clear(self) -> List[str]:
        """Set-Cookie headers that forget every session cookie."""
        self.stats["clears"] += 1
        logger.info(f"SessionProcessor: clearing {len(SESSION_KEYS)} session keys")
        return self.storage.clear()

    @property
    def status(self) -> dict:
        return {
            **self.stats,
            "session_timeout_ms": self.manager.config.session_timeout,
            "use_stubs": self.manager.config.use_stubs,
        }


# Singleton
_processor: Optional[SessionProcessor] = None


def get_processor() -> SessionProcessor:
    global _processor
    if _processor is None:
        _processor = SessionProcessor()
    return _processor
