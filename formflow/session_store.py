import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from formflow.wizard import WizardController

logger = logging.getLogger(__name__)

DEFAULT_SESSION_TTL = 3600.0
DEFAULT_MAX_SESSIONS = 1000


@dataclass
class _SessionEntry:
    controller: WizardController
    expires_at: float


class SessionStore:
    """In-process wizard sessions that expire after ``ttl_seconds`` without use.

    When ``max_sessions`` is reached, the least recently used session is
    dropped to make room for a new one.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_SESSION_TTL,
        max_sessions: int = DEFAULT_MAX_SESSIONS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self.max_sessions = max(1, max_sessions)
        self._clock = clock
        self._sessions: Dict[str, _SessionEntry] = {}

    def __len__(self) -> int:
        self.evict_expired()
        return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        return self.get(session_id) is not None

    def add(self, session_id: str, controller: WizardController) -> None:
        self.evict_expired()
        while len(self._sessions) >= self.max_sessions:
            oldest = min(self._sessions, key=lambda key: self._sessions[key].expires_at)
            del self._sessions[oldest]
            logger.info("Dropped least recently used session %s", oldest)
        self._sessions[session_id] = _SessionEntry(controller, self._clock() + self.ttl_seconds)

    def get(self, session_id: str) -> Optional[WizardController]:
        """Return the live controller and refresh its expiry, or None."""
        entry = self._sessions.get(session_id)
        now = self._clock()
        if entry is None:
            return None
        if entry.expires_at <= now:
            del self._sessions[session_id]
            logger.info("Session %s expired", session_id)
            return None
        entry.expires_at = now + self.ttl_seconds
        return entry.controller

    def pop(self, session_id: str) -> Optional[WizardController]:
        entry = self._sessions.pop(session_id, None)
        return entry.controller if entry is not None else None

    def items(self) -> List[Tuple[str, WizardController]]:
        self.evict_expired()
        return [(session_id, entry.controller) for session_id, entry in self._sessions.items()]

    def evict_expired(self) -> int:
        now = self._clock()
        expired = [key for key, entry in self._sessions.items() if entry.expires_at <= now]
        for key in expired:
            del self._sessions[key]
        if expired:
            logger.info("Evicted %d idle sessions", len(expired))
        return len(expired)
