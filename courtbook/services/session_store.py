"""In-memory store of open booking sessions."""
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

import pytz

from courtbook.core.exceptions import NotFoundError
from courtbook.services.booking_session import BookingSession
from courtbook.services.events import BookingEvent

logger = logging.getLogger(__name__)


class SessionStore:
    """Sessions by id, with the time each was last used."""

    def __init__(self):
        self._sessions: Dict[str, BookingSession] = {}
        self._touched: Dict[str, datetime] = {}

    def __len__(self):
        return len(self._sessions)

    def add(self, session: BookingSession) -> BookingSession:
        self._sessions[session.session_id] = session
        self._touched[session.session_id] = datetime.now(pytz.UTC)
        return session

    def get(self, session_id: str) -> BookingSession:
        """Fetch a session and mark it as used."""
        session = self._sessions.get(session_id)
        if session is None:
            raise NotFoundError(f"Session {session_id} not found", status_code=404)
        self._touched[session_id] = datetime.now(pytz.UTC)
        return session

    def remove(self, session_id: str) -> Optional[BookingSession]:
        session = self._sessions.pop(session_id, None)
        self._touched.pop(session_id, None)
        if session is not None:
            session.close()
        return session

    def all(self) -> List[BookingSession]:
        return list(self._sessions.values())

    def expire_idle(self, ttl_minutes: int, now: Optional[datetime] = None) -> List[str]:
        """Drop sessions not used for ``ttl_minutes``. Returns their ids."""
        cutoff = (now or datetime.now(pytz.UTC)) - timedelta(minutes=ttl_minutes)
        expired = [sid for sid, touched in self._touched.items() if touched < cutoff]
        for session_id in expired:
            self.remove(session_id)
        if expired:
            logger.info(f"Expired {len(expired)} idle session(s)")
        return expired

    async def broadcast(self, event: BookingEvent, **payload: Any):
        """Publish an event on every open session's channel."""
        for session in self.all():
            await session.events.publish(event, **payload)


# Singleton instance
session_store = SessionStore()
