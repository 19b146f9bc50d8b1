"""
Session management for Slack sign-in

Default sign-in collaborator: keeps signed-in identities server-side, keyed by
an opaque session id that travels in an httpOnly cookie.
"""

import time
import uuid
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from .identity import ClaimsIdentity
from .properties import AuthProperties

logger = logging.getLogger(__name__)

SESSION_COOKIE_NAME = "slack_auth_session"


@dataclass
class SessionData:
    """Signed-in identity and its session timestamps"""
    session_id: str
    identity: ClaimsIdentity
    properties: AuthProperties
    created_at: float
    last_accessed: float
    expires_at: float

    def is_expired(self) -> bool:
        """Check if session is expired"""
        return time.time() > self.expires_at

    def update_last_accessed(self) -> None:
        self.last_accessed = time.time()


class SessionManager:
    """
    Manages signed-in sessions in process memory
    """

    def __init__(self, session_timeout: int = 3600):
        """
        Initialize session manager

        Args:
            session_timeout: Session timeout in seconds (default 1 hour)
        """
        self.session_timeout = session_timeout
        self._sessions: Dict[str, SessionData] = {}

    async def sign_in(self, properties: AuthProperties, identity: ClaimsIdentity) -> str:
        """
        Establish a session for a signed-in identity

        Args:
            properties: Authentication properties of the completed login
            identity: Identity under the sign-in authentication type

        Returns:
            Session ID
        """
        await self.cleanup_expired_sessions()

        session_id = str(uuid.uuid4())
        current_time = time.time()

        self._sessions[session_id] = SessionData(
            session_id=session_id,
            identity=identity,
            properties=properties,
            created_at=current_time,
            last_accessed=current_time,
            expires_at=current_time + self.session_timeout
        )

        logger.info(f"Created session for {identity.name} (ID: {session_id[:8]}...)")
        return session_id

    async def get_session(self, session_id: Optional[str]) -> Optional[SessionData]:
        """
        Get session data by session ID

        Returns:
            SessionData if a valid session exists, None otherwise
        """
        if not session_id:
            return None

        session_data = self._sessions.get(session_id)
        if not session_data:
            return None

        if session_data.is_expired():
            await self.delete_session(session_id)
            logger.info(f"Expired session removed: {session_id[:8]}...")
            return None

        session_data.update_last_accessed()
        return session_data

    async def delete_session(self, session_id: str) -> bool:
        success = self._sessions.pop(session_id, None) is not None
        if success:
            logger.info(f"Deleted session: {session_id[:8]}...")
        return success

    async def cleanup_expired_sessions(self) -> int:
        """
        Clean up expired sessions

        Returns:
            Number of sessions cleaned up
        """
        expired_sessions = [
            session_id for session_id, session_data in self._sessions.items()
            if session_data.is_expired()
        ]

        for session_id in expired_sessions:
            del self._sessions[session_id]

        if expired_sessions:
            logger.info(f"Cleaned up {len(expired_sessions)} expired sessions")

        return len(expired_sessions)

    async def health_check(self) -> Dict[str, Any]:
        return {
            "storage_type": "memory",
            "session_timeout": self.session_timeout,
            "active_sessions": len([s for s in self._sessions.values() if not s.is_expired()])
        }
