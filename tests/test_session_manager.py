"""
In-memory session store tests
"""

import pytest

from slack_auth.identity import ClaimsIdentity
from slack_auth.properties import AuthProperties
from slack_auth.session_manager import SessionManager


class TestSessionManager:

    @pytest.mark.asyncio
    async def test_sign_in_sweeps_expired_sessions(self):
        session_manager = SessionManager(session_timeout=-1)

        for _ in range(5):
            await session_manager.sign_in(AuthProperties(), ClaimsIdentity(authentication_type="Cookies"))

        assert len(session_manager._sessions) == 1
        assert await session_manager.cleanup_expired_sessions() == 1
        assert session_manager._sessions == {}

    @pytest.mark.asyncio
    async def test_live_sessions_survive_sweep(self):
        session_manager = SessionManager(session_timeout=3600)

        first = await session_manager.sign_in(AuthProperties(), ClaimsIdentity(authentication_type="Cookies"))
        await session_manager.sign_in(AuthProperties(), ClaimsIdentity(authentication_type="Cookies"))

        assert await session_manager.cleanup_expired_sessions() == 0
        assert (await session_manager.get_session(first)).session_id == first
        assert (await session_manager.health_check())["active_sessions"] == 2

    @pytest.mark.asyncio
    async def test_expired_session_lookup_removes_it(self):
        session_manager = SessionManager(session_timeout=-1)
        session_id = await session_manager.sign_in(AuthProperties(), ClaimsIdentity(authentication_type="Cookies"))

        assert await session_manager.get_session(session_id) is None
        assert session_id not in session_manager._sessions
