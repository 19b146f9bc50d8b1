"""
Slack authentication middleware

Hooks the Slack handler into a Starlette/FastAPI request pipeline: serves the
callback path, resolves the signed-in session for every other request and turns
qualifying 401 responses into a redirect to Slack.
"""

import logging
from typing import Dict, Optional

from starlette import status
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from .handler import SlackAuthenticationHandler
from .properties import AuthProperties
from .session_manager import SESSION_COOKIE_NAME, SessionData

logger = logging.getLogger(__name__)

CHALLENGE_STATE_ATTR = "slack_auth_challenges"


def challenge(
    request: Request,
    properties: Optional[AuthProperties] = None,
    authentication_type: str = "Slack"
) -> Response:
    """
    Request a Slack challenge from inside an endpoint

    Records the properties for the given authentication type and returns a 401;
    the middleware replaces it with the redirect to Slack.
    """
    challenges: Dict[str, AuthProperties] = getattr(request.state, CHALLENGE_STATE_ATTR, None) or {}
    challenges[authentication_type] = properties if properties is not None else AuthProperties()
    setattr(request.state, CHALLENGE_STATE_ATTR, challenges)
    return Response(status_code=status.HTTP_401_UNAUTHORIZED)


class SlackAuthMiddleware(BaseHTTPMiddleware):
    """
    Starlette middleware for Slack login and session resolution
    """

    def __init__(self, app, handler: SlackAuthenticationHandler):
        """
        Initialize Slack authentication middleware

        Args:
            app: ASGI application
            handler: Configured Slack authentication handler
        """
        super().__init__(app)
        self.handler = handler
        logger.info(f"Initialized Slack authentication middleware on {handler.options.callback_path}")

    async def dispatch(self, request: Request, call_next):
        if self.handler.is_callback_request(request):
            try:
                response = await self.handler.invoke_reply_path(request)
            except Exception as e:
                logger.error(f"Slack reply path failed: {e}", exc_info=True)
                return JSONResponse(
                    status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                    content={"error": "Authentication system error"}
                )

            if response is None:
                response = await call_next(request)
                self.handler.finalize_reply(request, response)
            return response

        request.state.user = await self._extract_session(request)

        response = await call_next(request)

        if response.status_code == status.HTTP_401_UNAUTHORIZED:
            properties = self._lookup_challenge(request)
            if properties is not None:
                return await self.handler.apply_challenge(request, properties)

        return response

    def _lookup_challenge(self, request: Request) -> Optional[AuthProperties]:
        """
        Find the challenge for this scheme

        Passive schemes only answer explicit challenges. Active schemes also
        answer a bare 401, but not one that challenged a different scheme.
        """
        challenges: Dict[str, AuthProperties] = getattr(request.state, CHALLENGE_STATE_ATTR, None) or {}
        authentication_type = self.handler.options.authentication_type

        if authentication_type in challenges:
            return challenges[authentication_type]

        if self.handler.options.is_active and not challenges:
            return AuthProperties()

        return None

    async def _extract_session(self, request: Request) -> Optional[SessionData]:
        session_id = request.cookies.get(SESSION_COOKIE_NAME)
        if not session_id:
            return None

        session_data = await self.handler.session_manager.get_session(session_id)
        if not session_data:
            logger.debug(f"Invalid session ID: {session_id[:8]}...")
            return None

        return session_data
