"""
Authentication endpoints for Slack login

Provides login, current user, logout and health endpoints on top of the
Slack handler and the session manager.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from pydantic import BaseModel

from .handler import SlackAuthenticationHandler
from .properties import AuthProperties
from .session_manager import SESSION_COOKIE_NAME, SessionData

logger = logging.getLogger(__name__)


class ClaimModel(BaseModel):
    type: str
    value: str
    issuer: str


class UserInfoModel(BaseModel):
    """Current user information"""
    authentication_type: str
    name: Optional[str] = None
    claims: List[ClaimModel]
    session_created: float
    session_expires: float
    authenticated: bool = True


class LogoutResponse(BaseModel):
    success: bool
    message: str


class AuthHealthResponse(BaseModel):
    """Authentication system health"""
    status: str
    slack: Dict[str, Any]
    session_manager: Dict[str, Any]
    message: Optional[str] = None


async def get_current_user(request: Request) -> SessionData:
    """
    FastAPI dependency returning the signed-in session

    Raises:
        HTTPException: 401 if no valid session was resolved by the middleware
    """
    user = getattr(request.state, 'user', None)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required"
        )
    return user


def _resolve_return_url(request: Request, return_url: Optional[str]) -> str:
    # Only same-site relative targets are accepted
    if not return_url:
        return_url = "/"
    if not return_url.startswith("/") or return_url.startswith("//"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="return_url must be a relative path"
        )
    return SlackAuthenticationHandler.base_uri(request) + return_url


def create_auth_router(handler: SlackAuthenticationHandler) -> APIRouter:
    """
    Create authentication router bound to a Slack handler

    Args:
        handler: Configured Slack authentication handler

    Returns:
        Configured FastAPI router
    """
    router = APIRouter(tags=["authentication"])
    session_manager = handler.session_manager

    @router.get("/auth/login")
    async def login(request: Request, return_url: Optional[str] = None):
        """Start a Slack login, returning to return_url afterwards"""
        properties = AuthProperties()
        properties.redirect_uri = _resolve_return_url(request, return_url)
        return await handler.apply_challenge(request, properties)

    @router.get("/auth/user", response_model=UserInfoModel)
    async def current_user(current_user: SessionData = Depends(get_current_user)):
        identity = current_user.identity
        return UserInfoModel(
            authentication_type=identity.authentication_type,
            name=identity.name,
            claims=[ClaimModel(type=c.type, value=c.value, issuer=c.issuer) for c in identity.claims],
            session_created=current_user.created_at,
            session_expires=current_user.expires_at
        )

    @router.post("/auth/logout", response_model=LogoutResponse)
    async def logout(request: Request, response: Response):
        """Delete the current session and its cookie"""
        session_id = request.cookies.get(SESSION_COOKIE_NAME)
        if not session_id:
            return LogoutResponse(success=True, message="No active session found")

        await session_manager.delete_session(session_id)
        response.delete_cookie(key=SESSION_COOKIE_NAME, path="/", httponly=True, samesite="lax")
        return LogoutResponse(success=True, message="Successfully logged out")

    @router.get("/auth/health", response_model=AuthHealthResponse)
    async def auth_health_check():
        try:
            return AuthHealthResponse(
                status="healthy",
                slack=await handler.health_check(),
                session_manager=await session_manager.health_check()
            )
        except Exception as e:
            logger.error(f"Auth health check failed: {e}")
            return AuthHealthResponse(
                status="error",
                slack={"error": str(e)},
                session_manager={"error": str(e)},
                message=f"Health check failed: {str(e)}"
            )

    return router
