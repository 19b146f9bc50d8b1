"""
Pydantic models for the Slack Web API responses the login flow reads
"""

from pydantic import BaseModel
from typing import Optional


class AuthedUser(BaseModel):
    """authed_user object of oauth.v2.access"""
    id: Optional[str] = None
    access_token: Optional[str] = None
    scope: Optional[str] = None


class IncomingWebhook(BaseModel):
    """incoming_webhook object of oauth.v2.access"""
    channel: Optional[str] = None
    channel_id: Optional[str] = None
    configuration_url: Optional[str] = None
    url: Optional[str] = None


class Team(BaseModel):
    """team object of oauth.v2.access"""
    id: Optional[str] = None
    name: Optional[str] = None


class TokenResponse(BaseModel):
    """OAuth token response from Slack"""
    ok: Optional[bool] = None
    error: Optional[str] = None
    access_token: Optional[str] = None
    bot_user_id: Optional[str] = None
    authed_user: Optional[AuthedUser] = None
    incoming_webhook: Optional[IncomingWebhook] = None
    team: Optional[Team] = None

    @property
    def authed_user_id(self) -> Optional[str]:
        return self.authed_user.id if self.authed_user else None


class SlackUser(BaseModel):
    """user object of users.info"""
    id: Optional[str] = None
    name: Optional[str] = None


class UserInfoResponse(BaseModel):
    """users.info response from Slack"""
    ok: Optional[bool] = None
    error: Optional[str] = None
    user: Optional[SlackUser] = None
