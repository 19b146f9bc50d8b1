"""
Hooks that let the host application take part in the Slack login

Each hook receives a plain context record. SlackAuthenticationProvider holds one
callable per hook; the defaults below are used for any hook not supplied.
"""

import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional

from starlette import status
from starlette.requests import Request
from starlette.responses import RedirectResponse, Response

from .errors import SlackAuthError
from .identity import ClaimsIdentity, SlackIdentity
from .properties import AuthProperties

logger = logging.getLogger(__name__)


@dataclass
class AuthenticationTicket:
    """Outcome of a callback; identity is None for a failed login"""
    identity: Optional[ClaimsIdentity]
    properties: AuthProperties
    failure: Optional[SlackAuthError] = None


@dataclass
class AuthenticatedContext:
    """Passed to on_authenticated after the identity is assembled"""
    request: Request
    slack_identity: SlackIdentity
    identity: Optional[ClaimsIdentity]
    properties: AuthProperties


@dataclass
class ReturnEndpointContext:
    """Passed to on_return_endpoint once the ticket is produced"""
    request: Request
    ticket: AuthenticationTicket
    sign_in_as_authentication_type: Optional[str] = None
    redirect_uri: Optional[str] = None
    response: Optional[Response] = None
    is_request_completed: bool = False
    identity: Optional[ClaimsIdentity] = field(init=False)
    properties: AuthProperties = field(init=False)

    def __post_init__(self):
        self.identity = self.ticket.identity
        self.properties = self.ticket.properties

    def request_completed(self, response: Optional[Response] = None) -> None:
        """Mark the response as handled, optionally supplying it"""
        if response is not None:
            self.response = response
        self.is_request_completed = True


@dataclass
class ApplyRedirectContext:
    """Passed to on_apply_redirect with the Slack authorize URL"""
    request: Request
    redirect_uri: str
    properties: AuthProperties


async def default_authenticated(context: AuthenticatedContext) -> None:
    return None


async def default_return_endpoint(context: ReturnEndpointContext) -> None:
    return None


def default_apply_redirect(context: ApplyRedirectContext) -> Response:
    return RedirectResponse(url=context.redirect_uri, status_code=status.HTTP_302_FOUND)


class SlackAuthenticationProvider:
    """
    Dispatches the authenticated, return-endpoint and apply-redirect hooks
    """

    def __init__(
        self,
        on_authenticated: Optional[Callable[[AuthenticatedContext], Awaitable[None]]] = None,
        on_return_endpoint: Optional[Callable[[ReturnEndpointContext], Awaitable[None]]] = None,
        on_apply_redirect: Optional[Callable[[ApplyRedirectContext], Response]] = None
    ):
        self.on_authenticated = on_authenticated or default_authenticated
        self.on_return_endpoint = on_return_endpoint or default_return_endpoint
        self.on_apply_redirect = on_apply_redirect or default_apply_redirect

    async def authenticated(self, context: AuthenticatedContext) -> None:
        await self.on_authenticated(context)

    async def return_endpoint(self, context: ReturnEndpointContext) -> None:
        await self.on_return_endpoint(context)

    def apply_redirect(self, context: ApplyRedirectContext) -> Response:
        return self.on_apply_redirect(context)
