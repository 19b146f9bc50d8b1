"""
Slack login for Starlette and FastAPI applications

Delegates user sign-in to Slack's OAuth2 authorization code flow: the browser is
redirected to Slack, the callback is validated and exchanged for a token, and
the resulting Slack identity is signed in as a claims identity.
"""

from .config import SlackAuthOptions
from .properties import AuthProperties
from .state import StateDataFormat
from .identity import Claim, ClaimsIdentity, SlackIdentity, build_claims
from .provider import (
    ApplyRedirectContext,
    AuthenticatedContext,
    AuthenticationTicket,
    ReturnEndpointContext,
    SlackAuthenticationProvider,
)
from .handler import SlackAuthenticationHandler
from .session_manager import SessionManager, SessionData
from .middleware import SlackAuthMiddleware, challenge
from .endpoints import create_auth_router, get_current_user
from .auth_manager import SlackAuthManager
from .errors import (
    SlackAuthError,
    InvalidStateError,
    ProviderDeniedError,
    CsrfValidationError,
    TokenExchangeError,
    ProfileFetchError,
    UnexpectedAuthError,
)

__all__ = [
    'SlackAuthOptions',
    'AuthProperties',
    'StateDataFormat',
    'Claim',
    'ClaimsIdentity',
    'SlackIdentity',
    'build_claims',
    'ApplyRedirectContext',
    'AuthenticatedContext',
    'AuthenticationTicket',
    'ReturnEndpointContext',
    'SlackAuthenticationProvider',
    'SlackAuthenticationHandler',
    'SessionManager',
    'SessionData',
    'SlackAuthMiddleware',
    'challenge',
    'create_auth_router',
    'get_current_user',
    'SlackAuthManager',
    'SlackAuthError',
    'InvalidStateError',
    'ProviderDeniedError',
    'CsrfValidationError',
    'TokenExchangeError',
    'ProfileFetchError',
    'UnexpectedAuthError',
]
