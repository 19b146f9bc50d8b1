"""
Slack OAuth2 authentication handler

Builds the challenge redirect to Slack's authorize endpoint and handles the
callback: state and CSRF validation, code-for-token exchange, users.info lookup
and identity assembly. Every failure during the callback ends up as a ticket
without an identity (or no ticket at all); nothing propagates to the caller.

See https://api.slack.com/authentication/oauth-v2
"""

import logging
from typing import Dict, Optional, Tuple
from urllib.parse import quote, urlencode

import httpx
from starlette import status
from starlette.requests import Request
from starlette.responses import RedirectResponse, Response

from .config import SlackAuthOptions
from .correlation import CorrelationManager
from .errors import (
    CsrfValidationError,
    InvalidStateError,
    ProfileFetchError,
    ProviderDeniedError,
    SlackAuthError,
    TokenExchangeError,
    UnexpectedAuthError,
)
from .identity import SlackIdentity, build_claims_identity
from .models import TokenResponse, UserInfoResponse
from .properties import AuthProperties
from .provider import (
    ApplyRedirectContext,
    AuthenticatedContext,
    AuthenticationTicket,
    ReturnEndpointContext,
    SlackAuthenticationProvider,
)
from .session_manager import SESSION_COOKIE_NAME, SessionManager
from .state import StateDataFormat

logger = logging.getLogger(__name__)

AUTHORIZE_ENDPOINT = "https://slack.com/oauth/v2/authorize"
TOKEN_ENDPOINT = "https://slack.com/api/oauth.v2.access"
USER_INFO_ENDPOINT = "https://slack.com/api/users.info"

REQUIRED_SCOPE = "identify"

FORM_HEADERS = {'Content-Type': 'application/x-www-form-urlencoded'}


def add_query_string(uri: str, name: str, value: str) -> str:
    """Append one query parameter to a URI, keeping any fragment last"""
    base, hash_mark, fragment = uri.partition('#')
    separator = '&' if '?' in base else '?'
    return f"{base}{separator}{quote(name, safe='')}={quote(value, safe='')}{hash_mark}{fragment}"


def _consume_query_value(
    query: Dict[str, str],
    properties: AuthProperties,
    name: str,
    default: Optional[str] = None
) -> None:
    # A value in the properties wins and is removed so it is not repeated in state
    value = properties.pop(name)
    if value is None:
        value = default
    if value is None:
        return
    query[name] = value


def _scope_value(scopes) -> str:
    ordered = list(dict.fromkeys(s for s in scopes if s))
    if REQUIRED_SCOPE not in ordered:
        ordered.append(REQUIRED_SCOPE)
    return ' '.join(ordered)


class SlackAuthenticationHandler:
    """
    Runs the Slack OAuth2 authorization code flow for one configured scheme
    """

    def __init__(
        self,
        options: SlackAuthOptions,
        state_format: StateDataFormat,
        provider: Optional[SlackAuthenticationProvider] = None,
        session_manager: Optional[SessionManager] = None,
        http_client: Optional[httpx.AsyncClient] = None
    ):
        """
        Initialize the handler

        Args:
            options: Slack authentication options
            state_format: Protector for the state parameter
            provider: Hook dispatcher; defaults to no-op hooks and a plain redirect
            session_manager: Sign-in collaborator; defaults to an in-memory store
            http_client: Client for the back-channel calls; created from options when omitted
        """
        self.options = options
        self.state_format = state_format
        self.provider = provider or SlackAuthenticationProvider()
        self.session_manager = session_manager or SessionManager(session_timeout=options.session_timeout)
        self.correlation = CorrelationManager(options.authentication_type, secure=options.cookie_secure)

        self._owns_client = http_client is None
        self._http_client = http_client or httpx.AsyncClient(timeout=options.backchannel_timeout)

        logger.info(f"Initialized Slack authentication handler: {options.authentication_type}")

    # Request helpers

    @staticmethod
    def base_uri(request: Request) -> str:
        root_path = request.scope.get("root_path", "")
        return f"{request.url.scheme}://{request.url.netloc}{root_path}"

    @staticmethod
    def _request_path(request: Request) -> str:
        path = request.scope.get("path", "")
        root_path = request.scope.get("root_path", "")
        if root_path and path.startswith(root_path + "/"):
            path = path[len(root_path):]
        return path

    def redirect_uri_for(self, request: Request) -> str:
        return self.base_uri(request) + self.options.callback_path

    def is_callback_request(self, request: Request) -> bool:
        return self._request_path(request) == self.options.callback_path

    @staticmethod
    def _single_value(request: Request, name: str) -> Optional[str]:
        values = request.query_params.getlist(name)
        if not values:
            return None
        if len(values) > 1:
            raise ValueError(f"Multiple values for query parameter '{name}'")
        return values[0]

    # Challenge

    def build_challenge(self, request: Request, properties: AuthProperties) -> Tuple[str, str]:
        """
        Build the Slack authorize URL for a challenge

        Fills in the redirect target, stores a fresh correlation marker in the
        properties and protects them into the state parameter. No network I/O.

        Args:
            request: Request that triggered the challenge
            properties: Properties for this login attempt, updated in place

        Returns:
            Tuple of (authorization_url, correlation_marker)
        """
        if not properties.redirect_uri:
            properties.redirect_uri = str(request.url)

        marker = self.correlation.generate(properties)

        query = {
            'response_type': 'code',
            'client_id': self.options.client_id,
            'redirect_uri': self.redirect_uri_for(request),
        }

        requested_scope = properties.pop('scope')
        scopes = requested_scope.split() if requested_scope else self.options.scopes
        query['scope'] = _scope_value(scopes)

        # team is Slack's equivalent of a login hint
        _consume_query_value(query, properties, 'team', self.options.team or None)

        query['state'] = self.state_format.protect(properties)

        return f"{AUTHORIZE_ENDPOINT}?{urlencode(query, quote_via=quote)}", marker

    async def apply_challenge(self, request: Request, properties: Optional[AuthProperties] = None) -> Response:
        """
        Redirect the browser to Slack

        Args:
            request: Request that triggered the challenge
            properties: Properties for this login attempt

        Returns:
            Response produced by the apply-redirect hook, carrying the correlation cookie
        """
        properties = properties if properties is not None else AuthProperties()
        authorization_url, marker = self.build_challenge(request, properties)

        context = ApplyRedirectContext(
            request=request,
            redirect_uri=authorization_url,
            properties=properties
        )
        response = self.provider.apply_redirect(context)
        self.correlation.set_cookie(response, marker)

        logger.info(f"Issued Slack challenge for {self._request_path(request)}")
        return response

    # Callback

    async def authenticate(self, request: Request) -> Optional[AuthenticationTicket]:
        """
        Authenticate a callback request

        Returns:
            AuthenticationTicket, with identity None for a failed login; None when
            the state could not be recovered at all
        """
        properties: Optional[AuthProperties] = None

        try:
            try:
                state = self._single_value(request, 'state')
            except ValueError as e:
                raise InvalidStateError(str(e))

            properties = self.state_format.unprotect(state)
            if properties is None:
                raise InvalidStateError("State parameter missing or failed verification")

            try:
                error = self._single_value(request, 'error')
                code = self._single_value(request, 'code')
            except ValueError as e:
                raise UnexpectedAuthError(str(e))

            if error is not None:
                raise ProviderDeniedError(error)

            # OAuth2 10.12 CSRF
            if not self.correlation.validate(request, properties):
                raise CsrfValidationError("Correlation failed")

            if not code:
                raise UnexpectedAuthError("Callback carries no authorization code")

            token = await self._exchange_code(code, self.redirect_uri_for(request))
            user_info = await self._fetch_user_info(token)

            slack_identity = SlackIdentity.from_responses(token, user_info)
            context = AuthenticatedContext(
                request=request,
                slack_identity=slack_identity,
                identity=build_claims_identity(slack_identity, self.options.authentication_type),
                properties=properties
            )

            await self.provider.authenticated(context)

            return AuthenticationTicket(identity=context.identity, properties=context.properties)

        except InvalidStateError as e:
            logger.warning(f"Invalid Slack state: {e}")
            return None
        except (ProviderDeniedError, CsrfValidationError) as e:
            logger.warning(f"Slack login rejected: {e}")
            return AuthenticationTicket(identity=None, properties=properties, failure=e)
        except Exception as e:
            logger.error("Authentication failed", exc_info=True)
            failure = e if isinstance(e, SlackAuthError) else UnexpectedAuthError(str(e))
            if properties is None:
                return None
            return AuthenticationTicket(identity=None, properties=properties, failure=failure)

    async def _exchange_code(self, code: str, redirect_uri: str) -> TokenResponse:
        """
        Exchange authorization code for an access token

        Raises:
            TokenExchangeError: On a non-success status or an "ok": false body
        """
        token_data = {
            'grant_type': 'authorization_code',
            'code': code,
            'redirect_uri': redirect_uri,
            'client_id': self.options.client_id,
            'client_secret': self.options.client_secret
        }

        response = await self._http_client.post(TOKEN_ENDPOINT, data=token_data, headers=FORM_HEADERS)

        if not response.is_success:
            raise TokenExchangeError(
                f"Token exchange failed: HTTP {response.status_code}",
                status_code=response.status_code
            )

        token = TokenResponse.model_validate(response.json())
        if token.ok is False:
            raise TokenExchangeError(
                f"Token exchange failed: {token.error or 'unknown_error'}",
                status_code=response.status_code
            )

        logger.info("Successfully exchanged code for Slack token")
        return token

    async def _fetch_user_info(self, token: TokenResponse) -> Optional[UserInfoResponse]:
        user_id = token.authed_user_id
        if not user_id:
            logger.info("Token response has no authenticated user, skipping users.info")
            return None

        try:
            return await self._request_user_info(token.access_token, user_id)
        except ProfileFetchError as e:
            logger.warning(f"Continuing without Slack profile: {e}")
            return None

    async def _request_user_info(self, access_token: Optional[str], user_id: str) -> UserInfoResponse:
        response = await self._http_client.post(
            USER_INFO_ENDPOINT,
            data={'token': access_token or '', 'user': user_id},
            headers=FORM_HEADERS
        )

        if not response.is_success:
            raise ProfileFetchError(
                f"users.info failed: HTTP {response.status_code}",
                status_code=response.status_code
            )

        user_info = UserInfoResponse.model_validate(response.json())
        if user_info.ok is False:
            raise ProfileFetchError(
                f"users.info failed: {user_info.error or 'unknown_error'}",
                status_code=response.status_code
            )

        return user_info

    # Reply path

    async def invoke_reply_path(self, request: Request) -> Optional[Response]:
        """
        Complete the login on the callback path

        Returns:
            The response to send, or None when the request is not a callback or
            the return-endpoint hook left it for the rest of the pipeline
        """
        if not self.is_callback_request(request):
            return None

        ticket = await self.authenticate(request)
        if ticket is None:
            logger.warning("Invalid return state, unable to redirect.")
            response = Response(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)
            self.finalize_reply(request, response)
            return response

        context = ReturnEndpointContext(
            request=request,
            ticket=ticket,
            sign_in_as_authentication_type=self.options.sign_in_as_authentication_type,
            redirect_uri=ticket.properties.redirect_uri
        )

        await self.provider.return_endpoint(context)

        if context.sign_in_as_authentication_type and context.identity is not None:
            grant_identity = context.identity
            if grant_identity.authentication_type != context.sign_in_as_authentication_type:
                grant_identity = grant_identity.clone(context.sign_in_as_authentication_type)

            session_id = await self.session_manager.sign_in(context.properties, grant_identity)
            request.state.slack_auth_session_id = session_id
            logger.info(f"Signed in Slack user {grant_identity.name} as {grant_identity.authentication_type}")

        if not context.is_request_completed and context.redirect_uri is not None:
            redirect_uri = context.redirect_uri
            if context.identity is None:
                # hint to the target that sign-in failed
                redirect_uri = add_query_string(redirect_uri, "error", "access_denied")
            context.request_completed(RedirectResponse(url=redirect_uri, status_code=status.HTTP_302_FOUND))

        if not context.is_request_completed:
            return None

        response = context.response or Response(status_code=status.HTTP_200_OK)
        self.finalize_reply(request, response)
        return response

    def finalize_reply(self, request: Request, response: Response) -> None:
        """Attach the session cookie, if any, and drop the correlation cookie"""
        self.correlation.delete_cookie(response)

        session_id = getattr(request.state, 'slack_auth_session_id', None)
        if session_id:
            response.set_cookie(
                key=SESSION_COOKIE_NAME,
                value=session_id,
                max_age=getattr(self.session_manager, 'session_timeout', self.options.session_timeout),
                httponly=True,
                secure=self.options.cookie_secure,
                samesite="lax",
                path="/"
            )

    async def health_check(self) -> Dict[str, object]:
        return {
            "authentication_type": self.options.authentication_type,
            "client_id": self.options.client_id,
            "callback_path": self.options.callback_path,
            "scopes": _scope_value(self.options.scopes).split(),
            "team": self.options.team,
            "authentication_mode": self.options.authentication_mode
        }

    async def cleanup(self) -> None:
        """Clean up resources"""
        if self._owns_client:
            await self._http_client.aclose()
