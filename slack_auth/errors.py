"""
Failure taxonomy for the Slack login flow

These are raised inside the callback handler and turned into a failed
AuthenticationTicket at its outer boundary; none reach the caller as exceptions.
"""

from typing import Optional


class SlackAuthError(Exception):
    """Base class for Slack authentication failures"""
    pass


class InvalidStateError(SlackAuthError):
    """State parameter missing, duplicated or failing verification"""
    pass


class ProviderDeniedError(SlackAuthError):
    """Slack returned an error parameter on the callback"""

    def __init__(self, error: str):
        super().__init__(f"Slack returned error: {error}")
        self.error = error


class CsrfValidationError(SlackAuthError):
    """Correlation marker missing or mismatched"""
    pass


class TokenExchangeError(SlackAuthError):
    """Token endpoint returned a non-success response"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ProfileFetchError(SlackAuthError):
    """users.info returned a non-success response; not fatal"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class UnexpectedAuthError(SlackAuthError):
    """Anything else that went wrong during the callback"""
    pass
