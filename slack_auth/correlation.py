"""
CSRF correlation marker handling

A random marker is written both into the AuthProperties (and thus the protected
state) and into a short-lived cookie. On callback the two must match.
"""

import secrets
import logging

from starlette.requests import Request
from starlette.responses import Response

from .properties import AuthProperties

logger = logging.getLogger(__name__)

CORRELATION_KEY = ".xsrf"
CORRELATION_COOKIE_PREFIX = ".SlackAuth.Correlation."
CORRELATION_MAX_AGE = 900


class CorrelationManager:
    """Generates and validates correlation markers for one authentication type"""

    def __init__(self, authentication_type: str, secure: bool = True):
        self.cookie_name = f"{CORRELATION_COOKIE_PREFIX}{authentication_type}"
        self.secure = secure

    def generate(self, properties: AuthProperties) -> str:
        """
        Create a fresh marker and store it in the properties

        Args:
            properties: Properties about to be protected into the state parameter

        Returns:
            The marker, to be written to the correlation cookie
        """
        marker = secrets.token_urlsafe(32)
        properties.items[CORRELATION_KEY] = marker
        return marker

    def set_cookie(self, response: Response, marker: str) -> None:
        response.set_cookie(
            key=self.cookie_name,
            value=marker,
            max_age=CORRELATION_MAX_AGE,
            httponly=True,
            secure=self.secure,
            samesite="lax",
            path="/"
        )

    def delete_cookie(self, response: Response) -> None:
        response.delete_cookie(
            key=self.cookie_name,
            path="/",
            httponly=True,
            secure=self.secure,
            samesite="lax"
        )

    def validate(self, request: Request, properties: AuthProperties) -> bool:
        """
        Check the marker recovered from state against the correlation cookie

        The marker is removed from the properties either way.

        Returns:
            True if both are present and equal
        """
        cookie_value = request.cookies.get(self.cookie_name)
        marker = properties.pop(CORRELATION_KEY)

        if not cookie_value:
            logger.warning(f"Correlation cookie not found: {self.cookie_name}")
            return False

        if not marker or not secrets.compare_digest(cookie_value, marker):
            logger.warning("Correlation marker does not match cookie")
            return False

        return True
