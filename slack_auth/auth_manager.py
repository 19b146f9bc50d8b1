"""
Authentication manager for Slack login

Centralizes creation of the Slack authentication components and installs them
on a Starlette or FastAPI application.
"""

import logging
from typing import Optional

import httpx

from .config import SlackAuthOptions
from .endpoints import create_auth_router
from .handler import SlackAuthenticationHandler
from .middleware import SlackAuthMiddleware
from .provider import SlackAuthenticationProvider
from .session_manager import SessionManager
from .state import StateDataFormat

logger = logging.getLogger(__name__)


class SlackAuthManager:
    """
    Manages all Slack authentication components
    """

    def __init__(self, provider: Optional[SlackAuthenticationProvider] = None):
        self.provider = provider
        self.options: Optional[SlackAuthOptions] = None
        self.session_manager: Optional[SessionManager] = None
        self.handler: Optional[SlackAuthenticationHandler] = None
        self._initialized = False

    def initialize(
        self,
        config_path: Optional[str] = None,
        options: Optional[SlackAuthOptions] = None,
        http_client: Optional[httpx.AsyncClient] = None
    ) -> bool:
        """
        Initialize Slack authentication

        Args:
            config_path: Optional path to auth config file
            options: Ready-made options; skips loading the config file
            http_client: Optional client for Slack back-channel calls

        Returns:
            True once all components are created

        Raises:
            RuntimeError: If configuration is missing or invalid
        """
        try:
            self.options = options or SlackAuthOptions.load_from_file(config_path)
            self.options.validate()

            self.session_manager = SessionManager(session_timeout=self.options.session_timeout)
            self.handler = SlackAuthenticationHandler(
                options=self.options,
                state_format=StateDataFormat(self.options.state_secret),
                provider=self.provider,
                session_manager=self.session_manager,
                http_client=http_client
            )

            self._initialized = True
            logger.info(f"Slack authentication initialized (callback {self.options.callback_path})")
            return True

        except FileNotFoundError as e:
            logger.error(f"Auth config not found: {e}")
            raise RuntimeError(f"Slack authentication requires auth-config.yaml: {e}")
        except Exception as e:
            logger.error(f"Failed to initialize Slack authentication: {e}")
            raise RuntimeError(f"Slack authentication initialization failed: {e}")

    def install(self, app, include_router: bool = True) -> None:
        """
        Add the middleware (and optionally the auth router) to an application

        Raises:
            RuntimeError: If not initialized
        """
        if not self._initialized or not self.handler:
            raise RuntimeError("SlackAuthManager not initialized. Call initialize() first.")

        app.add_middleware(SlackAuthMiddleware, handler=self.handler)

        if include_router:
            app.include_router(create_auth_router(self.handler))

        logger.info("Slack authentication installed")

    async def cleanup(self) -> None:
        """Clean up authentication resources"""
        if self.handler:
            await self.handler.cleanup()

        logger.info("Slack authentication cleaned up")

    @property
    def is_initialized(self) -> bool:
        return self._initialized
