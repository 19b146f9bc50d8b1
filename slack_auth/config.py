"""
Configuration loader for Slack authentication

Loads and validates SlackAuthOptions from auth-config.yaml or environment variables.
"""

import os
import secrets
import logging
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

AUTHENTICATION_MODES = ("active", "passive")

DEFAULT_CALLBACK_PATH = "/signin-slack"
DEFAULT_AUTHENTICATION_TYPE = "Slack"
DEFAULT_SIGN_IN_TYPE = "Cookies"


@dataclass(frozen=True)
class SlackAuthOptions:
    """Slack OAuth2 options, immutable once created"""
    client_id: str
    client_secret: str
    scopes: Tuple[str, ...] = ("identify",)
    team: Optional[str] = None
    callback_path: str = DEFAULT_CALLBACK_PATH
    authentication_type: str = DEFAULT_AUTHENTICATION_TYPE
    sign_in_as_authentication_type: str = DEFAULT_SIGN_IN_TYPE
    authentication_mode: str = "active"
    backchannel_timeout: float = 60.0
    state_secret: str = ""
    cookie_secure: bool = True
    session_timeout: int = 3600

    @classmethod
    def load_from_file(cls, config_path: Optional[str] = None) -> 'SlackAuthOptions':
        """
        Load Slack authentication options from a YAML file

        Args:
            config_path: Path to auth-config.yaml. If None, uses default locations.

        Returns:
            SlackAuthOptions instance

        Raises:
            FileNotFoundError: If config file is not found
            ValueError: If config is invalid
        """
        if config_path is None:
            possible_paths = [
                Path.home() / ".slack-auth" / "auth-config.yaml",
                Path.cwd() / "auth-config.yaml",
                Path.cwd() / "config" / "auth-config.yaml"
            ]

            for path in possible_paths:
                if path.exists():
                    config_path = str(path)
                    break

            if not config_path:
                raise FileNotFoundError(
                    f"auth-config.yaml not found in any of: {[str(p) for p in possible_paths]}"
                )

        if not Path(config_path).exists():
            raise FileNotFoundError(f"auth-config.yaml not found: {config_path}")

        logger.info(f"Loading Slack auth config from: {config_path}")

        try:
            with open(config_path, 'r') as f:
                config_data = yaml.safe_load(f) or {}
        except Exception as e:
            raise ValueError(f"Failed to load auth config: {e}")

        return cls._from_dict(config_data)

    @classmethod
    def from_env(cls) -> 'SlackAuthOptions':
        """Build options from SLACK_* environment variables (.env is honored)"""
        load_dotenv()

        scopes = [s.strip() for s in os.environ.get('SLACK_SCOPES', 'identify').split(',') if s.strip()]
        return cls._from_dict({
            'slack': {
                'client_id': os.environ.get('SLACK_CLIENT_ID', ''),
                'client_secret': os.environ.get('SLACK_CLIENT_SECRET', ''),
                'scopes': scopes,
                'team': os.environ.get('SLACK_TEAM') or None,
                'callback_path': os.environ.get('SLACK_CALLBACK_PATH', DEFAULT_CALLBACK_PATH),
            }
        })

    @classmethod
    def _from_dict(cls, config_data: Dict[str, Any]) -> 'SlackAuthOptions':
        """Create SlackAuthOptions from dictionary"""
        try:
            slack_data = config_data.get('slack', {}) or {}

            # Secrets from the environment win over the file
            client_secret = os.environ.get('SLACK_CLIENT_SECRET') or slack_data.get('client_secret', '')

            state_secret = os.environ.get('SLACK_AUTH_STATE_SECRET') or slack_data.get('state_secret', '')
            if not state_secret:
                state_secret = secrets.token_urlsafe(32)
                logger.warning(
                    "Generated random state secret. For production, set SLACK_AUTH_STATE_SECRET environment variable."
                )

            scopes = slack_data.get('scopes') or ['identify']
            if isinstance(scopes, str):
                scopes = scopes.split()

            return cls(
                client_id=slack_data.get('client_id', ''),
                client_secret=client_secret,
                scopes=tuple(scopes),
                team=slack_data.get('team') or None,
                callback_path=slack_data.get('callback_path', DEFAULT_CALLBACK_PATH),
                authentication_type=slack_data.get('authentication_type', DEFAULT_AUTHENTICATION_TYPE),
                sign_in_as_authentication_type=slack_data.get(
                    'sign_in_as_authentication_type', DEFAULT_SIGN_IN_TYPE
                ),
                authentication_mode=slack_data.get('authentication_mode', 'active'),
                backchannel_timeout=float(slack_data.get('backchannel_timeout', 60)),
                state_secret=state_secret,
                cookie_secure=bool(slack_data.get('cookie_secure', True)),
                session_timeout=int(
                    os.environ.get('SLACK_AUTH_SESSION_TIMEOUT', slack_data.get('session_timeout', 3600))
                )
            )

        except Exception as e:
            raise ValueError(f"Invalid auth configuration: {e}")

    def validate(self) -> None:
        """Validate the configuration"""
        if not self.client_id or not self.client_secret:
            raise ValueError("Slack client_id and client_secret are required")

        if not self.callback_path.startswith('/'):
            raise ValueError(f"callback_path must start with '/': {self.callback_path}")

        if self.authentication_mode not in AUTHENTICATION_MODES:
            raise ValueError(f"Unknown authentication_mode: {self.authentication_mode}")

        if self.backchannel_timeout <= 0:
            raise ValueError("backchannel_timeout must be positive")

    def with_overrides(self, **changes: Any) -> 'SlackAuthOptions':
        """Return a copy with the given fields replaced"""
        return replace(self, **changes)

    @property
    def is_active(self) -> bool:
        return self.authentication_mode == "active"
