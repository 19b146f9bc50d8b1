"""
State parameter protection

Serializes AuthProperties to JSON and encrypts it with Fernet so the opaque
state blob survives the trip through Slack untampered.
"""

import json
import base64
import hashlib
import logging
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

from .properties import AuthProperties

logger = logging.getLogger(__name__)


class StateDataFormat:
    """Protects and unprotects AuthProperties"""

    def __init__(self, secret: str):
        """
        Initialize with a key derived from the state secret

        Args:
            secret: Arbitrary-length secret; hashed into a valid Fernet key
        """
        if not secret:
            raise ValueError("State secret is required")
        key_bytes = hashlib.sha256(secret.encode()).digest()
        self.cipher_suite = Fernet(base64.urlsafe_b64encode(key_bytes))

    def protect(self, properties: AuthProperties) -> str:
        """Serialize and encrypt properties into a URL-safe string"""
        payload = json.dumps(properties.to_dict(), separators=(',', ':'), sort_keys=True)
        return self.cipher_suite.encrypt(payload.encode()).decode()

    def unprotect(self, protected: Optional[str]) -> Optional[AuthProperties]:
        """
        Decrypt and deserialize a state string

        Returns:
            AuthProperties, or None when the value is missing, tampered with or malformed
        """
        if not protected:
            return None

        try:
            payload = self.cipher_suite.decrypt(protected.encode())
            return AuthProperties.from_dict(json.loads(payload))
        except InvalidToken:
            logger.warning("State failed verification")
            return None
        except (ValueError, TypeError, AttributeError) as e:
            logger.warning(f"State could not be deserialized: {e}")
            return None
