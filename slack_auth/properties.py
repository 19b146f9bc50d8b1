"""
Authentication properties carried through the Slack round trip
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

REDIRECT_URI_KEY = ".redirect"


@dataclass
class AuthProperties:
    """Per-login key/value bag plus the redirect target"""
    items: Dict[str, str] = field(default_factory=dict)

    @property
    def redirect_uri(self) -> Optional[str]:
        return self.items.get(REDIRECT_URI_KEY)

    @redirect_uri.setter
    def redirect_uri(self, value: Optional[str]) -> None:
        if value is None:
            self.items.pop(REDIRECT_URI_KEY, None)
        else:
            self.items[REDIRECT_URI_KEY] = value

    def pop(self, key: str) -> Optional[str]:
        """Remove and return an item, None if absent"""
        return self.items.pop(key, None)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {"items": dict(self.items)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AuthProperties':
        """Create from dictionary"""
        items = data.get("items")
        if not isinstance(items, dict):
            raise ValueError("AuthProperties payload has no items mapping")
        return cls(items={str(k): str(v) for k, v in items.items()})
