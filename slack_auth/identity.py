"""
Slack identity and claims assembly

SlackIdentity is the normalized result of one successful callback. build_claims
maps it to the ordered claim list the host signs in with; it does no I/O.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from .models import TokenResponse, UserInfoResponse

XML_SCHEMA_STRING = "http://www.w3.org/2001/XMLSchema#string"

NAME_IDENTIFIER_CLAIM = "http://schemas.xmlsoap.org/ws/2005/05/identity/claims/nameidentifier"
NAME_CLAIM = "http://schemas.xmlsoap.org/ws/2005/05/identity/claims/name"
ROLE_CLAIM = "http://schemas.microsoft.com/ws/2008/06/identity/claims/role"
TEAM_ID_CLAIM = "urn:slack:teamid"
TEAM_NAME_CLAIM = "urn:slack:teamname"


@dataclass
class SlackIdentity:
    """Normalized Slack login result"""
    access_token: Optional[str] = None
    team_id: Optional[str] = None
    team_name: Optional[str] = None
    user_id: Optional[str] = None
    user_name: Optional[str] = None
    user_access_token: Optional[str] = None
    bot_user_id: Optional[str] = None
    bot_access_token: Optional[str] = None
    incoming_webhook_channel: Optional[str] = None
    incoming_webhook_channel_id: Optional[str] = None
    incoming_webhook_config_url: Optional[str] = None
    incoming_webhook_url: Optional[str] = None

    @property
    def user_sub(self) -> Optional[str]:
        if not (self.team_id and self.user_id):
            return None
        return f"{self.team_id}_{self.user_id}"

    @property
    def bot_user_sub(self) -> Optional[str]:
        if not (self.team_id and self.bot_user_id):
            return None
        return f"{self.team_id}_{self.bot_user_id}"

    @classmethod
    def from_responses(
        cls,
        token: TokenResponse,
        user_info: Optional[UserInfoResponse] = None
    ) -> 'SlackIdentity':
        """
        Map Slack API responses into an identity

        Args:
            token: Decoded oauth.v2.access response
            user_info: Decoded users.info response, None when the profile fetch failed

        Returns:
            SlackIdentity; users.info fields refine the token-derived user id/name
        """
        identity = cls(
            access_token=token.access_token,
            bot_user_id=token.bot_user_id or None
        )

        if identity.bot_user_id:
            identity.bot_access_token = token.access_token

        if token.authed_user:
            identity.user_id = token.authed_user.id
            identity.user_access_token = token.authed_user.access_token

        if token.team:
            identity.team_id = token.team.id
            identity.team_name = token.team.name

        if token.incoming_webhook:
            identity.incoming_webhook_channel = token.incoming_webhook.channel
            identity.incoming_webhook_channel_id = token.incoming_webhook.channel_id
            identity.incoming_webhook_config_url = token.incoming_webhook.configuration_url
            identity.incoming_webhook_url = token.incoming_webhook.url

        if user_info and user_info.user:
            identity.user_id = user_info.user.id or identity.user_id
            identity.user_name = user_info.user.name or identity.user_name

        return identity


@dataclass(frozen=True)
class Claim:
    type: str
    value: str
    value_type: str = XML_SCHEMA_STRING
    issuer: str = ""


@dataclass
class ClaimsIdentity:
    """Ordered claims issued under one authentication type"""
    authentication_type: str
    claims: List[Claim] = field(default_factory=list)
    name_claim_type: str = NAME_CLAIM
    role_claim_type: str = ROLE_CLAIM

    def find_first(self, claim_type: str) -> Optional[Claim]:
        for claim in self.claims:
            if claim.type == claim_type:
                return claim
        return None

    @property
    def name(self) -> Optional[str]:
        claim = self.find_first(self.name_claim_type)
        return claim.value if claim else None

    def clone(self, authentication_type: str) -> 'ClaimsIdentity':
        """Copy the claims into a new identity under another authentication type"""
        return ClaimsIdentity(
            authentication_type=authentication_type,
            claims=list(self.claims),
            name_claim_type=self.name_claim_type,
            role_claim_type=self.role_claim_type
        )


def build_claims(identity: SlackIdentity, issuer: str) -> List[Claim]:
    """
    Map a SlackIdentity to its claims

    Bot logins identify as the bot user. A claim is omitted when its source
    value is empty.

    Args:
        identity: Slack identity
        issuer: Authentication type recorded as the claim issuer

    Returns:
        Claims in name-identifier, name, team id, team name order
    """
    candidates = [
        (NAME_IDENTIFIER_CLAIM, identity.bot_user_id or identity.user_id),
        (NAME_CLAIM, identity.bot_user_id or identity.user_name),
        (TEAM_ID_CLAIM, identity.team_id),
        (TEAM_NAME_CLAIM, identity.team_name),
    ]
    return [
        Claim(type=claim_type, value=value, issuer=issuer)
        for claim_type, value in candidates
        if value
    ]


def build_claims_identity(identity: SlackIdentity, authentication_type: str) -> ClaimsIdentity:
    return ClaimsIdentity(
        authentication_type=authentication_type,
        claims=build_claims(identity, authentication_type)
    )
