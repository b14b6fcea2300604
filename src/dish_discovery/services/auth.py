"""Owner resolution for authenticated requests."""

from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from dish_discovery.errors import AuthorizationError


class IdentityProvider(Protocol):
    """Interface to the hosted auth provider."""

    def resolve_user_id(self, access_token: str) -> UUID | None:
        """Return the user id for a valid access token."""


@dataclass
class AuthService:
    """Resolves the owner id every repository call is scoped to."""

    provider: IdentityProvider

    def require_owner(self, authorization: str | None) -> UUID:
        """Return the owner for a bearer header or raise AuthorizationError."""
        token = parse_bearer_token(authorization)
        if token is None:
            raise AuthorizationError("Unauthorized")
        owner_id = self.provider.resolve_user_id(token)
        if owner_id is None:
            raise AuthorizationError("Unauthorized")
        return owner_id


def parse_bearer_token(header: str | None) -> str | None:
    """Extract the token from an ``Authorization: Bearer`` header."""
    if not header:
        return None
    scheme, _, token = header.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()
