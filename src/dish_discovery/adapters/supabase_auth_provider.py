"""Supabase Auth identity provider."""

import logging
from dataclasses import dataclass
from uuid import UUID

from supabase import Client

from dish_discovery.services.auth import IdentityProvider

logger = logging.getLogger(__name__)


@dataclass
class SupabaseIdentityProvider(IdentityProvider):
    """Validates user access tokens against Supabase Auth."""

    client: Client

    def resolve_user_id(self, access_token: str) -> UUID | None:
        """Return the user id for the token, or None when it is rejected."""
        try:
            response = self.client.auth.get_user(access_token)
        except Exception:
            logger.exception("Supabase rejected access token")
            return None
        user = getattr(response, "user", None) if response else None
        if user is None or not getattr(user, "id", None):
            return None
        return UUID(str(user.id))
