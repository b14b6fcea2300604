"""Tests for owner resolution."""

import pytest

from dish_discovery.errors import AuthorizationError
from dish_discovery.services.auth import AuthService, parse_bearer_token
from tests.conftest import OWNER_ID, FakeIdentityProvider


def test_require_owner_resolves_bearer_token() -> None:
    service = AuthService(FakeIdentityProvider())

    assert service.require_owner("Bearer owner-token") == OWNER_ID
    assert service.require_owner("bearer  owner-token ") == OWNER_ID


@pytest.mark.parametrize(
    "header", [None, "", "Bearer", "Basic owner-token", "Bearer unknown"]
)
def test_require_owner_rejects_missing_or_invalid_tokens(header: str | None) -> None:
    service = AuthService(FakeIdentityProvider())

    with pytest.raises(AuthorizationError):
        service.require_owner(header)


def test_parse_bearer_token() -> None:
    assert parse_bearer_token("Bearer abc") == "abc"
    assert parse_bearer_token("Token abc") is None
    assert parse_bearer_token(None) is None
