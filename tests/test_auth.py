"""Tests for JWT decoding and the AuthenticatedUser role helpers."""

from datetime import UTC, datetime, timedelta

import pytest
from jose import jwt

from src.config import settings
from src.exceptions import UnauthorizedException
from src.models.enums import UserRole
from src.modules.identity.auth import AuthenticatedUser, _decode_token, _parse_roles, create_access_token


class TestTokens:
    def test_round_trip_claims(self):
        token = create_access_token("u-1", "u1@example.com", ["shipper"])

        payload = _decode_token(token)

        assert payload["sub"] == "u-1"
        assert payload["roles"] == ["shipper"]

    def test_expired_token_is_rejected(self):
        token = create_access_token("u-1", "u1@example.com", ["admin"], expires_minutes=-1)

        with pytest.raises(UnauthorizedException):
            _decode_token(token)

    def test_wrong_secret_is_rejected(self):
        token = jwt.encode(
            {"sub": "u-1", "exp": datetime.now(UTC) + timedelta(minutes=5)},
            "another-secret",
            algorithm=settings.jwt_algorithm,
        )

        with pytest.raises(UnauthorizedException):
            _decode_token(token)


class TestRoles:
    def test_single_role_claim_is_accepted(self):
        assert _parse_roles({"role": "designer"}) == frozenset(
            {UserRole.DESIGNER, UserRole.CUSTOMER}
        )

    def test_everyone_is_a_customer(self):
        assert _parse_roles({}) == frozenset({UserRole.CUSTOMER})

    def test_unknown_role_raises(self):
        with pytest.raises(ValueError):
            _parse_roles({"roles": ["captain"]})

    def test_primary_role_prefers_most_privileged(self):
        actor = AuthenticatedUser(
            id="u-1", roles=frozenset({UserRole.CUSTOMER, UserRole.DESIGNER, UserRole.ADMIN})
        )

        assert actor.primary_role == UserRole.ADMIN
        assert actor.is_admin
        assert actor.has_role(UserRole.DESIGNER)
        assert not actor.has_role(UserRole.SHIPPER)
