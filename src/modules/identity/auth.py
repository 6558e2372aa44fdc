"""JWT authentication dependency for FastAPI.

Validates Bearer tokens from the Authorization header and extracts the actor
id and role set used by the workflow engine's permission checks.
"""

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from src.config import settings
from src.exceptions import UnauthorizedException
from src.models.enums import UserRole

logger = logging.getLogger(__name__)

# FastAPI security scheme; extracts Bearer token from Authorization header
_bearer_scheme = HTTPBearer(auto_error=False)

# Most privileged first; used to label audit rows with a single role
_ROLE_PRECEDENCE = (UserRole.ADMIN, UserRole.SHIPPER, UserRole.DESIGNER, UserRole.CUSTOMER)


@dataclass(frozen=True)
class AuthenticatedUser:
    """Represents the authenticated actor extracted from a JWT token."""

    id: str
    email: str = ""
    roles: frozenset[UserRole] = field(default_factory=lambda: frozenset({UserRole.CUSTOMER}))

    def has_role(self, role: UserRole) -> bool:
        return role in self.roles

    @property
    def is_admin(self) -> bool:
        return UserRole.ADMIN in self.roles

    @property
    def primary_role(self) -> UserRole:
        for role in _ROLE_PRECEDENCE:
            if role in self.roles:
                return role
        return UserRole.CUSTOMER


def _parse_roles(payload: dict) -> frozenset[UserRole]:
    """Accept either a ``roles`` list claim or a single ``role`` claim."""
    raw = payload.get("roles")
    if raw is None:
        raw = [payload["role"]] if payload.get("role") else []
    roles = {UserRole(value) for value in raw}
    roles.add(UserRole.CUSTOMER)
    return frozenset(roles)


def _decode_token(token: str) -> dict:
    """Decode and validate a JWT token. Raises UnauthorizedException on failure."""
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
        return payload
    except JWTError as exc:
        logger.warning("JWT validation failed: %s", exc)
        raise UnauthorizedException("Invalid or expired token") from exc


def create_access_token(
    user_id: str,
    email: str,
    roles: list[UserRole] | list[str],
    expires_minutes: int | None = None,
) -> str:
    """Issue a signed token for the given actor."""
    expiry = datetime.now(UTC) + timedelta(
        minutes=expires_minutes if expires_minutes is not None else settings.jwt_expiry_minutes
    )
    claims = {
        "sub": user_id,
        "email": email,
        "roles": [UserRole(role).value for role in roles],
        "exp": expiry,
    }
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme),
) -> AuthenticatedUser:
    """FastAPI dependency that extracts and validates the current actor from JWT."""
    if credentials is None:
        raise UnauthorizedException("Authentication required")

    payload = _decode_token(credentials.credentials)

    try:
        user = AuthenticatedUser(
            id=str(payload["sub"]),
            email=payload.get("email", ""),
            roles=_parse_roles(payload),
        )
    except (KeyError, ValueError) as exc:
        raise UnauthorizedException("Token is missing required claims") from exc

    request.state.user = user
    return user
