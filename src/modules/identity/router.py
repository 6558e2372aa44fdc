"""Identity API router — designer directory and the caller's own profile."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.database.session import get_db
from src.exceptions import ForbiddenException
from src.models.enums import UserRole
from src.modules.identity.auth import AuthenticatedUser, get_current_user
from src.modules.identity.schemas import CurrentUserResponse, UserProfileResponse
from src.modules.identity.service import IdentityService

router = APIRouter(prefix="/users", tags=["users"])


def _require_admin(user: AuthenticatedUser) -> None:
    if not user.is_admin:
        raise ForbiddenException("Access denied. Admin role required.")


@router.get("/designers", response_model=list[UserProfileResponse])
async def list_designers(
    limit: int = Query(100, ge=1, le=500),
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Designers an admin can assign to request quotes."""
    _require_admin(user)
    return await IdentityService(db).list_by_role(UserRole.DESIGNER, limit=limit)


@router.get("/me", response_model=CurrentUserResponse)
async def get_me(
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    record = await IdentityService(db).get_user(user.id)
    profile = None
    if record is not None:
        profile = UserProfileResponse(
            id=record.id,
            name=record.display_name,
            email=record.email,
            image_url=record.image_url,
            role=record.role,
        )
    return CurrentUserResponse(
        id=user.id,
        email=user.email,
        roles=sorted(user.roles, key=lambda role: role.value),
        profile=profile,
    )
