"""Identity lookups — bulk profile resolution and role checks against ``users``."""

from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.models.enums import UserRole
from src.models.user import User
from src.modules.identity.schemas import ActorSummary, UserProfileResponse


def to_actor_summary(user: User) -> ActorSummary:
    return ActorSummary(
        id=user.id,
        name=user.display_name,
        email=user.email,
        image_url=user.image_url,
    )


class IdentityService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user(self, user_id: str) -> User | None:
        result = await self.db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def get_profiles(self, user_ids: Iterable[str | None]) -> dict[str, ActorSummary]:
        """Resolve many actor ids in one query. Unknown ids are simply absent."""
        wanted = {uid for uid in user_ids if uid}
        if not wanted:
            return {}
        result = await self.db.execute(select(User).where(User.id.in_(wanted)))
        return {user.id: to_actor_summary(user) for user in result.scalars().all()}

    async def has_role(self, user_id: str, role: UserRole) -> bool:
        user = await self.get_user(user_id)
        return user is not None and user.role == role

    async def list_by_role(self, role: UserRole, limit: int = 100) -> list[UserProfileResponse]:
        result = await self.db.execute(
            select(User).where(User.role == role).order_by(User.first_name, User.email).limit(limit)
        )
        return [
            UserProfileResponse(
                id=user.id,
                name=user.display_name,
                email=user.email,
                image_url=user.image_url,
                role=user.role,
            )
            for user in result.scalars().all()
        ]
