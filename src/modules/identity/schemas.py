"""Pydantic v2 schemas for identity endpoints and actor summaries."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from src.models.enums import UserRole


class ActorSummary(BaseModel):
    """Display fields for an actor shown next to a work item."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str
    image_url: str | None = None


class UserProfileResponse(ActorSummary):
    role: UserRole


class CurrentUserResponse(BaseModel):
    id: str
    email: str
    roles: list[UserRole]
    profile: UserProfileResponse | None = None
