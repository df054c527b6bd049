from __future__ import annotations

import logging
from datetime import datetime, timezone

from egisedge.core.auth import UserRole
from egisedge.schemas.profiles import UserProfile
from egisedge.services.kv_store import KVStore
from egisedge.services.repository import (
    RepositoryConflictError,
    RepositoryNotFoundError,
    RepositoryValidationError,
)

logger = logging.getLogger(__name__)

INVALID_ROLE_MESSAGE = "Invalid userType. Must be 'startup', 'contractor', or 'employer'"


def parse_role(value: UserRole | str | None) -> UserRole:
    if isinstance(value, UserRole):
        return value
    try:
        return UserRole(value)
    except ValueError as exc:
        raise RepositoryValidationError(INVALID_ROLE_MESSAGE) from exc


class ProfileRepository:
    """Profiles keyed by identity-provider subject id. Written once at signup."""

    def __init__(self, store: KVStore) -> None:
        self.store = store

    @staticmethod
    def key(user_id: str) -> str:
        return f"user:{user_id}"

    async def create(self, *, user_id: str, email: str, name: str, role: UserRole | str) -> UserProfile:
        profile = UserProfile(
            id=user_id,
            email=email,
            name=name,
            role=parse_role(role),
            created_at=datetime.now(timezone.utc),
        )
        created = await self.store.set_if_absent(self.key(user_id), profile.model_dump(mode="json", by_alias=True))
        if not created:
            raise RepositoryConflictError(f"profile already exists for user {user_id}")
        logger.info("profile created user_id=%s role=%s", user_id, profile.role.value)
        return profile

    async def find(self, user_id: str) -> UserProfile | None:
        document = await self.store.get(self.key(user_id))
        if document is None:
            return None
        return UserProfile.model_validate(document)

    async def get(self, user_id: str) -> UserProfile:
        profile = await self.find(user_id)
        if profile is None:
            raise RepositoryNotFoundError("User profile not found")
        return profile
