from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from egisedge.schemas.profiles import UserProfile


class UserRole(str, Enum):
    EMPLOYER = "employer"
    CONTRACTOR = "contractor"
    STARTUP = "startup"


@dataclass(slots=True, frozen=True)
class UserIdentity:
    id: str
    email: str | None = None


def require_role(profile: UserProfile | None, role: UserRole) -> UserProfile:
    """Single authorization check shared by every content write path."""
    if profile is None or profile.role is not role:
        raise PermissionError(f"only {role.value}s can perform this action")
    return profile


def parse_bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip() or None
