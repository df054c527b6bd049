from __future__ import annotations

import logging

from egisedge.schemas.profiles import UserProfile
from egisedge.services.identity import SupabaseIdentityProvider
from egisedge.services.profiles import ProfileRepository, parse_role
from egisedge.services.repository import RepositoryValidationError, coerce_text

logger = logging.getLogger(__name__)


async def sign_up(
    *,
    provider: SupabaseIdentityProvider,
    profiles: ProfileRepository,
    email: str | None,
    password: str | None,
    name: str | None,
    user_type: str | None,
) -> UserProfile:
    """Create the provider account, then its profile.

    Input and role are validated before the provider is contacted. A profile
    write failing after the account exists leaves that account without a
    profile; it is logged and not rolled back.
    """
    normalized_email = coerce_text(email)
    normalized_name = coerce_text(name)
    if not normalized_email or not password or not normalized_name or not coerce_text(user_type):
        raise RepositoryValidationError("Missing required fields: email, password, name, userType")
    role = parse_role(coerce_text(user_type))

    identity = await provider.create_user(
        email=normalized_email,
        password=password,
        name=normalized_name,
        role=role,
    )
    try:
        return await profiles.create(
            user_id=identity.id,
            email=normalized_email,
            name=normalized_name,
            role=role,
        )
    except Exception:
        logger.error("profile write failed after account creation; account left without profile user_id=%s", identity.id)
        raise
