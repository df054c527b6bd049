from fastapi import Depends, Header, HTTPException, status

from egisedge.api.deps import get_profile_repository
from egisedge.core.auth import UserIdentity, UserRole, require_role
from egisedge.schemas.profiles import UserProfile
from egisedge.services.identity import SupabaseIdentityProvider, UnauthenticatedError, get_identity_provider
from egisedge.services.profiles import ProfileRepository


async def get_current_identity(
    provider: SupabaseIdentityProvider = Depends(get_identity_provider),
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> UserIdentity:
    try:
        return await provider.resolve_header(authorization)
    except UnauthenticatedError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc


async def get_employer_profile(
    identity: UserIdentity = Depends(get_current_identity),
    profiles: ProfileRepository = Depends(get_profile_repository),
) -> UserProfile:
    # A caller without a profile is treated like any other non-employer.
    profile = await profiles.find(identity.id)
    try:
        return require_role(profile, UserRole.EMPLOYER)
    except PermissionError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
