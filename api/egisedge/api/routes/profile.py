from fastapi import APIRouter, Depends, HTTPException, status

from egisedge.api.deps import get_profile_repository
from egisedge.core.auth import UserIdentity
from egisedge.core.security import get_current_identity
from egisedge.schemas.profiles import ProfileOut
from egisedge.services.profiles import ProfileRepository
from egisedge.services.repository import RepositoryNotFoundError

router = APIRouter()


@router.get("", response_model=ProfileOut)
async def get_profile(
    identity: UserIdentity = Depends(get_current_identity),
    profiles: ProfileRepository = Depends(get_profile_repository),
) -> ProfileOut:
    try:
        profile = await profiles.get(identity.id)
    except RepositoryNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return ProfileOut(user=profile)
