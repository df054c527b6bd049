from fastapi import APIRouter, Depends, HTTPException, status

from egisedge.api.deps import get_profile_repository
from egisedge.schemas.profiles import SignupOut, SignupRequest, SignupUserOut
from egisedge.services.accounts import sign_up
from egisedge.services.identity import IdentityRejectedError, SupabaseIdentityProvider, get_identity_provider
from egisedge.services.profiles import ProfileRepository
from egisedge.services.repository import RepositoryConflictError, RepositoryValidationError

router = APIRouter()


@router.post("", response_model=SignupOut)
async def signup(
    payload: SignupRequest,
    provider: SupabaseIdentityProvider = Depends(get_identity_provider),
    profiles: ProfileRepository = Depends(get_profile_repository),
) -> SignupOut:
    try:
        profile = await sign_up(
            provider=provider,
            profiles=profiles,
            email=payload.email,
            password=payload.password,
            name=payload.name,
            user_type=payload.user_type,
        )
    except (RepositoryValidationError, RepositoryConflictError, IdentityRejectedError) as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    return SignupOut(
        user=SignupUserOut(id=profile.id, email=profile.email, name=profile.name, role=profile.role),
    )
