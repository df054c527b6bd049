from fastapi import APIRouter, Depends, HTTPException, status

from egisedge.api.deps import get_post_repository
from egisedge.core.security import get_employer_profile
from egisedge.schemas.posts import PostCreateRequest, PostListOut, PostOut
from egisedge.schemas.profiles import UserProfile
from egisedge.services.content import PostRepository
from egisedge.services.repository import RepositoryValidationError

router = APIRouter()


@router.post("", response_model=PostOut)
async def create_post(
    payload: PostCreateRequest,
    author: UserProfile = Depends(get_employer_profile),
    repository: PostRepository = Depends(get_post_repository),
) -> PostOut:
    try:
        post = await repository.create(author, payload.model_dump())
    except RepositoryValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return PostOut(post=post)


@router.get("", response_model=PostListOut)
async def list_posts(repository: PostRepository = Depends(get_post_repository)) -> PostListOut:
    return PostListOut(posts=await repository.list_all())
