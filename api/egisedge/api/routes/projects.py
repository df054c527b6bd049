from fastapi import APIRouter, Depends, HTTPException, status

from egisedge.api.deps import get_project_repository
from egisedge.core.security import get_employer_profile
from egisedge.schemas.profiles import UserProfile
from egisedge.schemas.projects import ProjectCreateRequest, ProjectListOut, ProjectOut
from egisedge.services.content import ProjectRepository
from egisedge.services.repository import RepositoryValidationError

router = APIRouter()


@router.post("", response_model=ProjectOut)
async def create_project(
    payload: ProjectCreateRequest,
    author: UserProfile = Depends(get_employer_profile),
    repository: ProjectRepository = Depends(get_project_repository),
) -> ProjectOut:
    try:
        project = await repository.create(author, payload.model_dump())
    except RepositoryValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return ProjectOut(project=project)


@router.get("", response_model=ProjectListOut)
async def list_projects(repository: ProjectRepository = Depends(get_project_repository)) -> ProjectListOut:
    return ProjectListOut(projects=await repository.list_all())
