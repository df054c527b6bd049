from typing import Annotated, Any

from pydantic import BeforeValidator, Field

from egisedge.schemas.base import CamelModel, ContentRecord


def _number_to_text(value: Any) -> Any:
    # Older clients send numeric budgets such as 5000; stored as text.
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


FreeText = Annotated[str | None, BeforeValidator(_number_to_text)]


class Project(ContentRecord):
    title: str
    description: str
    budget: FreeText = None
    deadline: FreeText = None
    skills: list[str] = Field(default_factory=list)
    employer_id: str
    employer_name: str
    status: str = "open"


class ProjectCreateRequest(CamelModel):
    title: str | None = None
    description: str | None = None
    budget: FreeText = None
    deadline: FreeText = None
    skills: list[str] | None = None


class ProjectOut(CamelModel):
    project: Project


class ProjectListOut(CamelModel):
    projects: list[Project] = Field(default_factory=list)
