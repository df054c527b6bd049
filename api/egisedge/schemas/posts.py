from pydantic import Field

from egisedge.schemas.base import CamelModel, ContentRecord


class Post(ContentRecord):
    content: str
    author_id: str
    author_name: str


class PostCreateRequest(CamelModel):
    content: str | None = None


class PostOut(CamelModel):
    post: Post


class PostListOut(CamelModel):
    posts: list[Post] = Field(default_factory=list)
