from fastapi import APIRouter

from egisedge.api.routes import health, posts, profile, projects, signup

api_router = APIRouter()
api_router.include_router(health.router, tags=["health"])
api_router.include_router(signup.router, prefix="/signup", tags=["auth"])
api_router.include_router(profile.router, prefix="/profile", tags=["auth"])
api_router.include_router(projects.router, prefix="/projects", tags=["content"])
api_router.include_router(posts.router, prefix="/posts", tags=["content"])
