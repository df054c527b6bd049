from fastapi import Depends

from egisedge.services.content import PostRepository, ProjectRepository
from egisedge.services.kv_store import KVStore, get_kv_store
from egisedge.services.profiles import ProfileRepository


def get_profile_repository(store: KVStore = Depends(get_kv_store)) -> ProfileRepository:
    return ProfileRepository(store)


def get_project_repository(store: KVStore = Depends(get_kv_store)) -> ProjectRepository:
    return ProjectRepository(store)


def get_post_repository(store: KVStore = Depends(get_kv_store)) -> PostRepository:
    return PostRepository(store)
