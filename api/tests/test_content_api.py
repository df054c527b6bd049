from __future__ import annotations

import asyncio

import pytest
from fastapi.testclient import TestClient

from egisedge.core.config import get_settings
from egisedge.main import app
from egisedge.services.kv_store import InMemoryKVStore, StoreUnavailableError, get_kv_store
from egisedge.services.profiles import ProfileRepository

PREFIX = get_settings().api_prefix


def _seed_profile(store: InMemoryKVStore, identity_provider, *, token: str, user_id: str, role: str, name: str) -> None:
    identity_provider.add_user(token, user_id, f"{user_id}@x.com")
    asyncio.run(ProfileRepository(store).create(user_id=user_id, email=f"{user_id}@x.com", name=name, role=role))


@pytest.fixture
def employer_headers(store: InMemoryKVStore, identity_provider) -> dict[str, str]:
    _seed_profile(store, identity_provider, token="employer-token", user_id="employer-1", role="employer", name="Acme")
    return {"Authorization": "Bearer employer-token"}


def test_create_project_requires_bearer(api_client: TestClient) -> None:
    response = api_client.post(f"{PREFIX}/projects", json={"title": "T", "description": "D"})
    assert response.status_code == 401


def test_create_project_rejects_unknown_token(api_client: TestClient) -> None:
    response = api_client.post(
        f"{PREFIX}/projects",
        json={"title": "T", "description": "D"},
        headers={"Authorization": "Bearer forged"},
    )
    assert response.status_code == 401


@pytest.mark.parametrize("role", ["contractor", "startup"])
def test_non_employers_cannot_write(api_client: TestClient, store, identity_provider, role: str) -> None:
    _seed_profile(store, identity_provider, token="t", user_id="user-1", role=role, name="Someone")
    headers = {"Authorization": "Bearer t"}

    project = api_client.post(f"{PREFIX}/projects", json={"title": "T", "description": "D"}, headers=headers)
    post = api_client.post(f"{PREFIX}/posts", json={"content": "hello"}, headers=headers)

    assert project.status_code == 403
    assert post.status_code == 403
    assert asyncio.run(store.get_by_prefix("project")) == []
    assert asyncio.run(store.get_by_prefix("post")) == []


def test_authenticated_user_without_profile_is_forbidden(api_client: TestClient, identity_provider) -> None:
    identity_provider.add_user("orphan-token", "orphan-1")
    response = api_client.post(
        f"{PREFIX}/posts",
        json={"content": "hello"},
        headers={"Authorization": "Bearer orphan-token"},
    )
    assert response.status_code == 403


def test_employer_creates_project(api_client: TestClient, employer_headers: dict[str, str]) -> None:
    response = api_client.post(
        f"{PREFIX}/projects",
        json={
            "title": "Data pipeline",
            "description": "Build ingestion",
            "budget": "$5000",
            "deadline": "2026-12-01",
            "skills": ["python", "sql"],
        },
        headers=employer_headers,
    )
    assert response.status_code == 200
    project = response.json()["project"]
    assert project["title"] == "Data pipeline"
    assert project["budget"] == "$5000"
    assert project["deadline"] == "2026-12-01"
    assert project["skills"] == ["python", "sql"]
    assert project["employerId"] == "employer-1"
    assert project["employerName"] == "Acme"
    assert project["status"] == "open"
    assert project["id"]
    assert project["createdAt"]


@pytest.mark.parametrize("body", [{"title": "T"}, {"description": "D"}, {"title": "", "description": "D"}])
def test_create_project_missing_fields_is_bad_request(
    api_client: TestClient, employer_headers: dict[str, str], body: dict[str, str]
) -> None:
    response = api_client.post(f"{PREFIX}/projects", json=body, headers=employer_headers)
    assert response.status_code == 400
    assert response.json()["detail"] == "Title and description are required"


def test_create_post_missing_content_is_bad_request(api_client: TestClient, employer_headers: dict[str, str]) -> None:
    response = api_client.post(f"{PREFIX}/posts", json={}, headers=employer_headers)
    assert response.status_code == 400
    assert response.json()["detail"] == "Content is required"


def test_malformed_body_is_bad_request(api_client: TestClient, employer_headers: dict[str, str]) -> None:
    response = api_client.post(
        f"{PREFIX}/projects",
        content=b"{not json",
        headers={**employer_headers, "Content-Type": "application/json"},
    )
    assert response.status_code == 400


def test_public_reads_return_newest_first(api_client: TestClient, employer_headers: dict[str, str]) -> None:
    for content in ("first", "second", "third"):
        created = api_client.post(f"{PREFIX}/posts", json={"content": content}, headers=employer_headers)
        assert created.status_code == 200

    response = api_client.get(f"{PREFIX}/posts")
    assert response.status_code == 200
    posts = response.json()["posts"]
    assert [post["content"] for post in posts] == ["third", "second", "first"]
    assert all(post["authorId"] == "employer-1" for post in posts)
    assert all(post["authorName"] == "Acme" for post in posts)


def test_empty_collections(api_client: TestClient) -> None:
    assert api_client.get(f"{PREFIX}/projects").json() == {"projects": []}
    assert api_client.get(f"{PREFIX}/posts").json() == {"posts": []}


def test_list_projects_skips_orphans(api_client: TestClient, store, employer_headers: dict[str, str]) -> None:
    created = api_client.post(
        f"{PREFIX}/projects",
        json={"title": "T", "description": "D"},
        headers=employer_headers,
    ).json()["project"]
    asyncio.run(store.prepend_to_list("projects:list", "missing-record"))

    response = api_client.get(f"{PREFIX}/projects")
    assert response.status_code == 200
    assert [project["id"] for project in response.json()["projects"]] == [created["id"]]


def test_signup_create_and_list_scenario(api_client: TestClient) -> None:
    signup = api_client.post(
        f"{PREFIX}/signup",
        json={"email": "a@x.com", "password": "secret123", "name": "Ada Lovelace", "userType": "employer"},
    )
    assert signup.status_code == 200
    headers = {"Authorization": "Bearer token:a@x.com"}

    created = api_client.post(f"{PREFIX}/projects", json={"title": "T", "description": "D"}, headers=headers)
    assert created.status_code == 200

    projects = api_client.get(f"{PREFIX}/projects").json()["projects"]
    assert len(projects) == 1
    assert projects[0]["title"] == "T"
    assert projects[0]["employerName"] == "Ada Lovelace"
    assert projects[0]["employerId"] == signup.json()["user"]["id"]
    assert projects[0]["status"] == "open"


class UnavailableStore(InMemoryKVStore):
    async def get(self, key: str):
        raise StoreUnavailableError("connection refused to db.internal:5432")


def test_store_failure_is_generic_server_error() -> None:
    app.dependency_overrides[get_kv_store] = lambda: UnavailableStore()
    try:
        with TestClient(app) as client:
            response = client.get(f"{PREFIX}/projects")
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 500
    assert response.json() == {"detail": "internal server error", "error": "internal server error"}


def _store_indexed_project(store: InMemoryKVStore, document: dict[str, object]) -> None:
    asyncio.run(store.set(f"project:{document['id']}", document))
    asyncio.run(store.prepend_to_list("projects:list", str(document["id"])))


def test_list_projects_accepts_numeric_budget_from_older_clients(api_client: TestClient, store) -> None:
    _store_indexed_project(
        store,
        {
            "id": "legacy",
            "title": "Legacy",
            "description": "Written by the previous server",
            "budget": 5000,
            "skills": [],
            "employerId": "employer-1",
            "employerName": "Acme",
            "status": "open",
            "createdAt": "2025-03-01T10:00:00.000Z",
        },
    )

    response = api_client.get(f"{PREFIX}/projects")

    assert response.status_code == 200
    projects = response.json()["projects"]
    assert [project["id"] for project in projects] == ["legacy"]
    assert projects[0]["budget"] == "5000"


def test_list_projects_skips_malformed_records(api_client: TestClient, store, employer_headers: dict[str, str]) -> None:
    created = api_client.post(
        f"{PREFIX}/projects",
        json={"title": "T", "description": "D"},
        headers=employer_headers,
    ).json()["project"]
    _store_indexed_project(store, {"id": "broken", "title": "only a title"})

    response = api_client.get(f"{PREFIX}/projects")

    assert response.status_code == 200
    assert [project["id"] for project in response.json()["projects"]] == [created["id"]]


def test_create_project_accepts_numeric_budget(api_client: TestClient, employer_headers: dict[str, str]) -> None:
    response = api_client.post(
        f"{PREFIX}/projects",
        json={"title": "T", "description": "D", "budget": 5000},
        headers=employer_headers,
    )

    assert response.status_code == 200
    assert response.json()["project"]["budget"] == "5000"


class BrokenStore(InMemoryKVStore):
    async def get(self, key: str):
        raise RuntimeError("unexpected decoder state")


def test_unexpected_failure_is_json_server_error() -> None:
    app.dependency_overrides[get_kv_store] = lambda: BrokenStore()
    try:
        with TestClient(app, raise_server_exceptions=False) as client:
            response = client.get(f"{PREFIX}/posts")
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 500
    assert response.headers["content-type"].startswith("application/json")
    assert response.json() == {"detail": "internal server error", "error": "internal server error"}
