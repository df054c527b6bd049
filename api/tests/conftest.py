from __future__ import annotations

import os
from collections.abc import Iterator
from uuid import uuid4

# Must be set before egisedge.main is imported by any test module.
os.environ.setdefault("EG_OTEL_ENABLED", "false")
os.environ.setdefault("EG_KV_BACKEND", "memory")

import pytest
from fastapi.testclient import TestClient

from egisedge.core.auth import UserIdentity, UserRole, parse_bearer_token
from egisedge.main import app
from egisedge.services.identity import IdentityRejectedError, UnauthenticatedError, get_identity_provider
from egisedge.services.kv_store import InMemoryKVStore, get_kv_store


class FakeIdentityProvider:
    """Stands in for Supabase Auth: accounts authenticate with bearer ``token:<email>``."""

    def __init__(self) -> None:
        self.tokens: dict[str, UserIdentity] = {}
        self.created: list[dict[str, object]] = []

    def add_user(self, token: str, user_id: str, email: str | None = None) -> UserIdentity:
        identity = UserIdentity(id=user_id, email=email)
        self.tokens[token] = identity
        return identity

    async def resolve_header(self, authorization: str | None) -> UserIdentity:
        token = parse_bearer_token(authorization)
        if token is None:
            raise UnauthenticatedError("authorization requires bearer token")
        identity = self.tokens.get(token)
        if identity is None:
            raise UnauthenticatedError("invalid bearer token")
        return identity

    async def create_user(self, *, email: str, password: str, name: str, role: UserRole) -> UserIdentity:
        if any(identity.email == email for identity in self.tokens.values()):
            raise IdentityRejectedError("A user with this email address has already been registered")
        self.created.append({"email": email, "name": name, "role": role})
        return self.add_user(f"token:{email}", str(uuid4()), email)


@pytest.fixture
def store() -> InMemoryKVStore:
    return InMemoryKVStore()


@pytest.fixture
def identity_provider() -> FakeIdentityProvider:
    return FakeIdentityProvider()


@pytest.fixture
def api_client(store: InMemoryKVStore, identity_provider: FakeIdentityProvider) -> Iterator[TestClient]:
    app.dependency_overrides[get_kv_store] = lambda: store
    app.dependency_overrides[get_identity_provider] = lambda: identity_provider

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()
