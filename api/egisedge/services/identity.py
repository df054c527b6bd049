from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any

import httpx

from egisedge.core.auth import UserIdentity, UserRole, parse_bearer_token
from egisedge.core.config import get_settings
from egisedge.core.errors import InfrastructureError

logger = logging.getLogger(__name__)


class IdentityError(Exception):
    """Base identity provider error."""


class UnauthenticatedError(IdentityError):
    """Raised when a bearer credential is missing, malformed or rejected."""


class IdentityRejectedError(IdentityError):
    """Raised when the provider refuses to create an account (duplicate email, weak password...)."""


class IdentityUnavailableError(IdentityError, InfrastructureError):
    """Raised when the provider is not configured, unreachable or misbehaving."""


class SupabaseIdentityProvider:
    """Thin client over the two Supabase Auth endpoints this service needs."""

    def __init__(
        self,
        *,
        supabase_url: str | None,
        anon_key: str | None,
        service_role_key: str | None,
        timeout_seconds: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.supabase_url = supabase_url.rstrip("/") if supabase_url else None
        self.anon_key = anon_key
        self.service_role_key = service_role_key
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    async def resolve(self, credential: str | None) -> UserIdentity:
        if not credential or not credential.strip():
            raise UnauthenticatedError("missing bearer token")
        api_key = self.anon_key or self.service_role_key
        if not self.supabase_url or not api_key:
            raise IdentityUnavailableError("Supabase auth is not configured")

        response = await self._request(
            "GET",
            "/auth/v1/user",
            headers={"Authorization": f"Bearer {credential.strip()}", "apikey": api_key},
        )
        if response.status_code in {400, 401, 403, 404}:
            raise UnauthenticatedError("invalid bearer token")
        if response.status_code != 200:
            raise IdentityUnavailableError(f"Supabase auth verification failed status={response.status_code}")

        user = _json_object(response)
        user_id = user.get("id")
        if not isinstance(user_id, str) or not user_id:
            raise UnauthenticatedError("invalid bearer token")
        email = user.get("email")
        return UserIdentity(id=user_id, email=email if isinstance(email, str) else None)

    async def resolve_header(self, authorization: str | None) -> UserIdentity:
        token = parse_bearer_token(authorization)
        if token is None:
            raise UnauthenticatedError("authorization requires bearer token")
        return await self.resolve(token)

    async def create_user(self, *, email: str, password: str, name: str, role: UserRole) -> UserIdentity:
        if not self.supabase_url or not self.service_role_key:
            raise IdentityUnavailableError("Supabase admin access is not configured")

        response = await self._request(
            "POST",
            "/auth/v1/admin/users",
            headers={
                "Authorization": f"Bearer {self.service_role_key}",
                "apikey": self.service_role_key,
            },
            json={
                "email": email,
                "password": password,
                "user_metadata": {"name": name, "userType": role.value},
                # No mail server is configured, so accounts are confirmed on creation.
                "email_confirm": True,
            },
        )
        if 400 <= response.status_code < 500:
            message = _error_message(response)
            logger.info("identity provider rejected signup status=%s message=%s", response.status_code, message)
            raise IdentityRejectedError(message)
        if response.status_code not in {200, 201}:
            raise IdentityUnavailableError(f"Supabase user creation failed status={response.status_code}")

        user = _json_object(response)
        user_id = user.get("id")
        if not isinstance(user_id, str) or not user_id:
            raise IdentityUnavailableError("Supabase user creation returned no user id")
        return UserIdentity(id=user_id, email=email)

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self._transport) as client:
                return await client.request(method, f"{self.supabase_url}{path}", **kwargs)
        except httpx.HTTPError as exc:
            raise IdentityUnavailableError("Supabase auth unavailable") from exc


def _json_object(response: httpx.Response) -> dict[str, Any]:
    try:
        payload = response.json()
    except ValueError as exc:
        raise IdentityUnavailableError("Supabase auth returned a non-JSON body") from exc
    if not isinstance(payload, dict):
        raise IdentityUnavailableError("Supabase auth returned an unexpected body")
    # Older GoTrue versions wrap the admin response in {"user": {...}}.
    user = payload.get("user")
    if isinstance(user, dict) and "id" not in payload:
        return user
    return payload


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text or "identity provider rejected the request"
    if isinstance(payload, dict):
        for key in ("msg", "message", "error_description", "error"):
            value = payload.get(key)
            if isinstance(value, str) and value:
                return value
    return "identity provider rejected the request"


@lru_cache
def get_identity_provider() -> SupabaseIdentityProvider:
    settings = get_settings()
    return SupabaseIdentityProvider(
        supabase_url=settings.supabase_url,
        anon_key=settings.supabase_anon_key,
        service_role_key=settings.supabase_service_role_key,
        timeout_seconds=settings.auth_timeout_seconds,
    )
