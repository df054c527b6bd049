from __future__ import annotations

import asyncio
import json
import re
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from functools import lru_cache
from typing import Any, Protocol

import asyncpg  # type: ignore[import-untyped]

from egisedge.core.config import get_settings
from egisedge.core.errors import InfrastructureError

TABLE_NAME_RE = re.compile(r"^[a-z_][a-z0-9_]{0,62}$")


class StoreUnavailableError(InfrastructureError):
    """Raised when the KV store is unreachable, misconfigured or a query fails."""


class KVStore(Protocol):
    async def get(self, key: str) -> Any | None: ...

    async def get_many(self, keys: Sequence[str]) -> list[Any | None]: ...

    async def set(self, key: str, value: Any) -> None: ...

    async def delete(self, key: str) -> None: ...

    async def get_by_prefix(self, prefix: str) -> list[tuple[str, Any]]: ...

    async def set_if_absent(self, key: str, value: Any) -> bool: ...

    async def prepend_to_list(self, key: str, item: str) -> None: ...

    async def close(self) -> None: ...


class InMemoryKVStore:
    """Process-local store with the same contract as the Postgres table.

    Values are kept serialized so callers never share mutable state with the store.
    """

    def __init__(self) -> None:
        self._data: dict[str, str] = {}
        self._write_lock = asyncio.Lock()

    async def get(self, key: str) -> Any | None:
        raw = self._data.get(key)
        return None if raw is None else json.loads(raw)

    async def get_many(self, keys: Sequence[str]) -> list[Any | None]:
        return [await self.get(key) for key in keys]

    async def set(self, key: str, value: Any) -> None:
        self._data[key] = json.dumps(value)

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    async def get_by_prefix(self, prefix: str) -> list[tuple[str, Any]]:
        return [(key, json.loads(raw)) for key, raw in sorted(self._data.items()) if key.startswith(prefix)]

    async def set_if_absent(self, key: str, value: Any) -> bool:
        async with self._write_lock:
            if key in self._data:
                return False
            self._data[key] = json.dumps(value)
            return True

    async def prepend_to_list(self, key: str, item: str) -> None:
        async with self._write_lock:
            current = await self.get(key)
            items = current if isinstance(current, list) else []
            if item in items:
                return
            self._data[key] = json.dumps([item, *items])

    async def close(self) -> None:
        return None


class PostgresKVStore:
    def __init__(
        self,
        database_url: str | None,
        table_name: str,
        min_pool_size: int,
        max_pool_size: int,
    ) -> None:
        if not TABLE_NAME_RE.match(table_name):
            raise ValueError(f"invalid kv table name: {table_name!r}")
        self.database_url = database_url
        self.table_name = table_name
        self.min_pool_size = min_pool_size
        self.max_pool_size = max_pool_size
        self._pool: asyncpg.Pool | None = None
        self._pool_lock = asyncio.Lock()

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None

    async def get(self, key: str) -> Any | None:
        pool = await self._get_pool()
        with _translate_errors("get"):
            value = await pool.fetchval(f"select value from {self.table_name} where key = $1", key)
        return self._decode(value)

    async def get_many(self, keys: Sequence[str]) -> list[Any | None]:
        if not keys:
            return []
        pool = await self._get_pool()
        with _translate_errors("get_many"):
            rows = await pool.fetch(
                f"select key, value from {self.table_name} where key = any($1::text[])",
                list(keys),
            )
        found = {row["key"]: self._decode(row["value"]) for row in rows}
        return [found.get(key) for key in keys]

    async def set(self, key: str, value: Any) -> None:
        pool = await self._get_pool()
        with _translate_errors("set"):
            await pool.execute(
                f"""
                insert into {self.table_name} (key, value)
                values ($1, $2::jsonb)
                on conflict (key) do update set value = excluded.value
                """,
                key,
                json.dumps(value),
            )

    async def delete(self, key: str) -> None:
        pool = await self._get_pool()
        with _translate_errors("delete"):
            await pool.execute(f"delete from {self.table_name} where key = $1", key)

    async def get_by_prefix(self, prefix: str) -> list[tuple[str, Any]]:
        pool = await self._get_pool()
        with _translate_errors("get_by_prefix"):
            rows = await pool.fetch(
                f"select key, value from {self.table_name} where key like $1 order by key",
                _escape_like(prefix) + "%",
            )
        return [(row["key"], self._decode(row["value"])) for row in rows]

    async def set_if_absent(self, key: str, value: Any) -> bool:
        pool = await self._get_pool()
        with _translate_errors("set_if_absent"):
            inserted = await pool.fetchval(
                f"""
                insert into {self.table_name} (key, value)
                values ($1, $2::jsonb)
                on conflict (key) do nothing
                returning key
                """,
                key,
                json.dumps(value),
            )
        return inserted is not None

    async def prepend_to_list(self, key: str, item: str) -> None:
        # Single statement: concurrent prepends to the same key serialize on the row lock.
        pool = await self._get_pool()
        with _translate_errors("prepend_to_list"):
            await pool.execute(
                f"""
                insert into {self.table_name} as kv (key, value)
                values ($1, jsonb_build_array($2::text))
                on conflict (key) do update
                  set value = jsonb_build_array($2::text) || kv.value
                  where not (kv.value @> jsonb_build_array($2::text))
                """,
                key,
                item,
            )

    async def _get_pool(self) -> asyncpg.Pool:
        if not self.database_url:
            raise StoreUnavailableError("EG_DATABASE_URL is required")

        if self._pool is not None:
            return self._pool

        async with self._pool_lock:
            if self._pool is not None:
                return self._pool
            try:
                self._pool = await asyncpg.create_pool(
                    dsn=self.database_url,
                    min_size=self.min_pool_size,
                    max_size=self.max_pool_size,
                    command_timeout=15,
                )
                return self._pool
            except Exception as exc:  # pragma: no cover - depends on environment
                raise StoreUnavailableError("database unavailable") from exc

    @staticmethod
    def _decode(value: Any) -> Any | None:
        if isinstance(value, str):
            return json.loads(value)
        return value


@contextmanager
def _translate_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, TimeoutError) as exc:
        raise StoreUnavailableError(f"kv store {operation} failed") from exc


def _escape_like(prefix: str) -> str:
    return prefix.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


@lru_cache
def get_kv_store() -> KVStore:
    settings = get_settings()
    if settings.kv_backend == "memory":
        return InMemoryKVStore()
    return PostgresKVStore(
        database_url=settings.database_url,
        table_name=settings.kv_table_name,
        min_pool_size=settings.database_pool_min_size,
        max_pool_size=settings.database_pool_max_size,
    )
