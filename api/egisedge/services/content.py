from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, ClassVar, Generic, TypeVar
from uuid import uuid4

from pydantic import ValidationError

from egisedge.schemas.base import ContentRecord
from egisedge.schemas.posts import Post
from egisedge.schemas.profiles import UserProfile
from egisedge.schemas.projects import Project
from egisedge.services.kv_store import KVStore
from egisedge.services.repository import RepositoryValidationError, coerce_text, coerce_text_list

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=ContentRecord)


class ContentRepository(Generic[RecordT]):
    """Append-ordered collection of immutable records.

    Each record lives under ``{kind}:{id}``; the index key holds the record ids
    newest-first and is the only source for ``list_all``.
    """

    kind: ClassVar[str]
    index_key: ClassVar[str]
    record_model: ClassVar[type[ContentRecord]]

    def __init__(self, store: KVStore) -> None:
        self.store = store

    def record_key(self, record_id: str) -> str:
        return f"{self.kind}:{record_id}"

    async def create(self, author: UserProfile, payload: Mapping[str, Any]) -> RecordT:
        record = self._build_record(
            record_id=str(uuid4()),
            author=author,
            payload=payload,
            created_at=datetime.now(timezone.utc),
        )
        await self.store.set(self.record_key(record.id), record.model_dump(mode="json", by_alias=True))
        await self.store.prepend_to_list(self.index_key, record.id)
        logger.info("%s created id=%s author_id=%s", self.kind, record.id, author.id)
        return record

    async def list_all(self) -> list[RecordT]:
        index = await self.store.get(self.index_key)
        record_ids = [item for item in index if isinstance(item, str)] if isinstance(index, list) else []
        documents = await self.store.get_many([self.record_key(record_id) for record_id in record_ids])

        records: list[RecordT] = []
        for record_id, document in zip(record_ids, documents):
            if document is None:
                logger.debug("skipping orphaned %s index entry id=%s", self.kind, record_id)
                continue
            record = self._parse(record_id, document)
            if record is not None:
                records.append(record)  # type: ignore[arg-type]
        return records

    async def rebuild_index(self) -> int:
        """Rewrite the index from the stored records, newest first.

        Not safe to run while creates are in flight: the index is overwritten wholesale.
        """
        rows = await self.store.get_by_prefix(f"{self.kind}:")
        records = [record for key, document in rows if (record := self._parse(key, document)) is not None]
        records.sort(key=lambda record: record.created_at, reverse=True)
        await self.store.set(self.index_key, [record.id for record in records])
        logger.info("%s index rebuilt records=%s", self.kind, len(records))
        return len(records)

    def _parse(self, record_id: str, document: Any) -> ContentRecord | None:
        # Malformed legacy documents are skipped like orphans.
        try:
            return self.record_model.model_validate(document)
        except ValidationError as exc:
            logger.warning(
                "skipping malformed %s record id=%s errors=%s", self.kind, record_id, exc.error_count()
            )
            return None

    def _build_record(
        self,
        *,
        record_id: str,
        author: UserProfile,
        payload: Mapping[str, Any],
        created_at: datetime,
    ) -> RecordT:
        raise NotImplementedError


class ProjectRepository(ContentRepository[Project]):
    kind = "project"
    index_key = "projects:list"
    record_model = Project

    def _build_record(
        self,
        *,
        record_id: str,
        author: UserProfile,
        payload: Mapping[str, Any],
        created_at: datetime,
    ) -> Project:
        title = coerce_text(payload.get("title"))
        description = coerce_text(payload.get("description"))
        if not title or not description:
            raise RepositoryValidationError("Title and description are required")

        return Project(
            id=record_id,
            title=title,
            description=description,
            budget=coerce_text(payload.get("budget")),
            deadline=coerce_text(payload.get("deadline")),
            skills=coerce_text_list(payload.get("skills")),
            employer_id=author.id,
            employer_name=author.name,
            status="open",
            created_at=created_at,
        )


class PostRepository(ContentRepository[Post]):
    kind = "post"
    index_key = "posts:list"
    record_model = Post

    def _build_record(
        self,
        *,
        record_id: str,
        author: UserProfile,
        payload: Mapping[str, Any],
        created_at: datetime,
    ) -> Post:
        content = coerce_text(payload.get("content"))
        if not content:
            raise RepositoryValidationError("Content is required")

        return Post(
            id=record_id,
            content=content,
            author_id=author.id,
            author_name=author.name,
            created_at=created_at,
        )
