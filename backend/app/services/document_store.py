"""
ProfileBuilder Backend — Document Store (Persistence Collaborator)
====================================================================

What:  Opaque async read/write operations over named document collections.
How:   `DocumentStore` is the protocol services depend on. `SqlDocumentStore`
       implements it on top of the single `documents` table using async
       SQLAlchemy, one short transaction per operation.
Who:   Services (profiles, users, categories, sessions). The request pipeline
       never touches it.

Filters:
    Equality only, on top-level document fields: {"slug": "jane", "isPublic": True}.
    The key "id" matches the document id.

Resilience:
    Transient connection failures are retried with tenacity (exponential
    backoff). When retries are exhausted, or on any other database failure,
    the store raises StorageUnavailableError; callers see a generic 503 and
    the cause is logged by the pipeline. A write that breaks a unique index
    raises ConflictError (409) instead.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol, Sequence, Tuple, TypeVar

from sqlalchemy import Select, asc, desc, func, select
from sqlalchemy.exc import DisconnectionError, IntegrityError, InterfaceError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from app.config import settings
from app.exceptions import ConflictError, StorageUnavailableError
from app.models.document import UNIQUE_FIELDS, DocumentRecord

logger = logging.getLogger(__name__)

T = TypeVar("T")

Document = Dict[str, Any]
Filter = Dict[str, Any]
# (field, "asc" | "desc")
Sort = Sequence[Tuple[str, str]]

_COLUMN_FIELDS = {
    "createdAt": DocumentRecord.created_at,
    "updatedAt": DocumentRecord.updated_at,
}

_RESERVED_FIELDS = {"id", "createdAt", "updatedAt"}

_TRANSIENT_ERRORS = (
    OperationalError,
    InterfaceError,
    DisconnectionError,
    ConnectionError,
    TimeoutError,
)


class DocumentStore(Protocol):
    async def find(self, collection: str, filter: Filter) -> Optional[Document]: ...

    async def find_many(
        self,
        collection: str,
        filter: Filter,
        sort: Optional[Sort] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[Document]: ...

    async def count(self, collection: str, filter: Filter) -> int: ...

    async def insert(self, collection: str, doc: Document) -> str: ...

    async def update(self, collection: str, id: str, patch: Document) -> bool: ...

    async def delete(self, collection: str, id: str) -> bool: ...

    async def increment(self, collection: str, id: str, field: str, amount: int = 1) -> bool: ...

    async def ping(self) -> bool: ...


def _strip_reserved(doc: Document) -> Document:
    return {k: v for k, v in doc.items() if k not in _RESERVED_FIELDS}


def _apply_filter(query: Select, collection: str, filter: Filter) -> Select:
    query = query.where(DocumentRecord.collection == collection)
    for field, value in filter.items():
        if field == "id":
            query = query.where(DocumentRecord.id == str(value))
            continue
        element = DocumentRecord.data[field]
        if isinstance(value, bool):
            query = query.where(element.as_boolean() == value)
        elif isinstance(value, int):
            query = query.where(element.as_integer() == value)
        elif isinstance(value, float):
            query = query.where(element.as_float() == value)
        elif value is None:
            query = query.where(element.as_string().is_(None))
        else:
            query = query.where(element.as_string() == str(value))
    return query


def _violated_unique_field(error: IntegrityError, collection: str) -> Tuple[str, str]:
    """(resource, field) of the unique index named in the driver's message."""
    message = str(error.orig)
    for index_name, _, _, resource, field in UNIQUE_FIELDS:
        if index_name in message:
            return resource, field
    return collection, "id"


def _apply_sort(query: Select, sort: Optional[Sort]) -> Select:
    if not sort:
        return query.order_by(asc(DocumentRecord.created_at), asc(DocumentRecord.id))
    for field, direction in sort:
        column = _COLUMN_FIELDS.get(field)
        if column is None:
            column = DocumentRecord.data[field].as_string()
        query = query.order_by(desc(column) if direction == "desc" else asc(column))
    return query


class SqlDocumentStore:
    """DocumentStore over async SQLAlchemy."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    # ── Public operations ─────────────────────────────────────────────────

    async def find(self, collection: str, filter: Filter) -> Optional[Document]:
        async def op(session: AsyncSession) -> Optional[Document]:
            query = _apply_filter(select(DocumentRecord), collection, filter).limit(1)
            record = (await session.execute(query)).scalar_one_or_none()
            return record.to_document() if record else None

        return await self._run("find", collection, op)

    async def find_many(
        self,
        collection: str,
        filter: Filter,
        sort: Optional[Sort] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[Document]:
        async def op(session: AsyncSession) -> List[Document]:
            query = _apply_filter(select(DocumentRecord), collection, filter)
            query = _apply_sort(query, sort)
            if offset:
                query = query.offset(offset)
            if limit is not None:
                query = query.limit(limit)
            records = (await session.execute(query)).scalars().all()
            return [record.to_document() for record in records]

        return await self._run("find_many", collection, op)

    async def count(self, collection: str, filter: Filter) -> int:
        async def op(session: AsyncSession) -> int:
            query = _apply_filter(
                select(func.count()).select_from(DocumentRecord), collection, filter
            )
            return int((await session.execute(query)).scalar() or 0)

        return await self._run("count", collection, op)

    async def insert(self, collection: str, doc: Document) -> str:
        async def op(session: AsyncSession) -> str:
            record = DocumentRecord(collection=collection, data=_strip_reserved(doc))
            session.add(record)
            await session.flush()
            return record.id

        return await self._run("insert", collection, op)

    async def update(self, collection: str, id: str, patch: Document) -> bool:
        async def op(session: AsyncSession) -> bool:
            record = await self._locked(session, collection, id)
            if record is None:
                return False
            # Reassign so SQLAlchemy sees the JSON column as modified.
            record.data = {**record.data, **_strip_reserved(patch)}
            record.updated_at = datetime.now(timezone.utc)
            return True

        return await self._run("update", collection, op)

    async def delete(self, collection: str, id: str) -> bool:
        async def op(session: AsyncSession) -> bool:
            record = await self._locked(session, collection, id)
            if record is None:
                return False
            await session.delete(record)
            return True

        return await self._run("delete", collection, op)

    async def increment(self, collection: str, id: str, field: str, amount: int = 1) -> bool:
        async def op(session: AsyncSession) -> bool:
            record = await self._locked(session, collection, id)
            if record is None:
                return False
            current = record.data.get(field) or 0
            record.data = {**record.data, field: int(current) + amount}
            return True

        return await self._run("increment", collection, op)

    async def ping(self) -> bool:
        async def op(session: AsyncSession) -> bool:
            await session.execute(select(1))
            return True

        try:
            return await self._run("ping", "-", op)
        except StorageUnavailableError:
            return False

    # ── Internals ─────────────────────────────────────────────────────────

    @staticmethod
    async def _locked(session: AsyncSession, collection: str, id: str) -> Optional[DocumentRecord]:
        query = (
            select(DocumentRecord)
            .where(DocumentRecord.collection == collection, DocumentRecord.id == str(id))
            .with_for_update()
        )
        return (await session.execute(query)).scalar_one_or_none()

    async def _run(
        self,
        operation: str,
        collection: str,
        op: Callable[[AsyncSession], Awaitable[T]],
    ) -> T:
        try:
            return await self._transaction(op)
        except IntegrityError as e:
            resource, field = _violated_unique_field(e, collection)
            logger.info("Document store %s on '%s' rejected: %s already taken", operation, collection, field)
            raise ConflictError(resource, field, context={"operation": operation}) from e
        except (SQLAlchemyError, OSError) as e:
            logger.error("Document store %s on '%s' failed: %s", operation, collection, e)
            raise StorageUnavailableError(
                cause=e,
                context={"operation": operation, "collection": collection},
            ) from e

    @retry(
        retry=retry_if_exception_type(_TRANSIENT_ERRORS),
        stop=stop_after_attempt(settings.storage_retry_attempts),
        wait=wait_exponential(
            multiplier=settings.storage_retry_min_wait,
            min=settings.storage_retry_min_wait,
            max=settings.storage_retry_max_wait,
        ),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def _transaction(self, op: Callable[[AsyncSession], Awaitable[T]]) -> T:
        async with self._session_factory() as session:
            async with session.begin():
                return await op(session)
