"""Generic async CRUD operations over a single ORM model."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Any, Generic, TypeVar
from uuid import UUID

from sqlalchemy import delete, func, inspect as sa_inspect, select
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

from resource_metrics.filtering import OrderClause
from resource_metrics.models import Base

ModelT = TypeVar("ModelT", bound=Base)

logger = logging.getLogger("resource_metrics.crud")


class NotFoundError(LookupError):
    """Raised when no row matches the requested id."""


class StorageError(RuntimeError):
    """Persistence failure carrying the underlying driver message."""

    @classmethod
    def from_sqlalchemy(cls, exc: SQLAlchemyError) -> StorageError:
        if isinstance(exc, DBAPIError) and exc.orig is not None:
            return cls(str(exc.orig))
        return cls(str(exc))


@dataclass(slots=True)
class PaginationOptions:
    limit: int
    offset: int = 0
    include_count: bool = True
    conditions: list[ColumnElement[bool]] = field(default_factory=list)
    order_by: list[OrderClause] = field(default_factory=list)


@dataclass
class PaginatedResult(Generic[ModelT]):
    items: list[ModelT]
    total: int | None


def _parse_id(item_id: str | UUID) -> UUID | None:
    if isinstance(item_id, UUID):
        return item_id
    try:
        return UUID(item_id)
    except ValueError:
        return None


class CRUD(Generic[ModelT]):
    """Storage access for one model keyed by a UUID primary key."""

    def __init__(self, model: type[ModelT]) -> None:
        self.model = model
        self._table = model.__table__
        self._pk = sa_inspect(model).primary_key[0]

    async def _commit(self, session: AsyncSession, operation: str) -> None:
        try:
            await session.commit()
        except SQLAlchemyError as exc:
            await session.rollback()
            error = StorageError.from_sqlalchemy(exc)
            logger.warning(
                "storage_error op=%s table=%s error=%s", operation, self._table.name, error
            )
            raise error from exc

    async def get_by_id(self, session: AsyncSession, item_id: str | UUID) -> ModelT:
        """
        Load a row by id, always reading from the database.

        Raises:
            NotFoundError: when the id is malformed or absent.
            StorageError: when the read itself fails.
        """

        parsed = _parse_id(item_id)
        if parsed is None:
            raise NotFoundError(str(item_id))
        try:
            item = await session.get(self.model, parsed, populate_existing=True)
        except SQLAlchemyError as exc:
            raise StorageError.from_sqlalchemy(exc) from exc
        if item is None:
            raise NotFoundError(str(item_id))
        return item

    async def create(self, session: AsyncSession, item: ModelT) -> None:
        session.add(item)
        await self._commit(session, "create")

    async def update(self, session: AsyncSession, item: ModelT) -> None:
        session.add(item)
        await self._commit(session, "update")

    async def delete(self, session: AsyncSession, item_id: str | UUID) -> None:
        parsed = _parse_id(item_id)
        if parsed is None:
            return
        try:
            await session.execute(delete(self.model).where(self._pk == parsed))
        except SQLAlchemyError as exc:
            await session.rollback()
            raise StorageError.from_sqlalchemy(exc) from exc
        await self._commit(session, "delete")

    async def get_all_paginated(
        self,
        session: AsyncSession,
        options: PaginationOptions,
    ) -> PaginatedResult[ModelT]:
        base_query = select(self.model)
        if options.conditions:
            base_query = base_query.where(*options.conditions)

        order_columns: list[Any] = []
        for clause in options.order_by:
            column = self._table.c[clause.column]
            order_columns.append(column.desc() if clause.direction == "desc" else column.asc())

        try:
            total: int | None = None
            if options.include_count:
                total_query = select(func.count()).select_from(base_query.subquery())
                total = int((await session.scalar(total_query)) or 0)

            ordered_query = base_query.order_by(*order_columns).limit(options.limit).offset(options.offset)
            items = list((await session.scalars(ordered_query)).all())
        except SQLAlchemyError as exc:
            raise StorageError.from_sqlalchemy(exc) from exc

        return PaginatedResult(items=items, total=total)
