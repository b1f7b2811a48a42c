"""HTTP handlers for the metrics collection."""

from __future__ import annotations

from collections.abc import Iterable
import logging
from typing import Any
from uuid import UUID, uuid4

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from resource_metrics.config import MetricsConfig
from resource_metrics.crud import CRUD, NotFoundError, PaginationOptions, StorageError
from resource_metrics.database import session_dependency
from resource_metrics.filtering import FilterError, FilterSet, OrderClause, OrderSet
from resource_metrics.models import Metric
from resource_metrics.pagination import (
    MAX_PAGE,
    PaginationError,
    build_collection,
    page_offset,
    parse_int_query,
)
from resource_metrics.validation import (
    CreateMetricRequest,
    MetricRead,
    MetricValidationError,
    UpdateMetricRequest,
    parse_request,
)

logger = logging.getLogger("resource_metrics.resources")

NOT_FOUND_DETAIL = "Not found"


def _bad_request(exc: Exception) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


def _storage_failure(exc: StorageError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NOT_FOUND_DETAIL)


class MetricResource:
    """CRUD endpoints for metrics, bounded by a MetricsConfig."""

    max_filter_values_per_field = 50
    max_page = MAX_PAGE
    field_mapping = {
        "id": "id",
        "resource": "resource",
        "resourceId": "resource_id",
        "key": "key",
        "value": "value",
        "createdAt": "created_at",
    }
    default_order = (
        OrderClause(column="created_at", direction="desc"),
        OrderClause(column="id", direction="asc"),
    )

    def __init__(
        self,
        config: MetricsConfig,
        session_factory: async_sessionmaker[AsyncSession],
    ) -> None:
        self.config = config
        self.crud = CRUD(Metric)
        self.pagination_limit = config.pagination_limit
        self.pagination_max_limit = config.max_pagination_limit
        self.session_factory = session_factory

    def validate_resource_filter(self, filters: FilterSet) -> None:
        for item in filters.filters:
            if item.field != "resource":
                continue
            for value in item.values:
                if not self.config.is_allowed_type(value):
                    allowed = ", ".join(self.config.allowed_types)
                    raise FilterError(f"invalid resource type '{value}' (allowed: {allowed})")

    def validate_filter_limits(self, filters: FilterSet) -> None:
        # The cap spans every operator used on a field.
        counts: dict[str, int] = {}
        for item in filters.filters:
            counts[item.field] = counts.get(item.field, 0) + len(item.values)
        for api_field, total in counts.items():
            if total > self.max_filter_values_per_field:
                raise FilterError(
                    f"too many filter values for field '{api_field}' "
                    f"(max: {self.max_filter_values_per_field}, got: {total})"
                )

    async def list_items(
        self,
        session: AsyncSession,
        params: Iterable[tuple[str, str]],
        *,
        limit: str | None = None,
        page: str | None = None,
        count: str = "true",
    ) -> dict[str, Any]:
        params = list(params)
        try:
            page_size = parse_int_query(
                limit,
                name="limit",
                default=self.pagination_limit,
                maximum=self.pagination_max_limit,
            )
            page_number = parse_int_query(page, name="page", default=1, maximum=self.max_page)

            filters = FilterSet(self.field_mapping, Metric.__table__)
            filters.parse_from_query(params)
            self.validate_resource_filter(filters)
            self.validate_filter_limits(filters)

            ordering = OrderSet(self.field_mapping)
            ordering.parse_from_query(params)
            conditions = filters.conditions()
        except (PaginationError, FilterError) as exc:
            raise _bad_request(exc) from exc

        try:
            result = await self.crud.get_all_paginated(
                session,
                PaginationOptions(
                    limit=page_size,
                    offset=page_offset(page_number, page_size),
                    include_count=count != "false",
                    conditions=conditions,
                    order_by=ordering.clauses or list(self.default_order),
                ),
            )
        except StorageError as exc:
            raise _storage_failure(exc) from exc

        return build_collection(
            [MetricRead.model_validate(item).to_json() for item in result.items],
            total=result.total,
            limit=page_size,
            page=page_number,
        )

    async def get_item(self, session: AsyncSession, metric_id: str) -> dict[str, Any]:
        try:
            item = await self.crud.get_by_id(session, metric_id)
        except NotFoundError as exc:
            raise _not_found() from exc
        except StorageError as exc:
            raise _storage_failure(exc) from exc
        return MetricRead.model_validate(item).to_json()

    async def create_item(self, session: AsyncSession, payload: Any) -> dict[str, Any]:
        try:
            request = parse_request(CreateMetricRequest, payload)
            request.validate_for(self.config)
        except MetricValidationError as exc:
            raise _bad_request(exc) from exc

        metric_id = uuid4()
        metric = Metric(
            id=metric_id,
            resource=request.resource,
            resource_id=UUID(request.resource_id),
            key=request.key,
            value=request.value,
        )
        try:
            await self.crud.create(session, metric)
        except StorageError as exc:
            raise _storage_failure(exc) from exc
        logger.info(
            "metric_created id=%s resource=%s key=%s", metric_id, request.resource, request.key
        )

        try:
            created = await self.crud.get_by_id(session, metric_id)
        except (NotFoundError, StorageError) as exc:
            logger.warning("metric_reread_failed id=%s error=%s", metric_id, exc)
            return MetricRead(
                id=metric_id,
                resource=request.resource,
                resource_id=UUID(request.resource_id),
                key=request.key,
                value=request.value,
            ).to_json()
        return MetricRead.model_validate(created).to_json()

    async def update_item(self, session: AsyncSession, metric_id: str, payload: Any) -> dict[str, Any]:
        try:
            request = parse_request(UpdateMetricRequest, payload)
            request.validate_for(self.config)
        except MetricValidationError as exc:
            raise _bad_request(exc) from exc

        try:
            existing = await self.crud.get_by_id(session, metric_id)
        except NotFoundError as exc:
            raise _not_found() from exc
        except StorageError as exc:
            raise _storage_failure(exc) from exc

        existing.value = request.value
        updated = MetricRead.model_validate(existing).to_json()
        try:
            await self.crud.update(session, existing)
        except StorageError as exc:
            raise _storage_failure(exc) from exc
        return updated

    async def delete_item(self, session: AsyncSession, metric_id: str) -> None:
        try:
            await self.crud.delete(session, metric_id)
        except StorageError as exc:
            raise _storage_failure(exc) from exc
        logger.info("metric_deleted id=%s", metric_id)

    def build_router(self) -> APIRouter:
        """Wire the five operations onto an APIRouter mounted at /metrics."""

        router = APIRouter(prefix="/metrics", tags=["Metrics"])
        get_session = session_dependency(self.session_factory)

        @router.get("")
        async def list_metrics(
            request: Request,
            session: AsyncSession = Depends(get_session),
            limit: str | None = Query(default=None),
            page: str | None = Query(default=None),
            count: str = Query(default="true"),
        ) -> dict[str, Any]:
            return await self.list_items(
                session,
                request.query_params.multi_items(),
                limit=limit,
                page=page,
                count=count,
            )

        @router.get("/{metric_id}")
        async def get_metric(
            metric_id: str,
            session: AsyncSession = Depends(get_session),
        ) -> dict[str, Any]:
            return await self.get_item(session, metric_id)

        @router.post("", status_code=status.HTTP_201_CREATED)
        async def create_metric(
            payload: Any = Body(default=None),
            session: AsyncSession = Depends(get_session),
        ) -> dict[str, Any]:
            return await self.create_item(session, payload)

        @router.put("/{metric_id}")
        async def update_metric(
            metric_id: str,
            payload: Any = Body(default=None),
            session: AsyncSession = Depends(get_session),
        ) -> dict[str, Any]:
            return await self.update_item(session, metric_id, payload)

        @router.delete("/{metric_id}", status_code=status.HTTP_204_NO_CONTENT)
        async def delete_metric(
            metric_id: str,
            session: AsyncSession = Depends(get_session),
        ) -> Response:
            await self.delete_item(session, metric_id)
            return Response(status_code=status.HTTP_204_NO_CONTENT)

        return router
