"""FastAPI host application embedding the metrics plugin."""

from datetime import datetime, timezone
import logging
from time import monotonic
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from resource_metrics.config import Settings, get_settings
from resource_metrics.database import (
    build_engine,
    build_session_factory,
    run_health_query,
    session_dependency,
)
from resource_metrics.plugin import MetricsPlugin

request_logger = logging.getLogger("resource_metrics.request")


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the app, wiring the metrics plugin to the configured database."""

    settings = settings or get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    engine = build_engine(settings)
    session_factory = build_session_factory(engine)
    get_db_session = session_dependency(session_factory)

    app = FastAPI(title=settings.app_name, version=settings.app_version)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = session_factory

    plugin = MetricsPlugin()
    plugin.initialize(settings.metrics_config(database=session_factory))
    plugin.setup_endpoints(app)
    app.state.metrics_plugin = plugin

    @app.middleware("http")
    async def request_logging_middleware(request: Request, call_next: Any) -> Response:
        started = monotonic()
        method = request.method.upper()
        path = request.url.path
        try:
            response = await call_next(request)
        except Exception:
            request_logger.exception(
                "request method=%s path=%s status=%s latency_ms=%s",
                method,
                path,
                500,
                int((monotonic() - started) * 1000),
            )
            raise

        request_logger.info(
            "request method=%s path=%s status=%s latency_ms=%s",
            method,
            path,
            response.status_code,
            int((monotonic() - started) * 1000),
        )
        return response

    @app.on_event("shutdown")
    async def shutdown_event() -> None:
        await engine.dispose()

    @app.get("/health/db", tags=["health"])
    async def database_health_check(
        session: AsyncSession = Depends(get_db_session),
    ) -> dict[str, str]:
        try:
            await run_health_query(session)
        except Exception as exc:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Database is unavailable",
            ) from exc

        return {
            "status": "healthy",
            "database": "ok",
            "checked_at": datetime.now(tz=timezone.utc).isoformat(),
        }

    return app


app = create_app()
