"""Plugin adapter exposing metrics as a pluggable host resource."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
import logging
from pathlib import Path
from typing import Any, Protocol

from fastapi import FastAPI
from pydantic import BaseModel

from resource_metrics.config import MetricsConfig
from resource_metrics.resources import MetricResource
from resource_metrics.validation import CreateMetricRequest, MetricRead, UpdateMetricRequest

MIGRATIONS_DIR = Path(__file__).resolve().parent / "migrations"

logger = logging.getLogger("resource_metrics.plugin")


@dataclass(frozen=True, slots=True)
class MigrationSource:
    """Alembic locations a host merges into its own migration environment."""

    name: str
    script_location: str
    version_locations: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class OpenAPIResource:
    """Descriptor used by hosts to document a plugin-provided resource."""

    name: str
    plural_name: str
    base_path: str
    response_model: type[BaseModel]
    create_model: type[BaseModel]
    update_model: type[BaseModel]
    description: str
    tags: list[str] = field(default_factory=list)


class ResourcePlugin(Protocol):
    """Capabilities every resource plugin offers to the host."""

    def name(self) -> str:
        """Unique plugin name."""

    def dependencies(self) -> list[str]:
        """Names of plugins that must be initialized first."""

    def initialize(self, config: MetricsConfig | Mapping[str, Any]) -> None:
        """Ingest and validate configuration."""

    def setup_endpoints(self, app: FastAPI) -> None:
        """Register HTTP routes on the host application."""

    def migration_source(self) -> MigrationSource:
        """Describe where the plugin's schema migrations live."""


class PluginState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"
    REGISTERED = "registered"


class MetricsPlugin:
    """Integer counters for polymorphic resources, mounted at /metrics."""

    def __init__(self, *, strict_config: bool = False) -> None:
        self.strict_config = strict_config
        self.state = PluginState.UNINITIALIZED
        self._config: MetricsConfig | None = None

    @property
    def config(self) -> MetricsConfig:
        if self._config is None:
            raise RuntimeError("metrics plugin is not initialized")
        return self._config

    def name(self) -> str:
        return "metrics"

    def dependencies(self) -> list[str]:
        return []

    def migration_dependencies(self) -> list[str]:
        return []

    def initialize(self, config: MetricsConfig | Mapping[str, Any]) -> None:
        """
        Build and validate the plugin configuration.

        A MetricsConfig is used as-is; a mapping is overlaid onto the defaults
        (strictly when the plugin was created with strict_config=True).

        Raises:
            ConfigError: when the resulting configuration is invalid.
            RuntimeError: when endpoints are already registered.
        """

        if self.state is PluginState.REGISTERED:
            raise RuntimeError("metrics plugin endpoints are already registered")

        if isinstance(config, MetricsConfig):
            candidate = config
        else:
            candidate = MetricsConfig.from_mapping(config, strict=self.strict_config)
        candidate.validate()

        self._config = candidate
        self.state = PluginState.INITIALIZED
        logger.info(
            "plugin_initialized name=%s allowed_types=%s strict=%s",
            self.name(),
            ",".join(candidate.allowed_types),
            self.strict_config,
        )

    def setup_endpoints(self, app: FastAPI) -> None:
        if self.state is PluginState.UNINITIALIZED:
            raise RuntimeError("metrics plugin must be initialized before registering endpoints")
        if self.state is PluginState.REGISTERED:
            return

        config = self.config
        if config.database is None:
            logger.warning("plugin_endpoints_skipped name=%s reason=no_database", self.name())
            return

        resource = MetricResource(config, config.database)
        app.include_router(resource.build_router())
        self.state = PluginState.REGISTERED
        logger.info("plugin_endpoints_registered name=%s base_path=/metrics", self.name())

    def migration_source(self) -> MigrationSource:
        return MigrationSource(
            name="resource-metrics",
            script_location=str(MIGRATIONS_DIR),
            version_locations=(str(MIGRATIONS_DIR / "versions"),),
        )

    def openapi_resources(self) -> list[OpenAPIResource]:
        return [
            OpenAPIResource(
                name="metric",
                plural_name="metrics",
                base_path="/metrics",
                tags=["Metrics"],
                response_model=MetricRead,
                create_model=CreateMetricRequest,
                update_model=UpdateMetricRequest,
                description="Integer metrics tracking for polymorphic resources",
            )
        ]


def new_plugin(*, strict_config: bool = False) -> ResourcePlugin:
    return MetricsPlugin(strict_config=strict_config)
