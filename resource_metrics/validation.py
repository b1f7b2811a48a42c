"""Metric request/response models and payload validation rules."""

from __future__ import annotations

from datetime import datetime
from typing import Any, TypeVar
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from resource_metrics.config import MetricsConfig
from resource_metrics.sanitization import sanitize_json_strings

INVALID_BODY_MESSAGE = "Invalid request body"
# Range of the INTEGER column backing Metric.value.
MIN_METRIC_VALUE = -(2**31)
MAX_METRIC_VALUE = 2**31 - 1

RequestT = TypeVar("RequestT", bound=BaseModel)


class MetricValidationError(ValueError):
    """Client-facing validation failure naming the violated rule."""


def _check_sign(value: int, config: MetricsConfig) -> None:
    if config.only_positive_values and value < 0:
        raise MetricValidationError("value must be positive")


class CreateMetricRequest(BaseModel):
    """Payload for creating a metric."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    resource: str = ""
    resource_id: str = Field(default="", alias="resourceId")
    key: str = ""
    value: int = Field(
        default=0, strict=True, ge=MIN_METRIC_VALUE, le=MAX_METRIC_VALUE
    )

    def validate_for(self, config: MetricsConfig) -> None:
        """
        Apply the create rules in order; the first failure wins.

        The key is trimmed in place before its checks run.

        Raises:
            MetricValidationError: when a rule is violated.
        """

        if not config.is_allowed_type(self.resource):
            raise MetricValidationError("resource type is not allowed")

        try:
            UUID(self.resource_id)
        except ValueError as exc:
            raise MetricValidationError("resourceId must be a valid UUID") from exc

        self.key = self.key.strip()
        if not self.key:
            raise MetricValidationError("key cannot be empty")
        if len(self.key) > config.max_key_length:
            raise MetricValidationError("key exceeds maximum length")

        _check_sign(self.value, config)


class UpdateMetricRequest(BaseModel):
    """Payload for updating a metric; only the value is writable."""

    model_config = ConfigDict(extra="ignore")

    value: int = Field(
        default=0, strict=True, ge=MIN_METRIC_VALUE, le=MAX_METRIC_VALUE
    )

    def validate_for(self, config: MetricsConfig) -> None:
        _check_sign(self.value, config)


class MetricRead(BaseModel):
    """Metric as returned by the API."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    resource: str
    resource_id: UUID = Field(serialization_alias="resourceId")
    key: str
    value: int
    created_at: datetime | None = Field(default=None, serialization_alias="createdAt")

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)


def parse_request(model: type[RequestT], payload: Any) -> RequestT:
    """
    Sanitize and decode a JSON body into a request model.

    Raises:
        MetricValidationError: when the payload cannot be decoded.
    """

    try:
        return model.model_validate(sanitize_json_strings(payload))
    except ValidationError as exc:
        raise MetricValidationError(INVALID_BODY_MESSAGE) from exc
