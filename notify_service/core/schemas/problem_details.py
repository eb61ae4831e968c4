"""RFC 7807 Problem Details schemas for error responses."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ProblemDetail(BaseModel):
    """RFC 7807 Problem Details for HTTP APIs.

    See: https://datatracker.ietf.org/doc/html/rfc7807
    """

    type: str = Field(
        default="about:blank",
        min_length=1,
        max_length=200,
        description="URI reference identifying the problem type",
    )
    title: str = Field(
        min_length=1, max_length=200, description="Short, human-readable summary of the problem"
    )
    status: int = Field(ge=100, le=599, description="HTTP status code")
    detail: str | None = Field(
        default=None,
        max_length=2000,
        description="Human-readable explanation specific to this occurrence",
    )
    instance: str | None = Field(
        default=None,
        max_length=500,
        description="URI reference identifying the specific occurrence",
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "type": "notification-not-found",
                "title": "Not Found",
                "status": 404,
                "detail": 'Notification with ID "0191..." not found.',
                "instance": "/api/v1/admin/notifications/0191.../retry",
            }
        },
    )


class ValidationError(BaseModel):
    """One field-level validation failure."""

    field: str = Field(description="Dotted path of the invalid field")
    message: str = Field(description="Validation message")
    type: str = Field(description="Validation error type")
    value: Any | None = Field(default=None, description="Rejected input")


class ValidationProblemDetail(ProblemDetail):
    """Problem detail carrying field-level validation errors."""

    errors: list[ValidationError] = Field(default_factory=list)
