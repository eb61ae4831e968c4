"""Shared API schemas."""

from .base import CustomBase
from .problem_details import (
    ProblemDetail,
    ValidationError,
    ValidationProblemDetail,
)

__all__ = [
    "CustomBase",
    "ProblemDetail",
    "ValidationError",
    "ValidationProblemDetail",
]
