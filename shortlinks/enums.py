"""Shared enums for the redirect service.

This module defines all status and namespace enums used across the codebase.
Using enums instead of string literals provides type safety and prevents typos.
"""

from enum import StrEnum

__all__ = ["HealthStatus", "RequestStatus", "Namespace", "AdminOperation"]


class HealthStatus(StrEnum):
    """Health check status values."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


class RequestStatus(StrEnum):
    """Request status values for metrics and logging."""

    SUCCESS = "success"
    VALIDATION_ERROR = "validation_error"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    CORRUPTED = "corrupted"
    ERROR = "error"


class Namespace(StrEnum):
    """Logical key-value namespaces, each mapped to a Redis key prefix."""

    RECORDS = "records"
    COUNTERS = "counters"
    INDEXES = "indexes"


class AdminOperation(StrEnum):
    """Admin operations, used as a metrics label."""

    CREATE = "create"
    UPDATE = "update"
    RENAME = "rename"
    DELETE = "delete"
