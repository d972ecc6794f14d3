"""
Qup Backend - Shared Response Schemas
=======================================

What:  Error, health and pagination models shared by every REST router.
Who:   main.py exception handlers (ErrorResponse), routes/health.py
       (HealthResponse) and the list endpoints (PaginationParams).
"""

from typing import Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """
    Standardized error body for all REST errors.

    Example:
        {
            "error": "validation_error",
            "message": "Username must be at least 3 characters",
            "details": {"field": "username"},
            "request_id": "550e8400-e29b-41d4-a716-446655440000"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    uptime_seconds: float = Field(description="Seconds since service started")


class PaginationParams(BaseModel):
    limit: int = Field(default=50, ge=1, le=100, description="Items per page (max 100)")
    offset: int = Field(default=0, ge=0, description="Items to skip")
