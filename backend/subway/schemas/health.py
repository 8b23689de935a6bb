"""Health check schemas."""

from pydantic import BaseModel


class HealthResponse(BaseModel):
    """Health and readiness check response."""

    status: str


class RootResponse(BaseModel):
    """Root endpoint response."""

    message: str
    version: str
