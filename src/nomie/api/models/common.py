"""
Common API models used across different endpoints.
"""

from pydantic import BaseModel, Field
from typing import Any, Dict


class APIError(BaseModel):
    """Error body returned for every failed request."""
    error: str = Field(..., description="Human-readable error message")


class HealthStatus(BaseModel):
    """Health check response."""
    status: str = Field(..., description="Service status")
    version: str = Field(..., description="API version")
    uptime: float = Field(..., description="Uptime in seconds")
    dependencies: Dict[str, str] = Field(..., description="Status of external dependencies")
    stats: Dict[str, Any] = Field(default_factory=dict, description="Per-task model call statistics")
