"""Response models for the relay API."""

from typing import Optional
from pydantic import BaseModel, Field


class APIResponse(BaseModel):
    """Result of a start-VM webhook."""

    success: bool = Field(..., description="Whether every required step succeeded")
    error: Optional[str] = Field(None, description="Upstream failure message")

    def to_body(self) -> dict:
        """JSON body with ``error`` omitted when unset."""
        return self.model_dump(exclude_none=True)
