"""Pydantic schema for throttled responses."""

from pydantic import BaseModel, Field


class RateLimitExceededResponse(BaseModel):
    """Body returned with HTTP 429."""

    error: str = Field(..., description="Human-readable reason.")
    limit: int = Field(..., description="Requests allowed per window.")
    remaining: int = Field(..., description="Requests left in the window (always 0).")
    reset: int = Field(..., description="Epoch milliseconds when a request will be admitted again.")
