from __future__ import annotations

from pydantic import BaseModel, Field


class TrafficCheckResponse(BaseModel):
    """Response of an admitted traffic check."""

    allowed: bool = Field(..., description="Always true; denied requests receive HTTP 429")
    client_id: str = Field(
        ...,
        description="Keyed sha512 digest of the client address, for log correlation",
    )
