"""On-disk representation of the rate table."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, StrictInt


class RateTableDocument(BaseModel):
    """JSON document stored by the file backend.

    ``entries`` maps the compact client digest to the epoch second the client
    was last admitted.
    """

    version: Literal[1] = 1
    entries: dict[str, StrictInt] = Field(default_factory=dict)
