"""
Response DTOs for authentication endpoints.

TokenResponse -> POST /login  (200)
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class TokenResponse(BaseModel):
    """Response body for POST /login (200)."""

    model_config = ConfigDict(populate_by_name=True)

    access_token: str
    token_type: str = "bearer"
