"""
Request DTOs for link management endpoints.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, field_validator

from shared.validators import validate_url


class CreateLinkRequest(BaseModel):
    """Request body for POST /me/urls."""

    model_config = ConfigDict(populate_by_name=True)

    url: str

    @field_validator("url")
    @classmethod
    def _valid_url(cls, v: str) -> str:
        v = v.strip()
        if not validate_url(v):
            raise ValueError("Enter a valid http(s) URL")
        return v
