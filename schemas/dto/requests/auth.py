"""
Request DTOs for authentication endpoints.

LoginRequest     -> POST /login     (form-encoded)
RegisterRequest  -> POST /register  (JSON)
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class LoginRequest(BaseModel):
    """Form body for POST /login."""

    model_config = ConfigDict(populate_by_name=True)

    username: str = Field(min_length=1)
    password: str = Field(min_length=1)


class RegisterRequest(BaseModel):
    """Request body for POST /register.

    ``display_name`` goes over the wire as ``full_name``.
    """

    model_config = ConfigDict(populate_by_name=True)

    username: str = Field(min_length=1)
    password: str = Field(min_length=1)
    display_name: Optional[str] = Field(default=None, serialization_alias="full_name")
