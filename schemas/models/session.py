"""
Session model.

A Session is an immutable snapshot; the session store swaps the whole
object on sign-in and sign-out.
"""

from __future__ import annotations

from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator


class Identity(BaseModel):
    """The signed-in user as reported by the "who am I" endpoint."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    username: str
    display_name: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("display_name", "full_name")
    )


class Session(BaseModel):
    model_config = ConfigDict(frozen=True)

    token: Optional[str] = None
    identity: Optional[Identity] = None

    @model_validator(mode="after")
    def _identity_requires_token(self) -> "Session":
        if self.identity is not None and not self.token:
            raise ValueError("identity cannot be set without a token")
        return self

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token) and self.identity is not None


ANONYMOUS_SESSION = Session()
