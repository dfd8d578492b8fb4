"""
Short link model.

The API names fields after its own storage (``short``, ``url``,
``redirects``); the client uses descriptive names and accepts either.
"""

from __future__ import annotations

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class ShortLink(BaseModel):
    """A shortened URL owned by the signed-in user."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    code: str = Field(validation_alias=AliasChoices("code", "short"), min_length=1)
    long_url: str = Field(validation_alias=AliasChoices("long_url", "url"))
    click_count: int = Field(
        default=0, ge=0, validation_alias=AliasChoices("click_count", "redirects")
    )
