"""
Chart-ready analytics model.

TimeBucket is derived from click history on every fetch or granularity
change and never persisted.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class TimeBucket(BaseModel):
    """One point of the click time series: a chronological label and a count."""

    model_config = ConfigDict(frozen=True)

    label: str
    count: int = Field(ge=1)
