from pydantic import BaseModel, Field
from typing import Literal, Optional

Granularity = Literal["auto", "high", "flexible", "low"]

# Preferences that accept lessons of any granularity
MATCH_ALL_GRANULARITIES = ("auto", "flexible")


class UserSetup(BaseModel):
    interests: list[str] = []
    frequency: int = Field(3, ge=1)
    granularity: Granularity = "auto"


class UserUpdate(BaseModel):
    """Partial profile update; only the fields sent are written."""

    interests: Optional[list[str]] = None
    frequency: Optional[int] = Field(None, ge=1)
    granularity: Optional[Granularity] = None
    difficulty: Optional[int] = Field(None, ge=0, le=100)
