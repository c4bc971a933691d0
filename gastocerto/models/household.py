"""Household session model."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class HouseholdSession(BaseModel):
    """
    The household a client is currently working in.

    Passed explicitly to the ledger at construction; nothing in the
    engine reads ambient state to find the current household.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    household_id: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Shared household identifier"
    )
    user_id: Optional[str] = Field(
        default=None,
        description="Identity of the user operating this session"
    )
