"""Swipe models for the TinyDates service."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class SwipeRecord(BaseModel):
    """
    Result of persisting a swipe decision.

    `reverse_exists` reports whether the swipee had already swiped favourably on
    the swiper when this decision was written.
    """

    id: int
    reverse_exists: bool

    model_config = ConfigDict(frozen=True)


class SwipeResult(BaseModel):
    """Outcome of a swipe as seen by the swiper."""

    matched: bool
    match_id: Optional[int] = None

    model_config = ConfigDict(frozen=True)


class SwipeRequest(BaseModel):
    """A swipe submitted by a client."""

    swiper_id: int
    swipee_id: int
    decision: bool = Field(..., description="True for a favourable swipe")

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SwipeResponse(BaseModel):
    """Swipe response returned to a client; `matchId` is only present on a match."""

    matched: bool
    match_id: Optional[int] = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
