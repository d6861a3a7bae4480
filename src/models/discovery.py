"""Discovery models for the TinyDates service."""

import re
from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from src.models.profile import Gender
from src.utils.errors import FilterConflictError, RangeIncompleteError, RangeInvertedError, RangeMalformedError

_INTEGER_PATTERN = re.compile(r"[+-]?\d+")

AgeBound = Union[str, int, None]


class DiscoveryMode(str, Enum):
    """
    Discovery mode enumeration.

    Exactly one mode is honoured per discover call.
    """

    DISTANCE = "distance"  # Default: closest first
    AGE_RANGE = "age_range"  # Inclusive age bounds, then closest first
    POPULARITY = "popularity"  # Most favourable swipes received first


class AgeRange(BaseModel):
    """Inclusive age range."""

    min_age: int
    max_age: int

    @model_validator(mode="after")
    def check_order(self) -> "AgeRange":
        if self.min_age > self.max_age:
            raise RangeInvertedError(details={"min_age": self.min_age, "max_age": self.max_age})
        return self

    model_config = ConfigDict(frozen=True)


def _parse_bound(name: str, value: AgeBound) -> int:
    if isinstance(value, bool):
        raise RangeMalformedError(details={name: value})
    if isinstance(value, int):
        return value
    if not _INTEGER_PATTERN.fullmatch(value):
        raise RangeMalformedError(details={name: value})
    return int(value)


class DiscoveryFilter(BaseModel):
    """
    Discovery filter model.

    Holds the single mode a discover call runs in, plus the age range when the
    mode is `AGE_RANGE`.
    """

    mode: DiscoveryMode = DiscoveryMode.DISTANCE
    age_range: Optional[AgeRange] = None

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_params(
        cls,
        min_age: AgeBound = None,
        max_age: AgeBound = None,
        order_by_popularity: bool = False,
    ) -> "DiscoveryFilter":
        """
        Build a filter from raw caller parameters.

        A bound is "supplied" when it is not None; an empty string counts as a
        supplied but malformed bound.

        Args:
            min_age (AgeBound): Lower age bound as received, or None.
            max_age (AgeBound): Upper age bound as received, or None.
            order_by_popularity (bool): Whether popularity ordering was requested.

        Returns:
            DiscoveryFilter: The validated filter.

        Raises:
            RangeIncompleteError: If only one bound is supplied.
            RangeMalformedError: If a bound is not an integer.
            RangeInvertedError: If min_age is greater than max_age.
            FilterConflictError: If an age range and popularity ordering are both requested.
        """
        min_supplied = min_age is not None
        max_supplied = max_age is not None

        if not min_supplied and not max_supplied:
            if order_by_popularity:
                return cls(mode=DiscoveryMode.POPULARITY)
            return cls()

        if min_supplied != max_supplied:
            raise RangeIncompleteError(details={"min_age": min_age, "max_age": max_age})

        age_range = AgeRange(min_age=_parse_bound("min_age", min_age), max_age=_parse_bound("max_age", max_age))

        if order_by_popularity:
            raise FilterConflictError(details={"min_age": age_range.min_age, "max_age": age_range.max_age})

        return cls(mode=DiscoveryMode.AGE_RANGE, age_range=age_range)


class DiscoveryCandidate(BaseModel):
    """
    Discovery candidate view model.

    A transient projection of a profile with the derived field of the mode it
    was discovered in: `distance_from_me` for distance and age-range discovery,
    `popularity` for popularity discovery.
    """

    id: int
    name: str
    gender: Gender
    age: int
    distance_from_me: Optional[int] = Field(default=None, ge=0)
    popularity: Optional[int] = Field(default=None, ge=0)

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class DiscoverResponse(BaseModel):
    """Discover response returned to a client."""

    results: List[DiscoveryCandidate] = Field(default_factory=list)
