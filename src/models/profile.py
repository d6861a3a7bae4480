"""Profile models for the TinyDates service."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Gender(str, Enum):
    """
    Gender enumeration.

    Represents the gender category of a profile.
    """

    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class ProfileFields(BaseModel):
    """
    Profile fields model.

    Everything a profile holds except its id, which the store assigns on insert.
    """

    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1, description="Credential secret, stored as given")
    name: str
    gender: Gender
    age: int = Field(..., ge=0)
    location: int = Field(..., ge=0, description="Scalar position on a 1-D axis, used as a distance proxy")

    model_config = ConfigDict(from_attributes=True)


class Profile(ProfileFields):
    """
    Profile model.

    A registered profile as persisted by the repository. Profiles are immutable
    once created.
    """

    id: int

    model_config = ConfigDict(from_attributes=True, frozen=True)
