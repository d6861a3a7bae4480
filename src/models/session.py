"""Session models for the TinyDates service."""

from pydantic import BaseModel, ConfigDict


class LoginRequest(BaseModel):
    """Login credentials submitted by a client."""

    email: str
    password: str


class LoginResponse(BaseModel):
    """Login response carrying the new session token."""

    token: str

    model_config = ConfigDict(frozen=True)
