"""Models package for the TinyDates service."""

from src.models.discovery import (
    AgeRange,
    DiscoverResponse,
    DiscoveryCandidate,
    DiscoveryFilter,
    DiscoveryMode,
)
from src.models.profile import Gender, Profile, ProfileFields
from src.models.session import LoginRequest, LoginResponse
from src.models.swipe import SwipeRecord, SwipeRequest, SwipeResponse, SwipeResult

__all__ = [
    "AgeRange",
    "DiscoverResponse",
    "DiscoveryCandidate",
    "DiscoveryFilter",
    "DiscoveryMode",
    "Gender",
    "LoginRequest",
    "LoginResponse",
    "Profile",
    "ProfileFields",
    "SwipeRecord",
    "SwipeRequest",
    "SwipeResponse",
    "SwipeResult",
]
