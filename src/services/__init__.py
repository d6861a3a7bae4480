"""Services package for the TinyDates service."""

from src.services.discovery_service import DiscoveryEngine, rank_by_distance, rank_by_popularity
from src.services.matching_service import MatchingService
from src.services.swipe_service import SwipeLedger

__all__ = [
    "DiscoveryEngine",
    "MatchingService",
    "SwipeLedger",
    "rank_by_distance",
    "rank_by_popularity",
]
