"""Discovery service for the TinyDates service."""

from typing import Iterable, List, Optional, Tuple

import sentry_sdk

from src.database.profile_repository import ProfileRepository
from src.models.discovery import DiscoveryCandidate, DiscoveryFilter, DiscoveryMode
from src.models.profile import Profile
from src.utils.geo import calculate_distance
from src.utils.logging import get_logger

logger = get_logger(__name__)


def rank_by_distance(profiles: Iterable[Profile], requester_location: int) -> List[DiscoveryCandidate]:
    """
    Rank profiles closest first.

    Args:
        profiles (Iterable[Profile]): Candidate profiles.
        requester_location (int): Location of the requesting profile.

    Returns:
        List[DiscoveryCandidate]: Candidates ordered by ascending distance, then ascending id.
    """
    candidates = [
        DiscoveryCandidate(
            id=profile.id,
            name=profile.name,
            gender=profile.gender,
            age=profile.age,
            distance_from_me=calculate_distance(requester_location, profile.location),
        )
        for profile in profiles
    ]
    return sorted(candidates, key=lambda c: (c.distance_from_me, c.id))


def rank_by_popularity(profiles: Iterable[Tuple[Profile, int]]) -> List[DiscoveryCandidate]:
    """
    Rank profiles most popular first.

    Args:
        profiles (Iterable[Tuple[Profile, int]]): Candidate profiles with their popularity.

    Returns:
        List[DiscoveryCandidate]: Candidates ordered by descending popularity, then ascending id.
    """
    candidates = [
        DiscoveryCandidate(
            id=profile.id,
            name=profile.name,
            gender=profile.gender,
            age=profile.age,
            popularity=popularity,
        )
        for profile, popularity in profiles
    ]
    return sorted(candidates, key=lambda c: (-(c.popularity or 0), c.id))


class DiscoveryEngine:
    """Finds and ranks the profiles a requester has not evaluated yet."""

    def __init__(self, repository: ProfileRepository) -> None:
        self._repository = repository

    def discover(
        self, requester_id: int, discovery_filter: Optional[DiscoveryFilter] = None
    ) -> List[DiscoveryCandidate]:
        """
        Discover candidates for a requester.

        The requester and every profile the requester has already swiped on are
        excluded by the repository before any ranking happens.

        Args:
            requester_id (int): Profile id of the requester.
            discovery_filter (Optional[DiscoveryFilter]): Mode to discover in; defaults to distance.

        Returns:
            List[DiscoveryCandidate]: Ranked candidates, empty when there are none.

        Raises:
            NotFoundError: If the requester does not exist.
            BackendUnavailableError: If the repository fails.
        """
        discovery_filter = discovery_filter or DiscoveryFilter()

        with sentry_sdk.start_span(op="discover", name=str(requester_id)) as span:
            span.set_data("mode", discovery_filter.mode.value)

            requester_location = self._repository.get_location(requester_id)

            if discovery_filter.mode == DiscoveryMode.POPULARITY:
                results = rank_by_popularity(self._repository.query_candidates_by_popularity(requester_id))
            else:
                profiles = self._repository.query_candidates(requester_id, discovery_filter.age_range)
                results = rank_by_distance(profiles, requester_location)

            span.set_data("count", len(results))
            logger.debug(
                "Candidates discovered",
                requester_id=requester_id,
                mode=discovery_filter.mode.value,
                count=len(results),
            )
            return results
