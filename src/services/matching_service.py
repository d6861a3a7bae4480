"""Matching service for the TinyDates service.

Composes the session authority, discovery engine and swipe ledger behind the
operations the service exposes.
"""

import hmac
from typing import Optional, Union

import sentry_sdk

from src.database.profile_repository import ProfileRepository
from src.models.discovery import DiscoverResponse, DiscoveryFilter
from src.models.profile import Profile, ProfileFields
from src.models.session import LoginResponse
from src.models.swipe import SwipeResponse
from src.services.discovery_service import DiscoveryEngine
from src.services.swipe_service import SwipeLedger
from src.utils.cache import SessionAuthority
from src.utils.errors import CreateFailedError, InvalidCredentialError, NotFoundError, TinyDatesError, UnauthorizedError
from src.utils.generators import RandomGenerator
from src.utils.logging import get_logger, log_error

logger = get_logger(__name__)


class MatchingService:
    """
    Entry point for profile creation, login, discovery and swiping.

    Discover and swipe are protected: the caller's session token must be
    authorized for the profile the call acts as.
    """

    def __init__(
        self,
        repository: ProfileRepository,
        sessions: SessionAuthority,
        generator: Optional[RandomGenerator] = None,
    ) -> None:
        """
        Initialize the matching service.

        Args:
            repository (ProfileRepository): Profile and swipe store.
            sessions (SessionAuthority): Session token store.
            generator (Optional[RandomGenerator]): Source of tokens and generated profiles.
        """
        self._repository = repository
        self._sessions = sessions
        self._generator = generator or RandomGenerator()
        self._discovery = DiscoveryEngine(repository)
        self._ledger = SwipeLedger(repository)

    def create_profile(self, fields: Optional[ProfileFields] = None) -> Profile:
        """
        Create and store a new profile.

        Args:
            fields (Optional[ProfileFields]): Fields to store; randomly generated when omitted.

        Returns:
            Profile: The stored profile, including its secret.

        Raises:
            CreateFailedError: If the profile could not be stored, whatever the underlying cause.
        """
        with sentry_sdk.start_span(op="profile.create", name="profile"):
            fields = fields or self._generator.profile_fields()
            try:
                profile_id = self._repository.create_profile(fields)
                return self._repository.get_profile(profile_id)
            except TinyDatesError as e:
                log_error(logger, e, "Failed to create profile")
                raise CreateFailedError() from e

    def login(self, email: str, password: str) -> LoginResponse:
        """
        Log a profile in by starting a new session.

        Args:
            email (str): Profile email.
            password (str): Profile secret.

        Returns:
            LoginResponse: The new session token.

        Raises:
            InvalidCredentialError: If the email is unknown or the secret does not match.
            BackendUnavailableError: If the repository or session store fails.
        """
        with sentry_sdk.start_span(op="session.login", name="login"):
            try:
                stored_password = self._repository.get_secret(email)
                profile_id = self._repository.get_profile_id(email)
            except NotFoundError as e:
                logger.info("Login failed", reason="unknown_email")
                raise InvalidCredentialError() from e

            if not hmac.compare_digest(stored_password.encode(), password.encode()):
                logger.info("Login failed", reason="wrong_password", profile_id=profile_id)
                raise InvalidCredentialError()

            token = self._generator.token()
            self._sessions.start_session(token, profile_id)

            logger.info("Profile logged in", profile_id=profile_id)
            return LoginResponse(token=token)

    def logout(self, token: str) -> None:
        """
        End a session. Ending an unknown session is not an error.

        Raises:
            BackendUnavailableError: If the session store fails.
        """
        self._sessions.end_session(token)
        logger.info("Session ended")

    def discover(
        self,
        requester_id: int,
        token: str,
        min_age: Union[str, int, None] = None,
        max_age: Union[str, int, None] = None,
        order_by_popularity: bool = False,
    ) -> DiscoverResponse:
        """
        Discover candidates for the requester.

        Args:
            requester_id (int): Profile id of the requester.
            token (str): Session token issued to the requester.
            min_age (Union[str, int, None]): Lower age bound as received, or None.
            max_age (Union[str, int, None]): Upper age bound as received, or None.
            order_by_popularity (bool): Rank by popularity instead of distance.

        Returns:
            DiscoverResponse: Ranked candidates.

        Raises:
            UnauthorizedError: If the token is not authorized for the requester.
            ValidationError: If the filter parameters are incomplete, malformed, inverted or conflicting.
            NotFoundError: If the requester does not exist.
            BackendUnavailableError: If the repository fails.
        """
        if not self._sessions.authorized(token, requester_id):
            logger.info("Unauthorized discover", requester_id=requester_id)
            raise UnauthorizedError(details={"profile_id": requester_id})

        discovery_filter = DiscoveryFilter.from_params(min_age, max_age, order_by_popularity)
        return DiscoverResponse(results=self._discovery.discover(requester_id, discovery_filter))

    def swipe(self, token: str, swiper_id: int, swipee_id: int, decision: bool) -> SwipeResponse:
        """
        Record a swipe by the token's profile.

        Args:
            token (str): Session token issued to the swiper.
            swiper_id (int): Profile id of the swiper.
            swipee_id (int): Profile id of the swipee.
            decision (bool): True for a favourable swipe.

        Returns:
            SwipeResponse: Whether the swipe matched and, if so, the match id.

        Raises:
            UnauthorizedError: If the token is not authorized for the swiper.
            SelfSwipeError: If the swiper and swipee are the same profile.
            NotFoundError: If either profile does not exist.
            BackendUnavailableError: If the repository fails.
        """
        if not self._sessions.authorized(token, swiper_id):
            logger.info("Unauthorized swipe", swiper_id=swiper_id)
            raise UnauthorizedError(details={"profile_id": swiper_id})

        result = self._ledger.record_swipe(swiper_id, swipee_id, decision)
        return SwipeResponse(matched=result.matched, match_id=result.match_id)
