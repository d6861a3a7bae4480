"""Swipe service for the TinyDates service."""

import sentry_sdk

from src.database.profile_repository import ProfileRepository
from src.models.swipe import SwipeResult
from src.utils.errors import SelfSwipeError
from src.utils.logging import get_logger

logger = get_logger(__name__)


class SwipeLedger:
    """Records swipe decisions and detects mutual matches."""

    def __init__(self, repository: ProfileRepository) -> None:
        self._repository = repository

    def record_swipe(self, swiper_id: int, swipee_id: int, decision: bool) -> SwipeResult:
        """
        Record a swipe and report whether it completes a match.

        A swipe is a match only when it is favourable and the swipee has already
        swiped favourably on the swiper. The match is identified by the id of
        the swipe that completed it.

        Args:
            swiper_id (int): Profile id of the swiper.
            swipee_id (int): Profile id of the swipee.
            decision (bool): True for a favourable swipe.

        Returns:
            SwipeResult: Whether the swipe matched and, if so, the match id.

        Raises:
            SelfSwipeError: If a profile swipes on itself.
            NotFoundError: If either profile does not exist.
            BackendUnavailableError: If the repository fails.
        """
        if swiper_id == swipee_id:
            raise SelfSwipeError(details={"profile_id": swiper_id})

        with sentry_sdk.start_span(op="swipe.record", name=f"{swiper_id} -> {swipee_id}") as span:
            record = self._repository.record_swipe_atomic(swiper_id, swipee_id, decision)

            matched = decision and record.reverse_exists
            span.set_data("matched", matched)

            if not matched:
                return SwipeResult(matched=False)

            logger.info("Match created", match_id=record.id, swiper_id=swiper_id, swipee_id=swipee_id)
            return SwipeResult(matched=True, match_id=record.id)
