"""Profile and swipe persistence for the TinyDates service."""

from typing import List, Optional, Tuple

import sentry_sdk
from sqlalchemy import Select, distinct, func, select
from sqlalchemy.orm import Session, sessionmaker

from src.models.discovery import AgeRange
from src.models.profile import Profile, ProfileFields
from src.models.swipe import SwipeRecord
from src.utils.database import SQLITE_WRITE_LOCK, ProfileDB, SwipeDB, database_errors
from src.utils.errors import NotFoundError
from src.utils.logging import get_logger

logger = get_logger(__name__)


def _swiped_ids(requester_id: int) -> Select[Tuple[int]]:
    """Subquery of every profile id the requester has already swiped on."""
    return select(SwipeDB.swipee_id).where(SwipeDB.swiper_id == requester_id)


class ProfileRepository:
    """
    SQLAlchemy-backed store for profiles and swipe decisions.

    Each call opens its own session and transaction, so one repository instance
    can be shared between concurrently running operations.
    """

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def create_profile(self, fields: ProfileFields) -> int:
        """Insert a new profile.

        Args:
            fields: Profile fields to store.

        Returns:
            The id assigned to the profile.

        Raises:
            DatabaseError: If the insert fails, e.g. on a duplicate email.
        """
        with sentry_sdk.start_span(op="db.profile.create", name=fields.email):
            with database_errors("create_profile", email=fields.email):
                with self._session_factory() as session, session.begin():
                    profile = ProfileDB(**fields.model_dump(mode="json"))
                    session.add(profile)
                    session.flush()
                    profile_id = profile.id

        logger.info("Profile created", profile_id=profile_id)
        return profile_id

    def get_profile(self, profile_id: int) -> Profile:
        """Get a profile by id.

        Raises:
            NotFoundError: If no profile has the id.
        """
        with database_errors("get_profile", profile_id=profile_id):
            with self._session_factory() as session:
                row = session.get(ProfileDB, profile_id)
                if row is None:
                    raise NotFoundError(f"Profile not found: {profile_id}", details={"profile_id": profile_id})
                return Profile.model_validate(row)

    def get_secret(self, email: str) -> str:
        """Get the stored secret for an email.

        Raises:
            NotFoundError: If no profile has the email.
        """
        with database_errors("get_secret"):
            with self._session_factory() as session:
                secret = session.scalar(select(ProfileDB.password).where(ProfileDB.email == email))
        if secret is None:
            raise NotFoundError("Profile not found for email")
        return secret

    def get_profile_id(self, email: str) -> int:
        """Get the id of the profile registered with an email.

        Raises:
            NotFoundError: If no profile has the email.
        """
        with database_errors("get_profile_id"):
            with self._session_factory() as session:
                profile_id = session.scalar(select(ProfileDB.id).where(ProfileDB.email == email))
        if profile_id is None:
            raise NotFoundError("Profile not found for email")
        return profile_id

    def get_location(self, profile_id: int) -> int:
        """Get a profile's location.

        Raises:
            NotFoundError: If no profile has the id.
        """
        with database_errors("get_location", profile_id=profile_id):
            with self._session_factory() as session:
                location = session.scalar(select(ProfileDB.location).where(ProfileDB.id == profile_id))
        if location is None:
            raise NotFoundError(f"Profile not found: {profile_id}", details={"profile_id": profile_id})
        return location

    def query_candidates(self, requester_id: int, age_range: Optional[AgeRange] = None) -> List[Profile]:
        """
        Get every profile the requester may be shown.

        Excludes the requester and every profile the requester has already
        swiped on. Results come back in ascending id order.

        Args:
            requester_id (int): Profile id of the requester.
            age_range (Optional[AgeRange]): Inclusive age bounds to apply.

        Returns:
            List[Profile]: Candidate profiles.
        """
        with sentry_sdk.start_span(op="db.profile.candidates", name=str(requester_id)) as span:
            stmt = select(ProfileDB).where(
                ProfileDB.id != requester_id,
                ProfileDB.id.not_in(_swiped_ids(requester_id)),
            )
            if age_range is not None:
                stmt = stmt.where(ProfileDB.age.between(age_range.min_age, age_range.max_age))
                span.set_data("age_range", [age_range.min_age, age_range.max_age])

            with database_errors("query_candidates", requester_id=requester_id):
                with self._session_factory() as session:
                    rows = session.scalars(stmt.order_by(ProfileDB.id)).all()
                    candidates = [Profile.model_validate(row) for row in rows]

            span.set_data("count", len(candidates))
            return candidates

    def query_candidates_by_popularity(self, requester_id: int) -> List[Tuple[Profile, int]]:
        """
        Get every profile the requester may be shown, with its popularity.

        Popularity is the number of distinct profiles that swiped favourably on
        the candidate. Exclusions are the same as `query_candidates`.

        Args:
            requester_id (int): Profile id of the requester.

        Returns:
            List[Tuple[Profile, int]]: Candidate profiles paired with their popularity.
        """
        with sentry_sdk.start_span(op="db.profile.candidates_by_popularity", name=str(requester_id)) as span:
            popularity = func.count(distinct(SwipeDB.swiper_id))
            stmt = (
                select(ProfileDB, popularity)
                .outerjoin(SwipeDB, (SwipeDB.swipee_id == ProfileDB.id) & SwipeDB.decision.is_(True))
                .where(
                    ProfileDB.id != requester_id,
                    ProfileDB.id.not_in(_swiped_ids(requester_id)),
                )
                .group_by(ProfileDB.id)
                .order_by(ProfileDB.id)
            )

            with database_errors("query_candidates_by_popularity", requester_id=requester_id):
                with self._session_factory() as session:
                    rows = session.execute(stmt).all()
                    candidates = [(Profile.model_validate(row), int(count)) for row, count in rows]

            span.set_data("count", len(candidates))
            return candidates

    def record_swipe_atomic(self, swiper_id: int, swipee_id: int, decision: bool) -> SwipeRecord:
        """
        Persist a swipe and check for the reverse favourable swipe in one transaction.

        Transactions on the same pair of profiles are serialised, so of two
        concurrent opposite swipes the one that commits second always sees the
        first.

        Args:
            swiper_id (int): Profile id of the swiper.
            swipee_id (int): Profile id of the swipee.
            decision (bool): True for a favourable swipe.

        Returns:
            SwipeRecord: Id of the new decision and whether a favourable reverse decision exists.

        Raises:
            NotFoundError: If either profile does not exist.
            DatabaseError: If the transaction fails.
        """
        with sentry_sdk.start_span(op="db.swipe.record", name=f"{swiper_id} -> {swipee_id}") as span:
            with database_errors("record_swipe", swiper_id=swiper_id, swipee_id=swipee_id):
                with self._session_factory() as session, session.begin():
                    self._lock_pair(session, swiper_id, swipee_id)

                    found = set(
                        session.scalars(select(ProfileDB.id).where(ProfileDB.id.in_([swiper_id, swipee_id]))).all()
                    )
                    missing = sorted({swiper_id, swipee_id} - found)
                    if missing:
                        raise NotFoundError(f"Profile not found: {missing[0]}", details={"profile_ids": missing})

                    swipe = SwipeDB(swiper_id=swiper_id, swipee_id=swipee_id, decision=decision)
                    session.add(swipe)
                    session.flush()

                    reverse_id = session.scalar(
                        select(SwipeDB.id)
                        .where(
                            SwipeDB.swiper_id == swipee_id,
                            SwipeDB.swipee_id == swiper_id,
                            SwipeDB.decision.is_(True),
                        )
                        .limit(1)
                    )
                    record = SwipeRecord(id=swipe.id, reverse_exists=reverse_id is not None)

            span.set_data("reverse_exists", record.reverse_exists)
            logger.debug(
                "Swipe recorded",
                swipe_id=record.id,
                swiper_id=swiper_id,
                swipee_id=swipee_id,
                decision=decision,
                reverse_exists=record.reverse_exists,
            )
            return record

    @staticmethod
    def _lock_pair(session: Session, first_id: int, second_id: int) -> None:
        """Serialise swipe transactions on an unordered pair of profiles.

        PostgreSQL takes a transaction-scoped advisory lock on the pair; SQLite
        begins the transaction with BEGIN IMMEDIATE, holding the database write
        lock until commit.
        """
        dialect = session.get_bind().dialect.name
        if dialect == "sqlite":
            session.connection(execution_options={SQLITE_WRITE_LOCK: True})
        elif dialect == "postgresql":
            low, high = sorted((first_id, second_id))
            session.execute(select(func.pg_advisory_xact_lock(func.hashtext(f"swipe:{low}:{high}"))))
