"""pytest configuration and fixtures."""

import random
from typing import Callable, Iterator

import pytest
from sqlalchemy import Engine
from sqlalchemy.orm import Session, sessionmaker

from src.database.profile_repository import ProfileRepository
from src.models.profile import Gender, Profile, ProfileFields
from src.services.matching_service import MatchingService
from src.utils.cache import InMemorySessionAuthority
from src.utils.database import Base, create_database_engine
from src.utils.generators import RandomGenerator


@pytest.fixture
def engine() -> Iterator[Engine]:
    """In-memory SQLite engine with all tables created."""
    engine = create_database_engine("sqlite://")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, expire_on_commit=False)


@pytest.fixture
def repository(session_factory: sessionmaker[Session]) -> ProfileRepository:
    return ProfileRepository(session_factory)


@pytest.fixture
def sessions() -> InMemorySessionAuthority:
    return InMemorySessionAuthority()


@pytest.fixture
def generator() -> RandomGenerator:
    """Generator seeded for reproducible tokens and profiles."""
    return RandomGenerator(random.Random(1234))


@pytest.fixture
def service(
    repository: ProfileRepository, sessions: InMemorySessionAuthority, generator: RandomGenerator
) -> MatchingService:
    return MatchingService(repository, sessions, generator)


@pytest.fixture
def make_profile(service: MatchingService) -> Callable[..., Profile]:
    """Create profiles with explicit age and location."""
    counter = iter(range(1, 10_000))

    def _make_profile(age: int = 30, location: int = 0, gender: Gender = Gender.OTHER) -> Profile:
        n = next(counter)
        return service.create_profile(
            ProfileFields(
                email=f"user{n}@mail.com",
                password=f"secret{n}",
                name=f"user{n}",
                gender=gender,
                age=age,
                location=location,
            )
        )

    return _make_profile


@pytest.fixture
def login(service: MatchingService) -> Callable[[Profile], str]:
    """Log a profile in and return its session token."""

    def _login(profile: Profile) -> str:
        return service.login(profile.email, profile.password).token

    return _login
