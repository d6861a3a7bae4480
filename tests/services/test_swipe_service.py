import threading
from unittest.mock import MagicMock

import pytest
from sqlalchemy.orm import sessionmaker

from src.database.profile_repository import ProfileRepository
from src.models.profile import Gender, ProfileFields
from src.models.swipe import SwipeRecord
from src.services.swipe_service import SwipeLedger
from src.utils.database import Base, create_database_engine
from src.utils.errors import NotFoundError, SelfSwipeError


@pytest.fixture
def ledger(repository):
    return SwipeLedger(repository)


def test_first_favourable_swipe_does_not_match(ledger, make_profile):
    a = make_profile()
    b = make_profile()

    result = ledger.record_swipe(a.id, b.id, True)

    assert result.matched is False
    assert result.match_id is None


def test_second_favourable_swipe_matches(ledger, make_profile):
    a = make_profile()
    b = make_profile()

    ledger.record_swipe(a.id, b.id, True)
    result = ledger.record_swipe(b.id, a.id, True)

    assert result.matched is True
    assert result.match_id is not None


def test_unfavourable_swipe_never_matches(ledger, make_profile):
    a = make_profile()
    b = make_profile()

    ledger.record_swipe(a.id, b.id, True)
    result = ledger.record_swipe(b.id, a.id, False)

    assert result.matched is False
    assert result.match_id is None


def test_unfavourable_reverse_blocks_match(ledger, make_profile):
    a = make_profile()
    b = make_profile()

    ledger.record_swipe(a.id, b.id, False)

    assert ledger.record_swipe(b.id, a.id, True).matched is False


def test_match_id_is_the_completing_swipe():
    repository = MagicMock()
    repository.record_swipe_atomic.return_value = SwipeRecord(id=41, reverse_exists=True)

    result = SwipeLedger(repository).record_swipe(1, 2, True)

    assert result.matched is True
    assert result.match_id == 41
    repository.record_swipe_atomic.assert_called_once_with(1, 2, True)


def test_self_swipe_rejected(ledger, make_profile):
    a = make_profile()

    with pytest.raises(SelfSwipeError):
        ledger.record_swipe(a.id, a.id, True)


def test_swipe_on_unknown_profile(ledger, make_profile):
    a = make_profile()

    with pytest.raises(NotFoundError):
        ledger.record_swipe(a.id, 999, True)


@pytest.mark.parametrize("in_memory", [False, True], ids=["file", "memory"])
def test_concurrent_opposite_swipes_match_exactly_once(tmp_path, in_memory):
    url = "sqlite://" if in_memory else f"sqlite:///{tmp_path / 'swipes.db'}"
    engine = create_database_engine(url)
    Base.metadata.create_all(engine)
    repository = ProfileRepository(sessionmaker(bind=engine, expire_on_commit=False))
    ledger = SwipeLedger(repository)

    try:
        for round_number in range(30):
            a, b = (
                repository.create_profile(
                    ProfileFields(
                        email=f"r{round_number}-{n}@mail.com",
                        password="secret",
                        name=f"r{round_number}-{n}",
                        gender=Gender.OTHER,
                        age=30,
                        location=0,
                    )
                )
                for n in range(2)
            )

            barrier = threading.Barrier(2)
            results = {}
            errors = []

            def swipe(swiper_id, swipee_id):
                try:
                    barrier.wait()
                    results[swiper_id] = ledger.record_swipe(swiper_id, swipee_id, True)
                except Exception as e:
                    errors.append(e)

            threads = [
                threading.Thread(target=swipe, args=(a, b)),
                threading.Thread(target=swipe, args=(b, a)),
            ]
            for thread in threads:
                thread.start()
            for thread in threads:
                thread.join()

            assert errors == []
            matched = [result for result in results.values() if result.matched]
            assert len(matched) == 1
            assert matched[0].match_id is not None
    finally:
        engine.dispose()
