"""Random identifier and profile generation for the TinyDates service."""

import random
import string
from typing import Optional

from src.config import settings
from src.models.profile import Gender, ProfileFields

LETTERS = string.ascii_letters
GENDERS = [Gender.MALE, Gender.FEMALE, Gender.OTHER]
EMAIL_DOMAIN = "mail.com"


class RandomGenerator:
    """
    Source of session tokens and generated profile fields.

    All randomness comes from the injected `random.Random`; pass a seeded
    instance for reproducible output. The default draws from the operating
    system's generator.
    """

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        length: Optional[int] = None,
        max_age: Optional[int] = None,
        max_location: Optional[int] = None,
    ) -> None:
        self._rng = rng or random.SystemRandom()
        self._length = length or settings.TOKEN_LENGTH
        self._max_age = max_age or settings.MAX_GENERATED_AGE
        self._max_location = max_location or settings.MAX_GENERATED_LOCATION

    def random_string(self, n: Optional[int] = None) -> str:
        return "".join(self._rng.choice(LETTERS) for _ in range(n or self._length))

    def token(self) -> str:
        return self.random_string()

    def profile_fields(self) -> ProfileFields:
        """Generate a complete set of profile fields.

        The name doubles as the email's local part; age and location are drawn
        from [0, max_age) and [0, max_location).
        """
        name = self.random_string()
        return ProfileFields(
            email=f"{name}@{EMAIL_DOMAIN}",
            password=self.random_string(),
            name=name,
            gender=self._rng.choice(GENDERS),
            age=self._rng.randrange(self._max_age),
            location=self._rng.randrange(self._max_location),
        )
