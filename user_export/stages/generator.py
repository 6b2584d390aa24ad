"""
Synthetic user generation backed by Faker.
"""

from __future__ import annotations

from datetime import timezone
from typing import Optional

from faker import Faker

from user_export.domain.models import SyntheticUserRecord


class RecordGenerator:
    """
    Produce one fake user per call.

    Pass `seed` for a reproducible sequence (tests, demos). Without a seed
    Faker draws from its shared random source.
    """

    def __init__(self, seed: Optional[int] = None, locale: str = "en_US") -> None:
        self._faker = Faker(locale)
        if seed is not None:
            self._faker.seed_instance(seed)

    def generate(self) -> SyntheticUserRecord:
        fake = self._faker
        return SyntheticUserRecord(
            user_id=fake.uuid4(),
            username=fake.user_name(),
            email=fake.email(),
            avatar=fake.image_url(),
            password=fake.password(length=12),
            birthdate=fake.date_of_birth(minimum_age=18, maximum_age=80),
            registered_at=fake.date_time_between(start_date="-1y", end_date="now", tzinfo=timezone.utc),
        )


__all__ = ["RecordGenerator"]
