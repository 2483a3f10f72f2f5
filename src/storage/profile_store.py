"""
Single-user contact profile persistence.

The profile is created with defaults the first time it is read and is
overwritten wholesale on update.
"""

import logging
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from src.config import ProfileDefaults, settings
from src.schemas.profile_schema import Profile
from src.storage.json_store import JsonRecordStore, StorageError

logger = logging.getLogger(__name__)

MIN_NAME_LENGTH = 2
MIN_PHONE_LENGTH = 6


def validate_profile(data: dict[str, Any]) -> Profile:
    """Validate and normalize raw profile input.

    Raises:
        ValueError: With a message naming the offending field.
    """
    name = data.get("name")
    email = data.get("email")
    phone = data.get("phone")

    if not name or not email or not phone:
        raise ValueError("Profile must include name, email, and phone")
    if not isinstance(name, str) or len(name.strip()) < MIN_NAME_LENGTH:
        raise ValueError(f"Name must be at least {MIN_NAME_LENGTH} characters")
    if not isinstance(email, str) or "@" not in email:
        raise ValueError("Please provide a valid email address")
    if not isinstance(phone, str) or len(phone.strip()) < MIN_PHONE_LENGTH:
        raise ValueError(f"Phone must be at least {MIN_PHONE_LENGTH} characters")

    return Profile(
        name=name.strip(),
        email=email.strip().lower(),
        phone=phone.strip(),
    )


class ProfileStore:
    """Reads and writes the profile document."""

    def __init__(
        self, data_dir: Path, defaults: Optional[ProfileDefaults] = None
    ) -> None:
        self._file = JsonRecordStore(Path(data_dir) / "profile.json", default_factory=dict)
        self._defaults = defaults or settings.profile

    def get_profile(self) -> Profile:
        """Return the saved profile, persisting defaults on first read."""
        if not self._file.exists():
            profile = Profile(
                name=self._defaults.name,
                email=self._defaults.email,
                phone=self._defaults.phone,
            )
            self._file.save(profile.model_dump())
            logger.info("Default profile created")
            return profile

        data = self._file.load()
        try:
            return Profile.model_validate(data)
        except ValidationError as exc:
            logger.error("Stored profile is malformed: %s", exc)
            raise StorageError(f"Stored profile is malformed: {exc}") from exc

    def save_profile(self, profile: Profile) -> Profile:
        self._file.save(profile.model_dump())
        logger.info("Profile saved")
        return profile

    def update_profile(self, data: dict[str, Any]) -> Profile:
        """Validate raw input and overwrite the stored profile."""
        return self.save_profile(validate_profile(data))
