"""
User profile store.

Persistence is explicit: callers either save() a whole profile or batch
several edits inside edit(), which commits once when the block exits.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Iterator, Optional

from pydantic import ValidationError

from knoweat.models.profile import UserProfile
from knoweat.services.store import KeyValueStore, StoreError

logger = logging.getLogger(__name__)

STORAGE_KEY = "user_profile"


class ProfileStore:
    def __init__(self, backend: KeyValueStore):
        self._backend = backend
        self._lock = threading.RLock()
        self._profile: Optional[UserProfile] = self._load()

    @property
    def profile(self) -> Optional[UserProfile]:
        """A copy of the current profile, or None before onboarding."""
        with self._lock:
            return self._profile.model_copy(deep=True) if self._profile else None

    @property
    def has_completed_onboarding(self) -> bool:
        return self._profile is not None

    def save(self, profile: UserProfile) -> None:
        """Replace the stored profile (last write wins)."""
        with self._lock:
            self._profile = profile.model_copy(deep=True)
            self._persist()

    @contextmanager
    def edit(self) -> Iterator[UserProfile]:
        """
        Edit the profile as one transaction.

        Yields a working copy; it is saved once if the block exits normally
        and discarded if the block raises.

        Raises:
            LookupError: No profile exists yet (onboarding not completed)
        """
        with self._lock:
            if self._profile is None:
                raise LookupError("No user profile to edit")
            draft = self._profile.model_copy(deep=True)
            yield draft
            self._profile = draft
            self._persist()

    def clear(self) -> None:
        with self._lock:
            self._profile = None
            try:
                self._backend.delete(STORAGE_KEY)
            except StoreError as e:
                logger.warning("Could not delete stored profile: %s", e)

    def _load(self) -> Optional[UserProfile]:
        try:
            raw = self._backend.get(STORAGE_KEY)
            if raw is None:
                return None
            return UserProfile.model_validate_json(raw)
        except (StoreError, ValidationError) as e:
            logger.warning("Could not load user profile: %s", e)
            return None

    def _persist(self) -> None:
        try:
            raw = self._profile.model_dump_json(by_alias=True)
            self._backend.set(STORAGE_KEY, raw)
        except (StoreError, ValueError) as e:
            logger.warning("Could not persist user profile: %s", e)
