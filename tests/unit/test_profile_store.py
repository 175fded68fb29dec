"""Unit tests for the user profile store."""

import logging

import pytest

from knoweat.models.restriction import TagCategory
from knoweat.services.profile_store import STORAGE_KEY, ProfileStore
from knoweat.services.store import InMemoryKeyValueStore, StoreError
from tests.factories import create_profile


class ReadOnlyStore(InMemoryKeyValueStore):
    def set(self, key, value):
        raise StoreError("read-only")


class TestProfileStore:
    def test_no_profile_before_onboarding(self, profile_store):
        assert profile_store.profile is None
        assert not profile_store.has_completed_onboarding

    def test_save_and_reload(self, kv_backend, profile_store):
        profile = create_profile(allergens={"sesame"}, native_language="Italiano")

        profile_store.save(profile)

        assert profile_store.has_completed_onboarding
        assert ProfileStore(kv_backend).profile == profile

    def test_profile_returns_a_copy(self, profile_store):
        profile_store.save(create_profile())

        profile_store.profile.allergen_ids.add("peanuts")

        assert profile_store.profile.allergen_ids == set()

    def test_save_copies_its_argument(self, profile_store):
        profile = create_profile()
        profile_store.save(profile)

        profile.diet_ids.add("vegan")

        assert profile_store.profile.diet_ids == set()

    def test_edit_commits_on_exit(self, kv_backend, profile_store):
        profile_store.save(create_profile())

        with profile_store.edit() as draft:
            draft.toggle("gluten", TagCategory.ALLERGEN)
            draft.toggle("celiac", TagCategory.CONDITION)
            draft.native_language = "Español"

        stored = ProfileStore(kv_backend).profile
        assert stored.allergen_ids == {"gluten"}
        assert stored.condition_ids == {"celiac"}
        assert stored.native_language == "Español"

    def test_edit_discarded_on_error(self, profile_store):
        profile_store.save(create_profile())

        with pytest.raises(RuntimeError):
            with profile_store.edit() as draft:
                draft.toggle("gluten", TagCategory.ALLERGEN)
                raise RuntimeError("abort")

        assert profile_store.profile.allergen_ids == set()

    def test_edit_without_profile(self, profile_store):
        with pytest.raises(LookupError):
            with profile_store.edit():
                pass

    def test_clear(self, kv_backend, profile_store):
        profile_store.save(create_profile())

        profile_store.clear()

        assert profile_store.profile is None
        assert kv_backend.get(STORAGE_KEY) is None


class TestSoftFailures:
    def test_corrupt_profile_treated_as_absent(self, kv_backend, caplog):
        kv_backend.set(STORAGE_KEY, '{"nativeLanguage": "English"}')

        with caplog.at_level(logging.WARNING):
            store = ProfileStore(kv_backend)

        assert store.profile is None
        assert "Could not load user profile" in caplog.text

    def test_write_failure_keeps_in_memory_state(self, caplog):
        store = ProfileStore(ReadOnlyStore())

        with caplog.at_level(logging.WARNING):
            store.save(create_profile(allergens={"soy"}))

        assert store.profile.allergen_ids == {"soy"}
        assert "Could not persist user profile" in caplog.text
