"""
Test configuration and fixtures for KnowEat.

- In-memory key-value backend behind fresh menu and profile stores
- MockMenuAIService in place of the real Claude client
- TestClient with store and AI service dependency overrides
- Sample image bytes built with Pillow
"""

from typing import Generator

import pytest
from fastapi.testclient import TestClient

from knoweat.api.dependencies import get_ai_service, get_menu_store, get_profile_store
from knoweat.main import app
from knoweat.services.menu_store import MenuStore
from knoweat.services.profile_store import ProfileStore
from knoweat.services.store import InMemoryKeyValueStore
from tests.factories import make_image_bytes
from tests.fixtures.mocks import MockMenuAIService


# =============================================================================
# pytest Configuration
# =============================================================================


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: HTTP-level tests via TestClient")


# =============================================================================
# Store Fixtures
# =============================================================================


@pytest.fixture
def kv_backend() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def menu_store(kv_backend) -> MenuStore:
    return MenuStore(kv_backend)


@pytest.fixture
def profile_store(kv_backend) -> ProfileStore:
    return ProfileStore(kv_backend)


# =============================================================================
# AI Service Fixtures
# =============================================================================


@pytest.fixture
def mock_ai_service() -> MockMenuAIService:
    """Mock menu AI service; configure responses per test."""
    return MockMenuAIService()


# =============================================================================
# API Client Fixtures
# =============================================================================


@pytest.fixture
def client(
    menu_store, profile_store, mock_ai_service
) -> Generator[TestClient, None, None]:
    """
    TestClient with the stores and AI service swapped for test doubles.

    Nothing touches the SQLite file or the Anthropic API.
    """
    app.dependency_overrides[get_menu_store] = lambda: menu_store
    app.dependency_overrides[get_profile_store] = lambda: profile_store
    app.dependency_overrides[get_ai_service] = lambda: mock_ai_service

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# =============================================================================
# Image Fixtures
# =============================================================================


@pytest.fixture
def sample_image_bytes() -> bytes:
    """A small valid JPEG photo."""
    return make_image_bytes(fmt="JPEG")
