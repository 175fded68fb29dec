"""Test fixtures for KnowEat."""

from tests.fixtures.mocks import (
    MockMenuAIService,
    create_mock_with_error,
    create_mock_for_menu,
)

__all__ = [
    "MockMenuAIService",
    "create_mock_with_error",
    "create_mock_for_menu",
]
