"""
Mock services for testing AI functionality.

These mocks provide deterministic responses for testing without API calls.
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

from knoweat.models import Dish, Menu
from tests.factories import create_menu


class MockMenuAIService:
    """
    Mock menu AI service.

    Mirrors MenuAIService's public methods. Configure responses per-test with
    the set_* methods; calls are recorded for assertions.
    """

    def __init__(self):
        self.model = "claude-test-model"

        # Track method calls for assertions
        self.calls: Dict[str, List[Dict]] = {}

        # Configurable responses (set per test)
        self._analyze_menu_response: Optional[Menu] = None
        self._retranslate_response: Optional[List[Dish]] = None

        # Error simulation
        self._raise_error: Optional[Exception] = None

    def _record_call(self, method: str, **kwargs):
        """Record a method call for assertion."""
        if method not in self.calls:
            self.calls[method] = []
        self.calls[method].append(
            {"timestamp": datetime.now(timezone.utc).isoformat(), "kwargs": kwargs}
        )

    def _maybe_raise(self):
        if self._raise_error:
            error = self._raise_error
            self._raise_error = None
            raise error

    def reset(self):
        """Reset all recorded calls and responses."""
        self.calls = {}
        self._raise_error = None

    def set_error(self, error: Exception):
        """Set an error to raise on next call."""
        self._raise_error = error

    # =========================================================================
    # Menu Analysis
    # =========================================================================

    async def analyze_menu(self, images: Sequence[bytes], user_language: str) -> Menu:
        """Mock menu analysis."""
        self._record_call(
            "analyze_menu", image_count=len(images), user_language=user_language
        )
        self._maybe_raise()

        if self._analyze_menu_response is not None:
            # Fresh copy so a test can analyze the same configured menu twice
            return self._analyze_menu_response.model_copy(deep=True)
        return create_menu()

    def set_analyze_menu_response(self, menu: Menu):
        """Configure analyze_menu response."""
        self._analyze_menu_response = menu

    # =========================================================================
    # Retranslation
    # =========================================================================

    async def retranslate_dishes(
        self, dishes: Sequence[Dish], target_language: str
    ) -> List[Dish]:
        """Mock retranslation: tags each name with the target language."""
        self._record_call(
            "retranslate_dishes",
            dish_count=len(dishes),
            target_language=target_language,
        )
        self._maybe_raise()

        if self._retranslate_response is not None:
            return list(self._retranslate_response)

        return [
            Dish(
                name=f"{dish.name} [{target_language}]",
                description=dish.description,
                price=dish.price,
                category=dish.category,
                ingredients=dish.ingredients,
                restriction_tags=dish.restriction_tags,
            )
            for dish in dishes
        ]

    def set_retranslate_response(self, dishes: List[Dish]):
        """Configure retranslate_dishes response."""
        self._retranslate_response = dishes


# Helper functions for common test scenarios
def create_mock_with_error(error: Exception) -> MockMenuAIService:
    """Create a mock that raises an error on the next call."""
    mock = MockMenuAIService()
    mock.set_error(error)
    return mock


def create_mock_for_menu(menu: Menu) -> MockMenuAIService:
    """Create a mock configured to return menu from analyze_menu."""
    mock = MockMenuAIService()
    mock.set_analyze_menu_response(menu)
    return mock
