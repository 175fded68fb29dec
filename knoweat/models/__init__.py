"""
Domain records for KnowEat.

Menus and profiles are pydantic models persisted as JSON in the local
key-value store; KeyValueEntry is the SQLAlchemy table backing that store.
"""

from knoweat.models.restriction import RestrictionTag, TagCategory
from knoweat.models.menu import (
    CATEGORY_ICONS,
    DEFAULT_CATEGORY_ICON,
    AnalyzedDish,
    Dish,
    FlaggedIngredient,
    Menu,
    Severity,
)
from knoweat.models.profile import CATEGORY_FIELDS, UserProfile
from knoweat.models.kv_entry import KeyValueEntry

__all__ = [
    "RestrictionTag",
    "TagCategory",
    "CATEGORY_ICONS",
    "DEFAULT_CATEGORY_ICON",
    "AnalyzedDish",
    "Dish",
    "FlaggedIngredient",
    "Menu",
    "Severity",
    "CATEGORY_FIELDS",
    "UserProfile",
    "KeyValueEntry",
]
