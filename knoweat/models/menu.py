"""
Menu records produced by menu analysis and the per-dish verdicts derived from them.

Dish and Menu are persisted in menu history using camelCase JSON keys.
AnalyzedDish is a transient view built by the allergen checker and never stored.
"""

import enum
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID, uuid4

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)
from pydantic.alias_generators import to_camel


CATEGORY_ICONS = (
    "beer",
    "dinner",
    "fried-rice",
    "lasagna",
    "lunch-bag",
    "nachos",
    "pancake",
    "pasta",
    "pastry",
    "pizza-slice",
    "ramen",
    "restaurant",
    "rice",
    "salad",
    "sausage",
    "shrimp",
    "taco",
)
DEFAULT_CATEGORY_ICON = "restaurant"
UNKNOWN_LANGUAGE = "Unknown"
UNKNOWN_RESTAURANT = "Unknown"


def coerce_category_icon(icon: Optional[str]) -> str:
    """Return icon if it is one of the fixed category icons, else the default."""
    if icon in CATEGORY_ICONS:
        return icon
    return DEFAULT_CATEGORY_ICON


class Dish(BaseModel):
    model_config = ConfigDict(
        frozen=True, alias_generator=to_camel, populate_by_name=True
    )

    id: UUID = Field(default_factory=uuid4)
    name: str
    description: Optional[str] = None
    price: Optional[str] = None
    category: Optional[str] = None
    ingredients: tuple[str, ...] = ()
    # Older history entries stored the tag ids under "allergenIds"
    restriction_tags: frozenset[str] = Field(
        default=frozenset(),
        validation_alias=AliasChoices(
            "restrictionTags", "restriction_tags", "allergenIds"
        ),
        serialization_alias="restrictionTags",
    )

    @field_validator("description", "price", "category", mode="before")
    @classmethod
    def _blank_to_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


class Menu(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, validate_assignment=True
    )

    id: UUID = Field(default_factory=uuid4)
    restaurant: str
    dishes: list[Dish] = Field(default_factory=list)
    scanned_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    category_icon: str = DEFAULT_CATEGORY_ICON
    menu_language: str = UNKNOWN_LANGUAGE

    @field_validator("category_icon", mode="before")
    @classmethod
    def _known_icon(cls, value):
        return coerce_category_icon(value)

    @property
    def needs_restaurant_name(self) -> bool:
        """True when the model could not read a restaurant name."""
        name = self.restaurant.strip()
        return not name or name.lower() == UNKNOWN_RESTAURANT.lower()

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class Severity(str, enum.Enum):
    """Per-dish verdict, ordered safe < advisory < dangerous."""

    SAFE = "safe"
    ADVISORY = "advisory"
    DANGEROUS = "dangerous"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    def __lt__(self, other):
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other):
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other):
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other):
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank >= other.rank


_SEVERITY_RANK = {Severity.SAFE: 0, Severity.ADVISORY: 1, Severity.DANGEROUS: 2}


class FlaggedIngredient(BaseModel):
    """One ingredient of a dish and the matched tags whose keywords it contains."""

    model_config = ConfigDict(frozen=True)

    name: str
    tag_ids: tuple[str, ...] = ()

    @property
    def is_flagged(self) -> bool:
        return bool(self.tag_ids)


class AnalyzedDish(BaseModel):
    model_config = ConfigDict(frozen=True)

    dish: Dish
    matched_tag_ids: frozenset[str] = frozenset()
    hard_allergen_ids: frozenset[str] = frozenset()
    advisory_ids: frozenset[str] = frozenset()
    severity: Severity = Severity.SAFE
    explanation: str = ""
    flagged_ingredients: tuple[FlaggedIngredient, ...] = ()

    @property
    def id(self) -> UUID:
        return self.dish.id

    @property
    def is_safe(self) -> bool:
        return self.severity is Severity.SAFE
