"""Restriction tags: allergens, intolerances, conditions, diets and situations."""

import enum

from pydantic import BaseModel, ConfigDict


class TagCategory(str, enum.Enum):
    """The five catalogs a restriction tag can belong to."""

    ALLERGEN = "allergen"
    INTOLERANCE = "intolerance"
    CONDITION = "condition"
    DIET = "diet"
    SITUATION = "situation"


class RestrictionTag(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    icon: str
