"""
Pydantic models for validating structured JSON replies from the vision model.

Each schema corresponds to one reply shape. Used by ai_service.py at the parse
boundary; anything that does not fit is rejected rather than defaulted.
"""

from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


# --- One dish (menu analysis and retranslation) ---


class DishSchema(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    name: str
    description: Optional[str] = None
    price: Optional[str] = None
    category: Optional[str] = None
    ingredients: list[str]
    tag_ids: list[str] = Field(
        validation_alias=AliasChoices("allergenIds", "tagIds", "tag_ids")
    )


# --- Menu Analysis (analyze_menu) ---


class MenuAnalysisSchema(BaseModel):
    restaurant: str
    category_icon: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("categoryIcon", "category_icon")
    )
    menu_language: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("menuLanguage", "menu_language")
    )
    dishes: list[DishSchema] = Field(min_length=1)

    @field_validator("category_icon", "menu_language", mode="before")
    @classmethod
    def _drop_non_string(cls, value):
        # Non-string values fall back to the defaults
        return value if isinstance(value, str) else None
