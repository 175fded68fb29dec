"""User dietary profile: native language plus one id-set per restriction category."""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from knoweat.models.restriction import TagCategory


# Single dispatch table from restriction category to the profile field holding its ids
CATEGORY_FIELDS: dict[TagCategory, str] = {
    TagCategory.ALLERGEN: "allergen_ids",
    TagCategory.INTOLERANCE: "intolerance_ids",
    TagCategory.CONDITION: "condition_ids",
    TagCategory.DIET: "diet_ids",
    TagCategory.SITUATION: "situation_ids",
}


class UserProfile(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    native_language: str
    allergen_ids: set[str]
    intolerance_ids: set[str] = Field(default_factory=set)
    condition_ids: set[str] = Field(default_factory=set)
    diet_ids: set[str] = Field(default_factory=set)
    situation_ids: set[str] = Field(default_factory=set)
    save_history: bool = True

    def ids_for(self, category: TagCategory) -> set[str]:
        return getattr(self, CATEGORY_FIELDS[TagCategory(category)])

    def is_selected(self, tag_id: str, category: TagCategory) -> bool:
        return tag_id in self.ids_for(category)

    def toggle(self, tag_id: str, category: TagCategory) -> bool:
        """Flip selection of tag_id within category. Returns the new state."""
        ids = self.ids_for(category)
        if tag_id in ids:
            ids.discard(tag_id)
            return False
        ids.add(tag_id)
        return True

    @property
    def active_restriction_ids(self) -> frozenset[str]:
        """Union of the selected ids across all five categories."""
        active: set[str] = set()
        for field_name in CATEGORY_FIELDS.values():
            active |= getattr(self, field_name)
        return frozenset(active)

    @property
    def restriction_count(self) -> int:
        return sum(len(getattr(self, f)) for f in CATEGORY_FIELDS.values())

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
