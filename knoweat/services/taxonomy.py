"""
Restriction tag catalogs.

The five catalogs are bundled as JSON under knoweat/data and loaded once.
Category membership is fixed by the file a tag id appears in.
"""

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Iterable, Optional

from pydantic import TypeAdapter, ValidationError

from knoweat.models.restriction import RestrictionTag, TagCategory

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).resolve().parent.parent / "data"

CATALOG_FILES = {
    TagCategory.ALLERGEN: "allergens.json",
    TagCategory.INTOLERANCE: "intolerances.json",
    TagCategory.CONDITION: "conditions.json",
    TagCategory.DIET: "diets.json",
    TagCategory.SITUATION: "situations.json",
}

HARD_ALLERGEN_IDS = frozenset(
    {
        "gluten",
        "crustaceans",
        "eggs",
        "fish",
        "peanuts",
        "soy",
        "dairy",
        "tree_nuts",
        "celery",
        "mustard",
        "sesame",
        "sulfites",
        "lupins",
        "mollusks",
    }
)

_tag_list_adapter = TypeAdapter(list[RestrictionTag])


class TaxonomyError(Exception):
    """Bundled catalog data is missing or inconsistent."""

    pass


def _read_catalog(path: Path) -> list[RestrictionTag]:
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
        return _tag_list_adapter.validate_python(raw)
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        raise TaxonomyError(f"Could not load catalog {path.name}: {e}") from e


@lru_cache(maxsize=None)
def _load_catalogs() -> dict[TagCategory, tuple[RestrictionTag, ...]]:
    catalogs = {}
    seen: dict[str, TagCategory] = {}

    for category, filename in CATALOG_FILES.items():
        tags = _read_catalog(DATA_DIR / filename)
        for tag in tags:
            if tag.id in seen:
                raise TaxonomyError(
                    f"Tag id '{tag.id}' appears in both {seen[tag.id].value} "
                    f"and {category.value} catalogs"
                )
            seen[tag.id] = category
        catalogs[category] = tuple(tags)

    allergen_ids = {tag.id for tag in catalogs[TagCategory.ALLERGEN]}
    if allergen_ids != HARD_ALLERGEN_IDS:
        raise TaxonomyError(
            "Allergen catalog must contain exactly the 14 hard allergens, "
            f"got: {sorted(allergen_ids)}"
        )

    logger.debug("Loaded %d restriction tags", len(seen))
    return catalogs


@lru_cache(maxsize=None)
def _tag_index() -> dict[str, tuple[RestrictionTag, TagCategory]]:
    return {
        tag.id: (tag, category)
        for category, tags in _load_catalogs().items()
        for tag in tags
    }


def get_catalog(category: TagCategory) -> tuple[RestrictionTag, ...]:
    return _load_catalogs()[TagCategory(category)]


def all_tags() -> list[RestrictionTag]:
    """Every tag, in catalog order (allergens first, situations last)."""
    return [tag for tags in _load_catalogs().values() for tag in tags]


def all_tag_ids() -> list[str]:
    return [tag.id for tag in all_tags()]


def get_tag(tag_id: str) -> Optional[RestrictionTag]:
    entry = _tag_index().get(tag_id)
    return entry[0] if entry else None


def category_of(tag_id: str) -> Optional[TagCategory]:
    entry = _tag_index().get(tag_id)
    return entry[1] if entry else None


def is_known_tag(tag_id: str) -> bool:
    return tag_id in _tag_index()


def is_hard_allergen(tag_id: str) -> bool:
    return tag_id in HARD_ALLERGEN_IDS


def tags_for_ids(tag_ids: Iterable[str]) -> list[RestrictionTag]:
    """Resolve ids to tags for display, in catalog order. Unknown ids are skipped."""
    wanted = set(tag_ids)
    return [tag for tag in all_tags() if tag.id in wanted]


def display_name(tag_id: str) -> str:
    tag = get_tag(tag_id)
    return tag.name if tag else tag_id
