"""
Ingredient keyword index.

Maps each restriction tag id to lowercase ingredient substrings in several
languages, used to highlight which ingredient of a dish triggered a tag.
Matching is a case-insensitive substring test, not tokenized, so partial-word
hits (e.g. "egg" in "eggplant") are a known limitation.
"""

import json
import logging
from functools import lru_cache
from typing import Iterable

from knoweat.models.menu import Dish, FlaggedIngredient
from knoweat.services.taxonomy import DATA_DIR, TaxonomyError, is_known_tag

logger = logging.getLogger(__name__)

KEYWORDS_FILE = DATA_DIR / "keywords.json"


@lru_cache(maxsize=None)
def _load_keywords() -> dict[str, tuple[str, ...]]:
    try:
        raw = json.loads(KEYWORDS_FILE.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise TaxonomyError(f"Could not load keyword index: {e}") from e

    index = {}
    for tag_id, keywords in raw.items():
        if not is_known_tag(tag_id):
            logger.warning("Keyword index has entry for unknown tag '%s'", tag_id)
            continue
        # Preserve order, drop duplicates within one tag's list
        index[tag_id] = tuple(dict.fromkeys(k.casefold() for k in keywords if k))
    return index


def keywords_for(tag_id: str) -> tuple[str, ...]:
    return _load_keywords().get(tag_id, ())


def ingredient_triggers(ingredient: str, tag_ids: Iterable[str]) -> list[str]:
    """Return the tag ids (in the given order) whose keywords occur in ingredient."""
    text = ingredient.casefold()
    return [
        tag_id
        for tag_id in tag_ids
        if any(keyword in text for keyword in keywords_for(tag_id))
    ]


def flag_ingredients(
    dish: Dish, matched_tag_ids: Iterable[str]
) -> tuple[FlaggedIngredient, ...]:
    """
    Mark each ingredient of dish with the matched tags it appears to trigger.

    Every ingredient is returned, in dish order; unflagged ones carry no tag ids.
    """
    ordered_ids = sorted(set(matched_tag_ids))
    return tuple(
        FlaggedIngredient(
            name=ingredient,
            tag_ids=tuple(ingredient_triggers(ingredient, ordered_ids)),
        )
        for ingredient in dish.ingredients
    )
