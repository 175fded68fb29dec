"""
Allergen and dietary-restriction matcher.

Cross-references the restriction tags the model assigned to each dish with
the user's active restriction set and classifies every dish:

- safe: no active restriction matched
- dangerous: at least one matched tag is one of the 14 hard allergens
- advisory: only intolerances, conditions, diets or situations matched

Earlier versions escalated on a count threshold (3+ matched tags). Severity now
depends only on which catalog the matched tags come from.

All functions are pure; nothing here touches I/O or shared state.
"""

from typing import Iterable, Optional

from knoweat.models.menu import AnalyzedDish, Dish, Menu, Severity
from knoweat.models.profile import UserProfile
from knoweat.models.restriction import TagCategory
from knoweat.services.keywords import flag_ingredients
from knoweat.services.taxonomy import category_of, display_name, is_hard_allergen

OTHER_CATEGORY = "Other"

# Lead-in phrase per advisory catalog, in the order they appear in explanations
_ADVISORY_PHRASES = (
    (TagCategory.INTOLERANCE, "May cause intolerance to"),
    (TagCategory.CONDITION, "Not recommended with"),
    (TagCategory.DIET, "Not suitable for"),
    (TagCategory.SITUATION, "Avoid if"),
)


def split_matched(matched_ids: Iterable[str]) -> tuple[frozenset[str], frozenset[str]]:
    """Partition matched ids into (hard allergens, advisory tags)."""
    matched = frozenset(matched_ids)
    hard = frozenset(tag_id for tag_id in matched if is_hard_allergen(tag_id))
    return hard, matched - hard


def classify(matched_ids: Iterable[str]) -> Severity:
    hard, advisory = split_matched(matched_ids)
    if hard:
        return Severity.DANGEROUS
    if advisory:
        return Severity.ADVISORY
    return Severity.SAFE


def _names(tag_ids: Iterable[str]) -> str:
    return ", ".join(sorted(display_name(tag_id) for tag_id in tag_ids))


def explain(hard: frozenset[str], advisory: frozenset[str]) -> str:
    """Build a short natural-language summary of why a dish was flagged."""
    if not hard and not advisory:
        return "No conflicts with your dietary profile."

    sentences = []
    if hard:
        sentences.append(f"Contains {_names(hard)}.")

    for category, phrase in _ADVISORY_PHRASES:
        in_category = [t for t in advisory if category_of(t) is category]
        if in_category:
            sentences.append(f"{phrase}: {_names(in_category)}.")

    # Ids outside the catalogs can only reach here via hand-built dishes
    uncategorized = [t for t in advisory if category_of(t) is None]
    if uncategorized:
        sentences.append(f"Flagged for: {_names(uncategorized)}.")

    return " ".join(sentences)


def analyze_dish(dish: Dish, active_ids: frozenset[str]) -> AnalyzedDish:
    matched = dish.restriction_tags & active_ids
    hard, advisory = split_matched(matched)
    return AnalyzedDish(
        dish=dish,
        matched_tag_ids=matched,
        hard_allergen_ids=hard,
        advisory_ids=advisory,
        severity=classify(matched),
        explanation=explain(hard, advisory),
        flagged_ingredients=flag_ingredients(dish, matched),
    )


def analyze(menu: Menu, active_restriction_ids: Iterable[str]) -> list[AnalyzedDish]:
    """Compute a verdict for every dish of menu, in menu order."""
    active = frozenset(active_restriction_ids)
    return [analyze_dish(dish, active) for dish in menu.dishes]


def analyze_for_profile(menu: Menu, profile: UserProfile) -> list[AnalyzedDish]:
    return analyze(menu, profile.active_restriction_ids)


def safe_count(analyzed: Iterable[AnalyzedDish]) -> int:
    return sum(1 for item in analyzed if item.severity is Severity.SAFE)


def unsafe_count(analyzed: Iterable[AnalyzedDish]) -> int:
    return sum(1 for item in analyzed if item.severity is not Severity.SAFE)


# =============================================================================
# RESULT BROWSING HELPERS
# =============================================================================


def categories(analyzed: Iterable[AnalyzedDish]) -> list[str]:
    """Distinct dish categories, sorted."""
    return sorted({item.dish.category for item in analyzed if item.dish.category})


def filter_dishes(
    analyzed: Iterable[AnalyzedDish],
    category: Optional[str] = None,
    query: str = "",
) -> list[AnalyzedDish]:
    """
    Narrow analyzed dishes by menu section and free-text search.

    The search is a case-insensitive substring match against the dish name,
    its original-language description and each ingredient.
    """
    result = list(analyzed)

    if category:
        result = [item for item in result if item.dish.category == category]

    needle = query.strip().casefold()
    if needle:
        result = [item for item in result if _matches_query(item.dish, needle)]

    return result


def _matches_query(dish: Dish, needle: str) -> bool:
    if needle in dish.name.casefold():
        return True
    if dish.description and needle in dish.description.casefold():
        return True
    return any(needle in ingredient.casefold() for ingredient in dish.ingredients)


def group_by_category(
    analyzed: Iterable[AnalyzedDish],
) -> list[tuple[str, list[AnalyzedDish]]]:
    groups: dict[str, list[AnalyzedDish]] = {}
    for item in analyzed:
        groups.setdefault(item.dish.category or OTHER_CATEGORY, []).append(item)
    return sorted(groups.items(), key=lambda pair: pair[0])
