"""
Unit tests for the allergen/restriction matcher.

Covers:
- Severity classification (hard allergen vs advisory vs safe)
- Purity, monotonicity and the hard/advisory partition
- Explanations and ingredient flagging
- Category listing, filtering and grouping of results
"""

import pytest

from knoweat.models.menu import Severity
from knoweat.services import allergen_checker
from knoweat.services.taxonomy import all_tag_ids, is_hard_allergen
from tests.factories import create_dish, create_menu, create_profile


class TestClassification:
    """Tests for per-dish severity."""

    def test_hard_allergen_match_is_dangerous(self):
        """Peanut allergy plus vegetarian diet against a peanut dish with meat."""
        profile = create_profile(allergens={"peanuts"}, diets={"vegetarian"})
        menu = create_menu([create_dish("Satay", tags={"peanuts", "vegetarian"})])

        [result] = allergen_checker.analyze_for_profile(menu, profile)

        assert result.severity is Severity.DANGEROUS
        assert result.matched_tag_ids == {"peanuts", "vegetarian"}
        assert result.hard_allergen_ids == {"peanuts"}
        assert result.advisory_ids == {"vegetarian"}

    def test_advisory_only_match(self):
        """A diet violation without an allergen is advisory."""
        profile = create_profile(diets={"vegan"})
        menu = create_menu([create_dish("Omelette", tags={"vegan"})])

        [result] = allergen_checker.analyze_for_profile(menu, profile)

        assert result.severity is Severity.ADVISORY
        assert result.matched_tag_ids == {"vegan"}
        assert result.hard_allergen_ids == frozenset()

    def test_empty_profile_is_always_safe(self):
        profile = create_profile()
        menu = create_menu([create_dish("Bread", tags={"gluten"})])

        [result] = allergen_checker.analyze_for_profile(menu, profile)

        assert result.severity is Severity.SAFE
        assert result.matched_tag_ids == frozenset()
        assert result.is_safe

    def test_unmatched_dish_tags_are_ignored(self):
        """Tags the user has not selected never affect the verdict."""
        menu = create_menu([create_dish("Bread", tags={"gluten", "vegan"})])

        [result] = allergen_checker.analyze(menu, {"peanuts"})

        assert result.severity is Severity.SAFE

    def test_many_advisory_matches_stay_advisory(self):
        """Severity depends on the catalog, not on how many tags matched."""
        tags = {"lactose", "diabetes", "vegan", "pregnant"}
        menu = create_menu([create_dish("Tiramisu", tags=tags)])

        [result] = allergen_checker.analyze(menu, tags)

        assert result.severity is Severity.ADVISORY

    @pytest.mark.parametrize(
        "matched,expected",
        [
            (set(), Severity.SAFE),
            ({"histamine"}, Severity.ADVISORY),
            ({"sesame"}, Severity.DANGEROUS),
            ({"sesame", "halal"}, Severity.DANGEROUS),
        ],
    )
    def test_classify(self, matched, expected):
        assert allergen_checker.classify(matched) is expected

    def test_results_keep_menu_order(self):
        menu = create_menu()

        results = allergen_checker.analyze(menu, {"fish"})

        assert [r.dish.name for r in results] == [d.name for d in menu.dishes]
        assert [r.id for r in results] == [d.id for d in menu.dishes]


class TestProperties:
    """Properties that must hold for any menu and restriction set."""

    def test_analysis_is_idempotent(self):
        menu = create_menu()
        active = {"gluten", "vegan"}

        first = allergen_checker.analyze(menu, active)
        second = allergen_checker.analyze(menu, active)

        assert first == second

    def test_adding_restrictions_never_lowers_severity(self):
        menu = create_menu()
        smaller = {"vegan"}
        larger = smaller | {"gluten", "fish"}

        before = allergen_checker.analyze(menu, smaller)
        after = allergen_checker.analyze(menu, larger)

        for old, new in zip(before, after):
            assert old.matched_tag_ids <= new.matched_tag_ids
            assert new.severity >= old.severity

    def test_matched_ids_partition_into_hard_and_advisory(self):
        menu = create_menu()

        for result in allergen_checker.analyze(menu, all_tag_ids()):
            assert result.hard_allergen_ids | result.advisory_ids == result.matched_tag_ids
            assert not result.hard_allergen_ids & result.advisory_ids
            assert all(is_hard_allergen(t) for t in result.hard_allergen_ids)
            assert (result.severity is Severity.DANGEROUS) == bool(
                result.hard_allergen_ids
            )

    def test_counts(self):
        menu = create_menu()

        results = allergen_checker.analyze(menu, {"gluten"})

        assert allergen_checker.safe_count(results) == 2
        assert allergen_checker.unsafe_count(results) == 1


class TestExplanation:
    """Tests for the natural-language summary."""

    def test_safe_explanation(self):
        assert (
            allergen_checker.explain(frozenset(), frozenset())
            == "No conflicts with your dietary profile."
        )

    def test_explanation_names_allergens_then_advisories(self):
        text = allergen_checker.explain(
            frozenset({"peanuts", "gluten"}), frozenset({"lactose", "vegan", "gout"})
        )

        assert text == (
            "Contains Gluten, Peanuts. "
            "May cause intolerance to: Lactose. "
            "Not recommended with: Gout. "
            "Not suitable for: Vegan."
        )

    def test_situation_phrase(self):
        text = allergen_checker.explain(frozenset(), frozenset({"pregnant"}))

        assert text == "Avoid if: Pregnancy."

    def test_unknown_ids_fall_back_to_raw_id(self):
        text = allergen_checker.explain(frozenset(), frozenset({"spicy"}))

        assert text == "Flagged for: spicy."


class TestIngredientFlagging:
    """Tests for per-ingredient highlighting."""

    def test_wheat_flour_flagged_for_gluten(self):
        dish = create_dish(
            "Flatbread", tags={"gluten"}, ingredients=["Wheat flour", "water"]
        )
        menu = create_menu([dish])

        [result] = allergen_checker.analyze(menu, {"gluten"})

        flour, water = result.flagged_ingredients
        assert flour.name == "Wheat flour"
        assert flour.tag_ids == ("gluten",)
        assert flour.is_flagged
        assert not water.is_flagged

    def test_no_flags_when_tag_not_active(self):
        dish = create_dish("Flatbread", tags={"gluten"}, ingredients=["Wheat flour"])

        [result] = allergen_checker.analyze(create_menu([dish]), set())

        assert not any(i.is_flagged for i in result.flagged_ingredients)

    def test_every_ingredient_is_reported(self):
        dish = create_menu().dishes[0]

        [result] = allergen_checker.analyze(create_menu([dish]), {"eggs", "dairy"})

        assert [i.name for i in result.flagged_ingredients] == list(dish.ingredients)
        flags = {i.name: i.tag_ids for i in result.flagged_ingredients}
        assert flags["egg yolk"] == ("eggs",)
        assert flags["pecorino"] == ("dairy",)
        assert flags["guanciale"] == ()


class TestBrowsingHelpers:
    """Tests for category listing, filtering and grouping."""

    def test_categories_sorted_and_distinct(self):
        results = allergen_checker.analyze(create_menu(), set())

        assert allergen_checker.categories(results) == [
            "Mains (Secondi)",
            "Pasta (Primi)",
            "Salads (Insalate)",
        ]

    def test_filter_by_category(self):
        results = allergen_checker.analyze(create_menu(), set())

        shown = allergen_checker.filter_dishes(results, category="Pasta (Primi)")

        assert [r.dish.name for r in shown] == ["Spaghetti Carbonara"]

    @pytest.mark.parametrize(
        "query,expected",
        [
            ("salad", ["Green Salad"]),
            ("BRANZINO", ["Grilled Sea Bass"]),  # original-language description
            ("pecorino", ["Spaghetti Carbonara"]),  # ingredient
            ("  ", ["Spaghetti Carbonara", "Green Salad", "Grilled Sea Bass"]),
            ("nothing-matches", []),
        ],
    )
    def test_filter_by_query(self, query, expected):
        results = allergen_checker.analyze(create_menu(), set())

        shown = allergen_checker.filter_dishes(results, query=query)

        assert [r.dish.name for r in shown] == expected

    def test_group_by_category_uses_other_for_uncategorized(self):
        menu = create_menu(
            [
                create_dish("Soup", category="Starters"),
                create_dish("Mystery"),
                create_dish("Bruschetta", category="Starters"),
            ]
        )

        groups = allergen_checker.group_by_category(allergen_checker.analyze(menu, set()))

        assert [(name, [r.dish.name for r in items]) for name, items in groups] == [
            ("Other", ["Mystery"]),
            ("Starters", ["Soup", "Bruschetta"]),
        ]
