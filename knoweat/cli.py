"""CLI commands for KnowEat."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from knoweat.config import settings
from knoweat.models.menu import Severity
from knoweat.models.restriction import TagCategory
from knoweat.services import allergen_checker
from knoweat.services.ai_service import (
    MenuAIService,
    MenuAnalysisError,
    retry_on_retryable_error,
)
from knoweat.services.taxonomy import display_name, get_catalog

SEVERITY_MARKS = {
    Severity.SAFE: "OK",
    Severity.ADVISORY: "!!",
    Severity.DANGEROUS: "XX",
}

# CLI flag -> category it selects restrictions from
CATEGORY_FLAGS = {
    "allergen": TagCategory.ALLERGEN,
    "intolerance": TagCategory.INTOLERANCE,
    "condition": TagCategory.CONDITION,
    "diet": TagCategory.DIET,
    "situation": TagCategory.SITUATION,
}


def list_tags() -> None:
    """Print every restriction id with its display name, grouped by category."""
    for category in TagCategory:
        print(f"{category.value}:")
        for tag in get_catalog(category):
            print(f"  {tag.id:<16} {tag.icon} {tag.name}")


def collect_restrictions(args: argparse.Namespace) -> set[str]:
    """Validate the per-category flags and return the active restriction set."""
    active = set()
    for flag, category in CATEGORY_FLAGS.items():
        known = {tag.id for tag in get_catalog(category)}
        for tag_id in getattr(args, flag) or []:
            if tag_id not in known:
                print(f"Error: '{tag_id}' is not a {category.value} id.")
                sys.exit(1)
            active.add(tag_id)
    return active


async def analyze(
    image_paths: list[str],
    language: str,
    active_ids: set[str],
    retries: int = 0,
    service: MenuAIService | None = None,
) -> None:
    """Analyze menu photos and print a verdict for every dish."""
    photos = []
    for path in image_paths:
        try:
            photos.append(Path(path).read_bytes())
        except OSError as e:
            print(f"Error: Could not read {path}: {e}")
            sys.exit(1)

    service = service or MenuAIService()
    analyze_menu = retry_on_retryable_error(max_attempts=retries + 1)(
        service.analyze_menu
    )

    try:
        menu = await analyze_menu(photos, language)
    except MenuAnalysisError as e:
        print(f"{e.title}: {e.message}")
        sys.exit(2)

    analyzed = allergen_checker.analyze(menu, active_ids)

    print(f"{menu.restaurant} ({menu.menu_language}, {len(menu.dishes)} dishes)")
    for section, items in allergen_checker.group_by_category(analyzed):
        print(f"\n{section}")
        for item in items:
            line = f"  [{SEVERITY_MARKS[item.severity]}] {item.dish.name}"
            if item.dish.price:
                line += f"  {item.dish.price}"
            print(line)
            if not item.is_safe:
                print(f"       {item.explanation}")
                for ingredient in item.flagged_ingredients:
                    if ingredient.is_flagged:
                        names = ", ".join(display_name(t) for t in ingredient.tag_ids)
                        print(f"       - {ingredient.name} ({names})")

    print(
        f"\n{allergen_checker.safe_count(analyzed)} safe, "
        f"{allergen_checker.unsafe_count(analyzed)} flagged"
    )


def main():
    parser = argparse.ArgumentParser(description="KnowEat CLI")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # tags command
    subparsers.add_parser("tags", help="List restriction ids by category")

    # analyze command
    analyze_parser = subparsers.add_parser(
        "analyze", help="Analyze menu photos against dietary restrictions"
    )
    analyze_parser.add_argument("images", nargs="+", help="Menu photo paths")
    analyze_parser.add_argument(
        "--language", default="English", help="Language to translate dishes into"
    )
    for flag in CATEGORY_FLAGS:
        analyze_parser.add_argument(
            f"--{flag}",
            action="append",
            metavar="ID",
            help=f"Active {flag} id (repeatable)",
        )
    analyze_parser.add_argument(
        "--retries",
        type=int,
        default=0,
        help="Extra attempts after timeouts or server errors",
    )

    args = parser.parse_args()

    logging.basicConfig(level=settings.log_level)

    if args.command == "tags":
        list_tags()
    elif args.command == "analyze":
        if args.retries < 0:
            print("Error: --retries cannot be negative.")
            sys.exit(1)
        active = collect_restrictions(args)
        asyncio.run(analyze(args.images, args.language, active, args.retries))
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
