"""
Menu analysis, restriction matching and local storage services.

Usage:
    from knoweat.services.ai_service import MenuAIService
    from knoweat.services import allergen_checker

    menu = await MenuAIService().analyze_menu(photos, "English")
    verdicts = allergen_checker.analyze_for_profile(menu, profile)
"""
