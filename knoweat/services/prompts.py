"""
AI prompt templates for menu analysis and retranslation.

Prompts are built per call because they embed the user's language, the
full restriction tag catalog and the fixed category icon list.
"""

from knoweat.models.menu import CATEGORY_ICONS, DEFAULT_CATEGORY_ICON
from knoweat.services.taxonomy import all_tag_ids

# =============================================================================
# MENU ANALYSIS
# =============================================================================

MENU_ANALYSIS_USER_TEXT = "Analyze this restaurant menu and return the structured JSON."

MENU_ANALYSIS_SYSTEM_TEMPLATE = """You are a menu analysis assistant. Analyze the restaurant menu image(s) and return ONLY valid JSON with this exact structure:
{{
  "restaurant": "Name of the restaurant if visible, otherwise 'Unknown'",
  "categoryIcon": "best matching icon for this restaurant type",
  "menuLanguage": "detected language of the menu",
  "dishes": [
    {{
      "name": "Dish name translated to {language}",
      "description": "Original dish name as written on the menu",
      "price": "Price if visible",
      "category": "Menu section translated to {language} with original in parentheses",
      "ingredients": ["ingredient1", "ingredient2"],
      "allergenIds": ["id1", "id2"]
    }}
  ]
}}

Rules:
- LANGUAGE: All dish names, categories, and ingredients MUST be translated to {language}. Keep the original name in the description field.
- For ingredients: list the most likely ingredients even if not explicitly stated on the menu. Use your culinary knowledge. Translate them to {language}.
- For allergenIds: tag each dish with ALL applicable IDs from this list: {tag_ids}
  These cover allergens (gluten, dairy, eggs...), intolerances (lactose, fructose, histamine, fodmap), medical conditions the dish is problematic for (celiac, diabetes=high sugar, hypertension=high sodium, kidney_disease=high potassium/phosphorus, gout=high purines, favism=fava beans), diets the dish violates (vegetarian=contains meat/fish, vegan=contains any animal product, pescatarian=contains meat but not fish, halal=contains pork/alcohol, kosher=not kosher), and situations where the dish should be avoided (pregnant=raw fish/unpasteurized/high mercury, breastfeeding=alcohol/high caffeine).
- For categoryIcon: pick the SINGLE best matching icon from this list based on the restaurant's cuisine type: {icons}. If none fits well, use "{default_icon}".
- For menuLanguage: detect the original language of the menu text and return its name in English (e.g. "Italian", "Japanese", "Spanish").
- For category: translate the menu section heading to {language} and include the original in parentheses (e.g. "Land Appetizers (Antipasti di Terra)").
- For description: always put the original dish name as written on the menu (in its original language).
- Include ALL dishes visible in the menu image(s).
- Return ONLY the JSON, no markdown formatting, no code fences, no extra text."""


def build_menu_analysis_prompt(user_language: str) -> str:
    return MENU_ANALYSIS_SYSTEM_TEMPLATE.format(
        language=user_language,
        tag_ids=", ".join(all_tag_ids()),
        icons=", ".join(CATEGORY_ICONS),
        default_icon=DEFAULT_CATEGORY_ICON,
    )


# =============================================================================
# RETRANSLATION
# =============================================================================

RETRANSLATION_SYSTEM_TEMPLATE = """You are a translation assistant. Translate menu dishes to {language}.
For each dish:
- "name": translate the dish name to {language}
- "description": keep EXACTLY as is (original name from menu)
- "price": keep EXACTLY as is
- "category": translate to {language} with original in parentheses
- "ingredients": translate all to {language}
- "tagIds": keep EXACTLY as is
Return ONLY a valid JSON array with one object per input dish, in the same order. No markdown, no code fences, no extra text."""


def build_retranslation_prompt(target_language: str) -> str:
    return RETRANSLATION_SYSTEM_TEMPLATE.format(language=target_language)
