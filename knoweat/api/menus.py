"""API endpoints for menu scanning, history and retranslation."""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, HTTPException, Response, UploadFile
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from knoweat.api.dependencies import get_ai_service, get_menu_store, get_profile_store
from knoweat.models.menu import AnalyzedDish, Menu
from knoweat.models.profile import UserProfile
from knoweat.services import allergen_checker
from knoweat.services.ai_service import MenuAIService
from knoweat.services.menu_store import MenuStore
from knoweat.services.profile_store import ProfileStore
from knoweat.services.taxonomy import tags_for_ids

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/menus", tags=["menus"])

DEFAULT_LANGUAGE = "English"


class RenameMenuRequest(BaseModel):
    restaurant: str = Field(min_length=1, max_length=200)

    @field_validator("restaurant")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Restaurant name cannot be blank")
        return value


class RetranslateRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    target_language: str = Field(min_length=1, max_length=50)


def _dish_verdict(item: AnalyzedDish) -> dict:
    return {
        "dish": item.dish.model_dump(mode="json", by_alias=True),
        "severity": item.severity.value,
        "matchedTagIds": sorted(item.matched_tag_ids),
        "hardAllergenIds": sorted(item.hard_allergen_ids),
        "advisoryIds": sorted(item.advisory_ids),
        "explanation": item.explanation,
        "ingredients": [
            {"name": f.name, "flagged": f.is_flagged, "tagIds": list(f.tag_ids)}
            for f in item.flagged_ingredients
        ],
    }


def _analysis_payload(
    menu: Menu,
    profile: Optional[UserProfile],
    category: Optional[str] = None,
    query: str = "",
) -> dict:
    """Run the matcher for the current profile and shape the result for JSON."""
    active = profile.active_restriction_ids if profile else frozenset()
    analyzed = allergen_checker.analyze(menu, active)
    shown = allergen_checker.filter_dishes(analyzed, category=category, query=query)

    return {
        "menuId": str(menu.id),
        "safeCount": allergen_checker.safe_count(analyzed),
        "unsafeCount": allergen_checker.unsafe_count(analyzed),
        "categories": allergen_checker.categories(analyzed),
        "activeFilters": [tag.model_dump() for tag in tags_for_ids(active)],
        "dishes": [_dish_verdict(item) for item in shown],
    }


def _get_menu_or_404(store: MenuStore, menu_id: UUID) -> Menu:
    menu = store.get(menu_id)
    if not menu:
        raise HTTPException(status_code=404, detail="Menu not found")
    return menu


@router.post("/analyze")
async def analyze_menu(
    images: list[UploadFile] = File(...),
    language: Optional[str] = Form(None),
    ai_service: MenuAIService = Depends(get_ai_service),
    menu_store: MenuStore = Depends(get_menu_store),
    profile_store: ProfileStore = Depends(get_profile_store),
):
    """
    Analyze uploaded menu photos and check every dish against the profile.

    The menu is added to history unless the profile has history turned off.
    Analysis failures are turned into JSON errors by the app-level handler.
    """
    profile = profile_store.profile
    user_language = language or (
        profile.native_language if profile else DEFAULT_LANGUAGE
    )

    photos = [await image.read() for image in images]
    menu = await ai_service.analyze_menu(photos, user_language)

    saved = profile is None or profile.save_history
    if saved:
        menu_store.save(menu)

    return {
        "menu": menu.to_json(),
        "saved": saved,
        "needsRestaurantName": menu.needs_restaurant_name,
        "analysis": _analysis_payload(menu, profile),
    }


@router.get("")
async def list_menus(menu_store: MenuStore = Depends(get_menu_store)):
    """Saved menus, newest first."""
    return [menu.to_json() for menu in menu_store.menus]


@router.delete("", status_code=204)
async def delete_all_menus(menu_store: MenuStore = Depends(get_menu_store)):
    menu_store.delete_all()
    return Response(status_code=204)


@router.get("/{menu_id}")
async def get_menu(menu_id: UUID, menu_store: MenuStore = Depends(get_menu_store)):
    return _get_menu_or_404(menu_store, menu_id).to_json()


@router.get("/{menu_id}/analysis")
async def get_menu_analysis(
    menu_id: UUID,
    category: Optional[str] = None,
    q: str = "",
    menu_store: MenuStore = Depends(get_menu_store),
    profile_store: ProfileStore = Depends(get_profile_store),
):
    """Re-run the matcher for a saved menu against the current profile."""
    menu = _get_menu_or_404(menu_store, menu_id)
    return _analysis_payload(menu, profile_store.profile, category=category, query=q)


@router.patch("/{menu_id}")
async def rename_menu(
    menu_id: UUID,
    body: RenameMenuRequest,
    menu_store: MenuStore = Depends(get_menu_store),
):
    menu = menu_store.rename(menu_id, body.restaurant)
    if not menu:
        raise HTTPException(status_code=404, detail="Menu not found")
    return menu.to_json()


@router.delete("/{menu_id}", status_code=204)
async def delete_menu(menu_id: UUID, menu_store: MenuStore = Depends(get_menu_store)):
    if not menu_store.delete(menu_id):
        raise HTTPException(status_code=404, detail="Menu not found")
    return Response(status_code=204)


@router.post("/{menu_id}/retranslate")
async def retranslate_menu(
    menu_id: UUID,
    body: RetranslateRequest,
    ai_service: MenuAIService = Depends(get_ai_service),
    menu_store: MenuStore = Depends(get_menu_store),
    profile_store: ProfileStore = Depends(get_profile_store),
):
    """Translate a saved menu's dishes into another language and re-check them."""
    menu = _get_menu_or_404(menu_store, menu_id)

    dishes = await ai_service.retranslate_dishes(menu.dishes, body.target_language)
    updated = menu_store.update_translation(menu_id, dishes, body.target_language)
    if not updated:
        # Deleted while the translation was in flight
        raise HTTPException(status_code=404, detail="Menu not found")

    logger.info("Menu %s retranslated to %s", menu_id, body.target_language)
    return {
        "menu": updated.to_json(),
        "analysis": _analysis_payload(updated, profile_store.profile),
    }
