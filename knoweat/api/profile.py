"""API endpoints for the dietary profile and the restriction tag catalogs."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from knoweat.api.dependencies import get_profile_store
from knoweat.models.profile import UserProfile
from knoweat.models.restriction import TagCategory
from knoweat.services.profile_store import ProfileStore
from knoweat.services.taxonomy import get_catalog

router = APIRouter(tags=["profile"])


class ProfileUpdateRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    native_language: Optional[str] = None
    save_history: Optional[bool] = None


class ToggleRestrictionRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    category: TagCategory
    tag_id: str


def _check_catalog_membership(profile: UserProfile):
    """Reject ids that are not in the catalog of the category they were filed under."""
    errors = []
    for category in TagCategory:
        known = {tag.id for tag in get_catalog(category)}
        unknown = profile.ids_for(category) - known
        if unknown:
            errors.append(f"{category.value}: {', '.join(sorted(unknown))}")
    if errors:
        raise HTTPException(
            status_code=422, detail=f"Unknown restriction ids ({'; '.join(errors)})"
        )


def _get_profile_or_404(store: ProfileStore) -> UserProfile:
    profile = store.profile
    if profile is None:
        raise HTTPException(status_code=404, detail="Profile not set up")
    return profile


@router.get("/tags")
async def list_tags():
    """All restriction tags grouped by category."""
    return {
        category.value: [tag.model_dump() for tag in get_catalog(category)]
        for category in TagCategory
    }


@router.get("/profile")
async def get_profile(profile_store: ProfileStore = Depends(get_profile_store)):
    profile = _get_profile_or_404(profile_store)
    return {
        **profile.to_json(),
        "restrictionCount": profile.restriction_count,
    }


@router.put("/profile")
async def save_profile(
    profile: UserProfile, profile_store: ProfileStore = Depends(get_profile_store)
):
    """Create or replace the whole profile (onboarding and settings save)."""
    _check_catalog_membership(profile)
    profile_store.save(profile)
    return profile.to_json()


@router.patch("/profile")
async def update_profile(
    body: ProfileUpdateRequest,
    profile_store: ProfileStore = Depends(get_profile_store),
):
    _get_profile_or_404(profile_store)
    with profile_store.edit() as draft:
        if body.native_language:
            draft.native_language = body.native_language
        if body.save_history is not None:
            draft.save_history = body.save_history
    return profile_store.profile.to_json()


@router.post("/profile/restrictions/toggle")
async def toggle_restriction(
    body: ToggleRestrictionRequest,
    profile_store: ProfileStore = Depends(get_profile_store),
):
    """Select or deselect one restriction within its category."""
    if body.tag_id not in {tag.id for tag in get_catalog(body.category)}:
        raise HTTPException(
            status_code=422,
            detail=f"'{body.tag_id}' is not a {body.category.value} id",
        )

    _get_profile_or_404(profile_store)
    with profile_store.edit() as draft:
        selected = draft.toggle(body.tag_id, body.category)

    return {
        "category": body.category.value,
        "tagId": body.tag_id,
        "selected": selected,
        "profile": profile_store.profile.to_json(),
    }
