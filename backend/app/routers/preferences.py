from fastapi import APIRouter, Depends
from app.auth import get_portal
from app.schemas.preferences import PreferencesResponse, PreferencesUpdate

router = APIRouter()


@router.get("", response_model=PreferencesResponse)
async def get_preferences(portal=Depends(get_portal)):
    return portal.preferences.as_dict()


@router.put("", response_model=PreferencesResponse)
async def update_preferences(data: PreferencesUpdate, portal=Depends(get_portal)):
    prefs = portal.preferences
    if data.theme is not None:
        prefs.set_theme(data.theme)
    if data.onboarding_completed:
        prefs.mark_onboarding_completed()
    if data.profile_completed:
        prefs.mark_profile_completed()
    return prefs.as_dict()
