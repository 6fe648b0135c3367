from pydantic import BaseModel
from typing import Literal, Optional


class PreferencesResponse(BaseModel):
    theme: Literal["light", "dark"] = "light"
    onboarding_completed: bool = False
    profile_completed: bool = False


class PreferencesUpdate(BaseModel):
    theme: Optional[Literal["light", "dark"]] = None
    onboarding_completed: Optional[bool] = None
    profile_completed: Optional[bool] = None
