# mood models — daily check-in payload and entry responses
# one entry per student per day, mood_value on a 1-5 scale

from typing import Optional
from pydantic import BaseModel, Field


class MoodCheckIn(BaseModel):
    """payload for the daily mood check-in (upserted on user + date)"""
    mood_value: int = Field(..., ge=1, le=5, alias="moodValue", description="mood score 1-5")

    model_config = {"populate_by_name": True}


class MoodEntryResponse(BaseModel):
    user_id: str = Field(..., alias="userId")
    date: str
    mood_value: int = Field(..., alias="moodValue")
    label: str = ""
    created_at: str = Field("", alias="createdAt")
    updated_at: Optional[str] = Field(None, alias="updatedAt")

    model_config = {"populate_by_name": True}
