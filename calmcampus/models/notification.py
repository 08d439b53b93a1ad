# notification models — stored and generated notifications share one shape

from typing import Literal
from pydantic import BaseModel, Field


class NotificationResponse(BaseModel):
    id: str
    type: Literal["appointment", "mood_reminder", "wellness_tip", "alert"]
    title: str
    message: str
    timestamp: str
    read: bool = False
    priority: Literal["low", "medium", "high"] = "low"


class NotificationListResponse(BaseModel):
    notifications: list[NotificationResponse] = Field(default_factory=list)
    unread_count: int = Field(0, alias="unreadCount")

    model_config = {"populate_by_name": True}
