# notifications router — stored notifications merged with generated reminders

import logging
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, HTTPException, status

from calmcampus.config import settings
from calmcampus.models.notification import NotificationListResponse, NotificationResponse
from calmcampus.services import notifications as builder
from calmcampus.services.db import Database, get_db
from calmcampus.dependencies import get_current_user

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/notifications", tags=["notifications"])


def _now() -> datetime:
    return datetime.now(timezone.utc)


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    current_user: dict = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    """stored notifications, upcoming appointment reminders and the daily mood nudge"""
    user_id = current_user["id"]
    now = _now()

    cursor = db.notifications.find({"user_id": user_id}).sort("created_at", -1).limit(50)
    stored = [builder.stored_to_notification(doc) async for doc in cursor]

    upcoming = await db.appointments.find({
        "user_id": user_id,
        "status": {"$ne": "cancelled"},
        "scheduled_at": {
            "$gte": now.isoformat(),
            "$lte": (now + timedelta(hours=builder.REMINDER_WINDOW_HOURS + 1)).isoformat(),
        },
    }).sort("scheduled_at", 1).to_list(length=None)
    reminders = builder.appointment_reminders(upcoming, now)

    nudges = []
    if current_user.get("role") == "student":
        today = await db.mood_entries.find_one({"user_id": user_id, "date": now.date().isoformat()})
        nudges = builder.mood_reminder(today is not None, now, settings.MOOD_REMINDER_HOUR)

    merged = builder.merge_notifications(stored, reminders, nudges)
    return NotificationListResponse(
        notifications=[NotificationResponse(**n) for n in merged],
        unreadCount=sum(1 for n in merged if not n["read"]),
    )


@router.post("/read-all")
async def mark_all_read(
    current_user: dict = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    result = await db.notifications.update_many(
        {"user_id": current_user["id"], "read": False},
        {"$set": {"read": True}},
    )
    logger.info(f"Marked {result.modified_count} notifications read for {current_user['id']}")
    return {"updated": result.modified_count}


@router.post("/{notification_id}/read")
async def mark_read(
    notification_id: str,
    current_user: dict = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    """generated reminders have nothing stored, so marking them is a no-op"""
    if builder.is_generated(notification_id):
        return {"id": notification_id, "read": True}

    result = await db.notifications.update_one(
        {"user_id": current_user["id"], "notification_id": notification_id},
        {"$set": {"read": True}},
    )
    if result.matched_count == 0:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
    return {"id": notification_id, "read": True}
