# moods router — daily mood check-in and history
# one entry per student per day; repeating the check-in updates today's entry

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query

from calmcampus.models.mood import MoodCheckIn, MoodEntryResponse
from calmcampus.services.db import Database, get_db
from calmcampus.services.wellness_stats import MOOD_LABELS
from calmcampus.dependencies import require_role

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/moods", tags=["moods"])


def _now() -> datetime:
    return datetime.now(timezone.utc)


def doc_to_mood(doc: dict) -> MoodEntryResponse:
    mood_value = int(doc.get("mood_value") or 0)
    return MoodEntryResponse(
        userId=doc.get("user_id", ""),
        date=str(doc.get("date", "")),
        moodValue=mood_value,
        label=MOOD_LABELS.get(mood_value, ""),
        createdAt=doc.get("created_at", ""),
        updatedAt=doc.get("updated_at"),
    )


@router.put("/today", response_model=MoodEntryResponse)
async def check_in_mood(
    body: MoodCheckIn,
    current_user: dict = Depends(require_role("student")),
    db: Database = Depends(get_db),
):
    """record or update today's mood (upsert on user + date)"""
    now = _now()
    today = now.date().isoformat()
    key = {"user_id": current_user["id"], "date": today}

    await db.mood_entries.update_one(
        key,
        {
            "$set": {"mood_value": body.mood_value, "updated_at": now.isoformat()},
            "$setOnInsert": {"created_at": now.isoformat()},
        },
        upsert=True,
    )
    logger.info(f"Mood check-in {body.mood_value} for user {current_user['id']} on {today}")

    doc = await db.mood_entries.find_one(key)
    return doc_to_mood(doc)


@router.get("/today", response_model=Optional[MoodEntryResponse])
async def get_today_mood(
    current_user: dict = Depends(require_role("student")),
    db: Database = Depends(get_db),
):
    """today's entry, or null if the student has not checked in yet"""
    doc = await db.mood_entries.find_one(
        {"user_id": current_user["id"], "date": _now().date().isoformat()}
    )
    return doc_to_mood(doc) if doc else None


@router.get("", response_model=list[MoodEntryResponse])
async def list_moods(
    days: int = Query(30, ge=1, le=365),
    current_user: dict = Depends(require_role("student")),
    db: Database = Depends(get_db),
):
    """own mood history for the last N days, newest first"""
    since = (_now().date() - timedelta(days=days - 1)).isoformat()
    cursor = db.mood_entries.find(
        {"user_id": current_user["id"], "date": {"$gte": since}}
    ).sort("date", -1)
    return [doc_to_mood(doc) async for doc in cursor]
