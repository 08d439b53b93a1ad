# wellness router — self-care captures and the student's weekly stats card
# stats degrade to zeros plus a notice when the store is unavailable

import logging
import uuid
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Query, status
from pymongo.errors import PyMongoError

from calmcampus.config import settings
from calmcampus.models.wellness import (
    ActivityCompletionCreate,
    ActivityCompletionResponse,
    WellnessSessionCreate,
    WellnessSessionResponse,
    WellnessStats,
)
from calmcampus.services.db import Database, get_db
from calmcampus.services.wellness_stats import summarize_weekly_wellness
from calmcampus.dependencies import require_role

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/wellness", tags=["wellness"])

STATS_UNAVAILABLE = "Unable to load your wellness stats right now. Please try again."


def _now() -> datetime:
    return datetime.now(timezone.utc)


def doc_to_completion(doc: dict) -> ActivityCompletionResponse:
    return ActivityCompletionResponse(
        id=doc.get("completion_id", str(doc.get("_id", ""))),
        activityId=doc.get("activity_id", ""),
        actualDurationMinutes=doc.get("actual_duration_minutes"),
        moodBefore=doc.get("mood_before"),
        moodAfter=doc.get("mood_after"),
        completedAt=doc.get("completed_at", ""),
    )


def _doc_to_session(doc: dict) -> WellnessSessionResponse:
    return WellnessSessionResponse(
        id=doc.get("session_id", str(doc.get("_id", ""))),
        sessionType=doc.get("session_type", ""),
        durationMinutes=doc.get("duration_minutes", 0),
        moodBefore=doc.get("mood_before"),
        moodAfter=doc.get("mood_after"),
        createdAt=doc.get("created_at", ""),
    )


@router.post(
    "/activity-completions",
    response_model=ActivityCompletionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def complete_activity(
    body: ActivityCompletionCreate,
    current_user: dict = Depends(require_role("student")),
    db: Database = Depends(get_db),
):
    """record a finished self-care activity"""
    doc = {
        "completion_id": uuid.uuid4().hex[:12],
        "user_id": current_user["id"],
        "activity_id": body.activity_id,
        "actual_duration_minutes": body.actual_duration_minutes,
        "mood_before": body.mood_before,
        "mood_after": body.mood_after,
        "completed_at": _now().isoformat(),
    }
    await db.activity_completions.insert_one(doc)
    logger.info(f"Activity {body.activity_id} completed by user {current_user['id']}")
    return doc_to_completion(doc)


@router.get("/activity-completions", response_model=list[ActivityCompletionResponse])
async def list_activity_completions(
    today_only: bool = Query(False, alias="todayOnly"),
    current_user: dict = Depends(require_role("student")),
    db: Database = Depends(get_db),
):
    """own activity completions, newest first"""
    query: dict = {"user_id": current_user["id"]}
    if today_only:
        start_of_day = _now().replace(hour=0, minute=0, second=0, microsecond=0)
        query["completed_at"] = {"$gte": start_of_day.isoformat()}

    cursor = db.activity_completions.find(query).sort("completed_at", -1)
    return [doc_to_completion(doc) async for doc in cursor]


@router.post("/sessions", response_model=WellnessSessionResponse, status_code=status.HTTP_201_CREATED)
async def log_session(
    body: WellnessSessionCreate,
    current_user: dict = Depends(require_role("student")),
    db: Database = Depends(get_db),
):
    """record a wellness session (meditation, breathing, ...)"""
    doc = {
        "session_id": uuid.uuid4().hex[:12],
        "user_id": current_user["id"],
        "session_type": body.session_type,
        "duration_minutes": body.duration_minutes,
        "mood_before": body.mood_before,
        "mood_after": body.mood_after,
        "created_at": _now().isoformat(),
    }
    await db.wellness_sessions.insert_one(doc)
    logger.info(f"Wellness session ({body.session_type}, {body.duration_minutes}m) by user {current_user['id']}")
    return _doc_to_session(doc)


@router.get("/stats", response_model=WellnessStats)
async def get_wellness_stats(
    current_user: dict = Depends(require_role("student")),
    db: Database = Depends(get_db),
):
    """weekly average mood, streak, active minutes and session totals"""
    user_id = current_user["id"]
    try:
        moods = await db.mood_entries.find({"user_id": user_id}).sort("date", -1).to_list(length=None)
        sessions = await db.wellness_sessions.find({"user_id": user_id}).to_list(length=None)
        completions = await db.activity_completions.find({"user_id": user_id}).to_list(length=None)
    except PyMongoError as e:
        logger.warning(f"Could not load wellness stats for {user_id}: {e}")
        return WellnessStats(weeklyGoalMinutes=settings.WEEKLY_GOAL_MINUTES, notice=STATS_UNAVAILABLE)

    summary = summarize_weekly_wellness(
        moods, sessions, completions, _now(), settings.WEEKLY_GOAL_MINUTES
    )
    return WellnessStats(**summary)
