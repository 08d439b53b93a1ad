# teacher router — student registration, directory, roll-up stats, insights, ai analysis
# teacher-only endpoints; a teacher only ever sees students with an active relationship

import logging
from collections import Counter, defaultdict
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pymongo.errors import PyMongoError

from calmcampus.models.student import (
    AiAnalysisResponse,
    StudentInsights,
    StudentRegister,
    StudentSummary,
)
from calmcampus.models.wellness import TeacherStats
from calmcampus.routers.moods import doc_to_mood
from calmcampus.routers.wellness import doc_to_completion
from calmcampus.services import roster
from calmcampus.services.ai_analysis import AnalysisError, request_analysis
from calmcampus.services.db import Database, get_db
from calmcampus.services.wellness_stats import (
    classify_mood,
    mood_trend,
    mood_values,
    teacher_rollup,
    trailing_window_start,
    weekly_average_mood,
)
from calmcampus.dependencies import require_role

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/teacher", tags=["teacher"])

RECENT_APPOINTMENT_DAYS = 30
INSIGHT_HISTORY_DAYS = 30
STATS_UNAVAILABLE = "Unable to load student statistics right now. Please try again."


def _now() -> datetime:
    return datetime.now(timezone.utc)


async def _require_student(teacher: dict, student_id: str, db: Database) -> dict:
    """the student's profile, if this teacher actively monitors them"""
    if not await roster.teacher_has_student(teacher["id"], student_id, db):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have access to this student",
        )
    profile = await roster.get_profile(student_id, db)
    if not profile:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Student not found")
    return profile


async def _build_summaries(relations: list[dict], db: Database) -> list[StudentSummary]:
    """join relationships with profiles and per-student wellness signals"""
    now = _now()
    student_ids = [r["student_id"] for r in relations]
    profiles = await roster.get_profiles(student_ids, db)

    week_cutoff = trailing_window_start(now).isoformat()
    weekly_by_student: dict[str, list[dict]] = defaultdict(list)
    async for doc in db.mood_entries.find(
        {"user_id": {"$in": student_ids}, "created_at": {"$gte": week_cutoff}}
    ):
        weekly_by_student[doc["user_id"]].append(doc)

    appt_cutoff = (now - timedelta(days=RECENT_APPOINTMENT_DAYS)).isoformat()
    appointment_counts = Counter()
    async for doc in db.appointments.find(
        {"user_id": {"$in": student_ids}, "scheduled_at": {"$gte": appt_cutoff}},
        {"user_id": 1},
    ):
        appointment_counts[doc["user_id"]] += 1

    summaries = []
    for relation in relations:
        student_id = relation["student_id"]
        profile = profiles.get(student_id)
        if not profile:
            logger.warning(f"Relationship points at missing profile {student_id}")
            continue

        latest = await db.mood_entries.find(
            {"user_id": student_id}
        ).sort("created_at", -1).limit(1).to_list(length=1)
        latest_mood = latest[0].get("mood_value") if latest else None

        weekly = weekly_by_student.get(student_id, [])
        avg_weekly = weekly_average_mood(weekly, now)
        # directory status falls back to the latest mood when the week is empty
        status_value = avg_weekly if avg_weekly is not None else latest_mood

        summaries.append(StudentSummary(
            studentId=student_id,
            firstName=profile.get("first_name") or "",
            lastName=profile.get("last_name") or "",
            email=profile.get("email") or "",
            collegeName=profile.get("college_name") or "",
            course=profile.get("course") or "",
            yearOfStudy=profile.get("year_of_study") or "",
            studentPhone=relation.get("student_phone") or "",
            guardianPhone=profile.get("guardian_phone") or "",
            latestMood=latest_mood,
            latestMoodDate=latest[0].get("created_at") if latest else None,
            weeklyMoodEntries=len(weekly),
            avgWeeklyMood=round(avg_weekly, 2) if avg_weekly is not None else None,
            moodStatus=classify_mood(status_value),
            recentAppointments=appointment_counts.get(student_id, 0),
            assignedAt=relation.get("assigned_at", ""),
            teacherNotes=relation.get("notes") or "",
        ))
    return summaries


def _matches_filters(summary: StudentSummary, search: str | None, mood: str, appointments: str) -> bool:
    if search:
        term = search.lower()
        haystack = [
            summary.first_name, summary.last_name, summary.email,
            summary.student_phone, summary.course, summary.college_name,
        ]
        if not any(term in field.lower() for field in haystack):
            return False

    if mood != "all" and summary.mood_status != mood:
        return False

    if appointments == "has-appointments" and summary.recent_appointments == 0:
        return False
    if appointments == "no-appointments" and summary.recent_appointments > 0:
        return False

    return True


@router.get("/stats", response_model=TeacherStats)
async def get_teacher_stats(
    current_user: dict = Depends(require_role("teacher")),
    db: Database = Depends(get_db),
):
    """critical alerts, weekly engagement and confirmed upcoming appointments"""
    now = _now()
    try:
        student_ids = await roster.active_student_ids(current_user["id"], db)
        if not student_ids:
            return TeacherStats()

        weekly_moods = await db.mood_entries.find(
            {
                "user_id": {"$in": student_ids},
                "created_at": {"$gte": trailing_window_start(now).isoformat()},
            },
            {"user_id": 1, "mood_value": 1, "created_at": 1},
        ).to_list(length=None)

        confirmed_upcoming = await db.appointments.count_documents({
            "user_id": {"$in": student_ids},
            "status": "confirmed",
            "scheduled_at": {"$gte": now.isoformat()},
        })
    except PyMongoError as e:
        logger.warning(f"Could not load teacher stats for {current_user['id']}: {e}")
        return TeacherStats(notice=STATS_UNAVAILABLE)

    return TeacherStats(**teacher_rollup(student_ids, weekly_moods, confirmed_upcoming, now))


@router.get("/students", response_model=list[StudentSummary])
async def list_students(
    search: str = Query(None, description="match name, email, phone, course or college"),
    mood: str = Query("all", pattern="^(all|critical|neutral|good|no-data)$"),
    appointments: str = Query("all", pattern="^(all|has-appointments|no-appointments)$"),
    current_user: dict = Depends(require_role("teacher")),
    db: Database = Depends(get_db),
):
    """monitored students with their latest wellness signals"""
    cursor = db.teacher_student_relationships.find(
        {"teacher_id": current_user["id"], "is_active": True}
    )
    relations = [doc async for doc in cursor]
    if not relations:
        return []

    summaries = await _build_summaries(relations, db)
    return [s for s in summaries if _matches_filters(s, search, mood, appointments)]


@router.post("/students", response_model=StudentSummary, status_code=status.HTTP_201_CREATED)
async def register_student(
    body: StudentRegister,
    current_user: dict = Depends(require_role("teacher")),
    db: Database = Depends(get_db),
):
    """link a student to this teacher by the phone number on the student's profile"""
    phone = roster.clean_phone(body.student_phone)
    if not phone:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Please enter the student's phone number",
        )

    student = await db.users.find_one({"role": "student", "phone": phone})
    if not student:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No student found with this phone number. Make sure the student has completed their profile.",
        )

    student_id = str(student["_id"])
    teacher_id = current_user["id"]
    now = _now().isoformat()

    existing = await db.teacher_student_relationships.find_one(
        {"teacher_id": teacher_id, "student_id": student_id}
    )
    if existing and existing.get("is_active"):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"{roster.display_name(student)} is already in your student list",
        )

    fields = {"student_phone": phone, "notes": body.notes, "is_active": True, "assigned_at": now}
    if existing:
        # previously removed — reactivate the same link
        await db.teacher_student_relationships.update_one(
            {"teacher_id": teacher_id, "student_id": student_id},
            {"$set": fields},
        )
    else:
        await db.teacher_student_relationships.insert_one(
            {"teacher_id": teacher_id, "student_id": student_id, **fields}
        )
    logger.info(f"Student {student_id} registered to teacher {teacher_id}")

    relation = {"teacher_id": teacher_id, "student_id": student_id, **fields}
    summaries = await _build_summaries([relation], db)
    return summaries[0]


@router.delete("/students/{student_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_student(
    student_id: str,
    current_user: dict = Depends(require_role("teacher")),
    db: Database = Depends(get_db),
):
    """stop monitoring a student (soft delete of the relationship)"""
    result = await db.teacher_student_relationships.update_one(
        {"teacher_id": current_user["id"], "student_id": student_id, "is_active": True},
        {"$set": {"is_active": False}},
    )
    if result.modified_count == 0:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Student not in your list")
    logger.info(f"Student {student_id} removed from teacher {current_user['id']}")


@router.get("/students/{student_id}/insights", response_model=StudentInsights)
async def get_student_insights(
    student_id: str,
    current_user: dict = Depends(require_role("teacher")),
    db: Database = Depends(get_db),
):
    """mood history, activity completions and mood trend for one student"""
    profile = await _require_student(current_user, student_id, db)
    now = _now()

    since = (now.date() - timedelta(days=INSIGHT_HISTORY_DAYS)).isoformat()
    moods = await db.mood_entries.find(
        {"user_id": student_id, "date": {"$gte": since}}
    ).sort("date", -1).to_list(length=None)
    # rows without a mood value are skipped everywhere below
    moods = [m for m in moods if m.get("mood_value") is not None]
    completions = await db.activity_completions.find(
        {"user_id": student_id}
    ).sort("completed_at", -1).to_list(length=None)

    values = mood_values(moods)
    average = round(sum(values) / len(values), 2) if values else None

    return StudentInsights(
        studentId=student_id,
        studentName=roster.display_name(profile),
        moodEntries=[doc_to_mood(m) for m in moods],
        activityCompletions=[doc_to_completion(c) for c in completions],
        moodTrend=mood_trend(moods),
        averageMood=average,
        totalActivityMinutes=sum(c.get("actual_duration_minutes") or 0 for c in completions),
    )


@router.post("/students/{student_id}/ai-analysis", response_model=AiAnalysisResponse)
async def run_ai_analysis(
    student_id: str,
    current_user: dict = Depends(require_role("teacher")),
    db: Database = Depends(get_db),
):
    """ask the external analysis service about a student"""
    profile = await _require_student(current_user, student_id, db)

    phone = profile.get("phone")
    if not phone:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Selected student doesn't have a phone number available",
        )

    try:
        analysis = await request_analysis(phone, roster.display_name(profile), student_id)
    except AnalysisError as e:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Failed to generate AI analysis. Please try again.",
        ) from e

    return AiAnalysisResponse(studentId=student_id, analysis=analysis)
