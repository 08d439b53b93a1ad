# appointments router — counseling bookings
# students book and manage their own; teachers schedule, confirm and manage their students'

import logging
import uuid
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Query, status

from calmcampus.models.appointment import (
    AppointmentCreate,
    AppointmentResponse,
    AppointmentUpdate,
    TeacherAppointmentCreate,
)
from calmcampus.services import roster
from calmcampus.services.db import Database, get_db
from calmcampus.services.wellness_stats import parse_timestamp
from calmcampus.dependencies import get_current_user, require_role

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/appointments", tags=["appointments"])


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _normalize_time(value: str) -> str:
    """store scheduled_at as a utc iso string so range queries compare correctly"""
    parsed = parse_timestamp(value)
    if parsed is None:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="scheduledAt must be an ISO-8601 timestamp",
        )
    return parsed.astimezone(timezone.utc).isoformat()


def _doc_to_appointment(doc: dict, student_name: str | None = None) -> AppointmentResponse:
    return AppointmentResponse(
        id=doc.get("appointment_id", str(doc.get("_id", ""))),
        userId=doc.get("user_id", ""),
        appointmentType=doc.get("appointment_type", ""),
        counselorName=doc.get("counselor_name", ""),
        scheduledAt=doc.get("scheduled_at", ""),
        status=doc.get("status") or "scheduled",
        notes=doc.get("notes"),
        studentName=student_name,
        createdAt=doc.get("created_at", ""),
    )


async def _insert_appointment(body: AppointmentCreate, user_id: str, created_by: str, initial_status: str, db: Database) -> dict:
    doc = {
        "appointment_id": uuid.uuid4().hex[:12],
        "user_id": user_id,
        "appointment_type": body.appointment_type,
        "counselor_name": body.counselor_name,
        "scheduled_at": _normalize_time(body.scheduled_at),
        "status": initial_status,
        "notes": body.notes,
        "created_by": created_by,
        "created_at": _now().isoformat(),
    }
    await db.appointments.insert_one(doc)
    logger.info(f"Appointment {doc['appointment_id']} ({initial_status}) created for user {user_id}")
    return doc


async def _load_managed(appointment_id: str, current_user: dict, db: Database) -> dict:
    """the appointment, if the caller owns it or teaches its student"""
    doc = await db.appointments.find_one({"appointment_id": appointment_id})
    if not doc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Appointment not found")

    if current_user["role"] == "student" and doc.get("user_id") == current_user["id"]:
        return doc
    if current_user["role"] == "teacher" and await roster.teacher_has_student(
        current_user["id"], doc.get("user_id", ""), db
    ):
        return doc

    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="You do not have access to this appointment",
    )


@router.post("", response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
async def book_appointment(
    body: AppointmentCreate,
    current_user: dict = Depends(require_role("student")),
    db: Database = Depends(get_db),
):
    """student books counseling — pending until a teacher confirms"""
    doc = await _insert_appointment(body, current_user["id"], current_user["id"], "pending", db)
    return _doc_to_appointment(doc)


@router.post("/schedule", response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
async def schedule_for_student(
    body: TeacherAppointmentCreate,
    current_user: dict = Depends(require_role("teacher")),
    db: Database = Depends(get_db),
):
    """teacher schedules an appointment for one of their students"""
    if not await roster.teacher_has_student(current_user["id"], body.student_id, db):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have access to this student",
        )
    doc = await _insert_appointment(body, body.student_id, current_user["id"], "scheduled", db)
    profile = await roster.get_profile(body.student_id, db)
    return _doc_to_appointment(doc, roster.display_name(profile))


@router.get("", response_model=list[AppointmentResponse])
async def list_appointments(
    upcoming: bool = Query(False, description="only appointments scheduled from now on"),
    limit: int = Query(100, ge=1, le=500),
    current_user: dict = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    """students see their own; teachers see all of their students' appointments"""
    if current_user["role"] == "student":
        query: dict = {"user_id": current_user["id"]}
        names: dict[str, str] = {}
    elif current_user["role"] == "teacher":
        student_ids = await roster.active_student_ids(current_user["id"], db)
        if not student_ids:
            return []
        query = {"user_id": {"$in": student_ids}}
        profiles = await roster.get_profiles(student_ids, db)
        names = {sid: roster.display_name(p) for sid, p in profiles.items()}
    else:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")

    if upcoming:
        query["scheduled_at"] = {"$gte": _now().isoformat()}

    cursor = db.appointments.find(query).sort("scheduled_at", 1).limit(limit)
    return [_doc_to_appointment(doc, names.get(doc.get("user_id"))) async for doc in cursor]


@router.patch("/{appointment_id}", response_model=AppointmentResponse)
async def update_appointment(
    appointment_id: str,
    body: AppointmentUpdate,
    current_user: dict = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    """edit details; only teachers may change the status"""
    await _load_managed(appointment_id, current_user, db)

    update_fields = body.model_dump(exclude_none=True)
    if "status" in update_fields and current_user["role"] != "teacher":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only teachers can change appointment status",
        )
    if "scheduled_at" in update_fields:
        update_fields["scheduled_at"] = _normalize_time(update_fields["scheduled_at"])

    if update_fields:
        update_fields["updated_at"] = _now().isoformat()
        await db.appointments.update_one(
            {"appointment_id": appointment_id},
            {"$set": update_fields},
        )
        logger.info(f"Appointment {appointment_id} updated by {current_user['id']}: {sorted(update_fields)}")

    updated = await db.appointments.find_one({"appointment_id": appointment_id})
    return _doc_to_appointment(updated)


@router.post("/{appointment_id}/confirm", response_model=AppointmentResponse)
async def confirm_appointment(
    appointment_id: str,
    current_user: dict = Depends(require_role("teacher")),
    db: Database = Depends(get_db),
):
    """teacher confirms a pending or scheduled appointment"""
    await _load_managed(appointment_id, current_user, db)
    await db.appointments.update_one(
        {"appointment_id": appointment_id},
        {"$set": {"status": "confirmed", "updated_at": _now().isoformat()}},
    )
    logger.info(f"Appointment {appointment_id} confirmed by teacher {current_user['id']}")
    updated = await db.appointments.find_one({"appointment_id": appointment_id})
    return _doc_to_appointment(updated)


@router.delete("/{appointment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_appointment(
    appointment_id: str,
    current_user: dict = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    """hard delete — owner student or their teacher"""
    await _load_managed(appointment_id, current_user, db)
    await db.appointments.delete_one({"appointment_id": appointment_id})
    logger.info(f"Appointment {appointment_id} deleted by {current_user['id']}")
