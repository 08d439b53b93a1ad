# profile router — read and edit the signed-in user's own profile
# a student's phone is what teachers register them by, so it is kept as digits and unique

import logging

from bson import ObjectId
from fastapi import APIRouter, Depends, HTTPException, status

from calmcampus.models.profile import ProfileResponse, ProfileUpdate
from calmcampus.services import roster
from calmcampus.services.db import Database, get_db
from calmcampus.dependencies import get_current_user

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/profile", tags=["profile"])


def _to_response(user: dict) -> ProfileResponse:
    return ProfileResponse(
        id=user["id"],
        email=user.get("email") or "",
        role=user.get("role", "student"),
        firstName=user.get("first_name") or "",
        lastName=user.get("last_name") or "",
        phone=user.get("phone") or "",
        collegeName=user.get("college_name") or "",
        course=user.get("course") or "",
        yearOfStudy=user.get("year_of_study") or "",
        guardianPhone=user.get("guardian_phone") or "",
    )


@router.get("", response_model=ProfileResponse)
async def get_profile(current_user: dict = Depends(get_current_user)):
    return _to_response(current_user)


@router.patch("", response_model=ProfileResponse)
async def update_profile(
    body: ProfileUpdate,
    current_user: dict = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    """partial update; unset fields are left alone"""
    update = body.model_dump(exclude_none=True)

    if "phone" in update:
        phone = roster.clean_phone(update["phone"])
        if not phone:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="Phone number must contain digits",
            )
        taken = await db.users.find_one({
            "role": current_user.get("role"),
            "phone": phone,
            "_id": {"$ne": ObjectId(current_user["id"])},
        })
        if taken:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="This phone number is already used by another account",
            )
        update["phone"] = phone

    if "guardian_phone" in update:
        update["guardian_phone"] = roster.clean_phone(update["guardian_phone"])

    for key in ("first_name", "last_name", "college_name", "course", "year_of_study"):
        if key in update:
            update[key] = update[key].strip()
    if update.get("first_name") == "":
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="First name cannot be blank",
        )

    if not update:
        return _to_response(current_user)

    await db.users.update_one({"_id": ObjectId(current_user["id"])}, {"$set": update})

    # teacher directory rows carry a copy of the student's phone
    if "phone" in update and current_user.get("role") == "student":
        await db.teacher_student_relationships.update_many(
            {"student_id": current_user["id"]},
            {"$set": {"student_phone": update["phone"]}},
        )

    logger.info(f"Profile updated for user {current_user['id']}: {sorted(update)}")
    return _to_response({**current_user, **update})
