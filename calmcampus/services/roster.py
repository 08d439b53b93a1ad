# roster helpers — teacher to student links and profile lookups
# relationships are soft-deleted, so every read filters on is_active

import logging
import re
from typing import Optional

from bson import ObjectId
from bson.errors import InvalidId

from calmcampus.services.db import Database

logger = logging.getLogger(__name__)


def clean_phone(raw: str) -> str:
    """keep digits only so formatted input matches stored profiles"""
    return re.sub(r"\D", "", raw or "")


def display_name(profile: Optional[dict]) -> str:
    if not profile:
        return ""
    return f"{profile.get('first_name') or ''} {profile.get('last_name') or ''}".strip()


async def active_student_ids(teacher_id: str, db: Database) -> list[str]:
    """ids of the students currently linked to a teacher"""
    cursor = db.teacher_student_relationships.find(
        {"teacher_id": teacher_id, "is_active": True},
        {"student_id": 1},
    )
    return [doc["student_id"] async for doc in cursor]


async def teacher_has_student(teacher_id: str, student_id: str, db: Database) -> bool:
    relation = await db.teacher_student_relationships.find_one(
        {"teacher_id": teacher_id, "student_id": student_id, "is_active": True}
    )
    return relation is not None


async def get_profile(user_id: str, db: Database) -> Optional[dict]:
    try:
        return await db.users.find_one({"_id": ObjectId(user_id)})
    except InvalidId:
        return None


async def get_profiles(user_ids: list[str], db: Database) -> dict[str, dict]:
    """profiles keyed by string id; invalid ids are skipped"""
    object_ids = []
    for uid in user_ids:
        try:
            object_ids.append(ObjectId(uid))
        except InvalidId:
            logger.warning(f"Skipping invalid user id: {uid}")

    if not object_ids:
        return {}

    profiles = {}
    async for doc in db.users.find({"_id": {"$in": object_ids}}):
        profiles[str(doc["_id"])] = doc
    return profiles
