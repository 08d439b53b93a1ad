# seed script — creates a demo teacher, students, links, a peer group and some moods
# run once: python -m calmcampus.seed

import asyncio
import logging
from datetime import datetime, timedelta, timezone

from calmcampus.services.db import db
from calmcampus.services.auth_service import create_access_token

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)

TEACHER = {
    "email": "priya.sharma@calmcampus.edu",
    "first_name": "Priya",
    "last_name": "Sharma",
    "role": "teacher",
    "phone": "919800000001",
    "college_name": "City College",
}

STUDENTS = [
    {"email": "aarav.mehta@calmcampus.edu", "first_name": "Aarav", "last_name": "Mehta", "phone": "919811111111", "course": "B.Sc Physics", "year_of_study": "2", "guardian_phone": "919822222222", "moods": [2, 1, 2, 3, 2]},
    {"email": "diya.kapoor@calmcampus.edu", "first_name": "Diya", "last_name": "Kapoor", "phone": "919833333333", "course": "B.Com", "year_of_study": "1", "guardian_phone": "919844444444", "moods": [4, 5, 4, 4]},
    {"email": "kabir.singh@calmcampus.edu", "first_name": "Kabir", "last_name": "Singh", "phone": "919855555555", "course": "B.A. Psychology", "year_of_study": "3", "guardian_phone": "", "moods": [3, 3, 4]},
]


async def _upsert_user(profile: dict, now: datetime) -> str:
    existing = await db.users.find_one({"email": profile["email"]})
    if existing:
        logger.info(f"User already exists: {profile['email']}")
        return str(existing["_id"])
    doc = {**profile, "created_at": now.isoformat()}
    doc.setdefault("college_name", TEACHER["college_name"])
    result = await db.users.insert_one(doc)
    logger.info(f"Created {profile['role']}: {profile['first_name']} {profile['last_name']}")
    return str(result.inserted_id)


async def seed():
    """idempotent: existing users, links and moods are left as they are"""
    await db.connect()
    await db.ensure_indexes()
    now = datetime.now(timezone.utc)

    teacher_id = await _upsert_user(TEACHER, now)

    student_ids = []
    for s in STUDENTS:
        moods = s["moods"]
        profile = {k: v for k, v in s.items() if k != "moods"}
        student_id = await _upsert_user({**profile, "role": "student"}, now)
        student_ids.append(student_id)

        await db.teacher_student_relationships.update_one(
            {"teacher_id": teacher_id, "student_id": student_id},
            {"$setOnInsert": {
                "student_phone": s["phone"],
                "notes": "",
                "is_active": True,
                "assigned_at": now.isoformat(),
            }},
            upsert=True,
        )

        # consecutive daily moods ending today
        for offset, value in enumerate(reversed(moods)):
            day = now - timedelta(days=offset)
            await db.mood_entries.update_one(
                {"user_id": student_id, "date": day.date().isoformat()},
                {"$setOnInsert": {
                    "mood_value": value,
                    "created_at": day.isoformat(),
                    "updated_at": day.isoformat(),
                }},
                upsert=True,
            )
    logger.info(f"Linked {len(student_ids)} students to teacher {teacher_id}")

    group = await db.peer_groups.find_one({"created_by": teacher_id, "name": "Exam Stress Circle"})
    if not group:
        group_id = "examstress01"
        await db.peer_groups.insert_one({
            "group_id": group_id,
            "name": "Exam Stress Circle",
            "description": "A space to share how exam season is going",
            "created_by": teacher_id,
            "is_active": True,
            "created_at": now.isoformat(),
        })
        for student_id in student_ids:
            await db.group_members.update_one(
                {"group_id": group_id, "user_id": student_id},
                {"$setOnInsert": {"joined_at": now.isoformat()}},
                upsert=True,
            )
        logger.info(f"Created peer group {group_id}")

    # dev tokens so the api can be exercised without a sign-in flow
    logger.info(f"Teacher token: {create_access_token({'sub': teacher_id, 'role': 'teacher'})}")
    for student_id in student_ids:
        logger.info(f"Student {student_id} token: {create_access_token({'sub': student_id, 'role': 'student'})}")

    logger.info("Seed complete!")
    await db.close()


if __name__ == "__main__":
    asyncio.run(seed())
