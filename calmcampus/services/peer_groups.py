# peer group helpers — group lookup, membership and access checks
# shared by the groups router and the chat relay endpoints

import logging
from typing import Optional

from calmcampus.services.db import Database

logger = logging.getLogger(__name__)


async def get_group(group_id: str, db: Database) -> Optional[dict]:
    return await db.peer_groups.find_one({"group_id": group_id})


async def is_member(group_id: str, user_id: str, db: Database) -> bool:
    membership = await db.group_members.find_one({"group_id": group_id, "user_id": user_id})
    return membership is not None


async def can_access(group: dict, user: dict, db: Database) -> bool:
    """active group, and the user is a member or the teacher who created it"""
    if not group.get("is_active"):
        return False
    if group.get("created_by") == user["id"]:
        return True
    return await is_member(group["group_id"], user["id"], db)


async def member_count(group_id: str, db: Database) -> int:
    return await db.group_members.count_documents({"group_id": group_id})
