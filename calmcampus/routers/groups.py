# groups router — peer support groups and membership
# teachers create groups and toggle them active; students browse, join and leave

import logging
import uuid
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, status

from calmcampus.models.group import GroupActiveUpdate, GroupCreate, GroupResponse
from calmcampus.services import peer_groups
from calmcampus.services.db import Database, get_db
from calmcampus.dependencies import get_current_user, require_role

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/groups", tags=["groups"])


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _doc_to_group(doc: dict, is_member: bool, member_count: int) -> GroupResponse:
    return GroupResponse(
        id=doc.get("group_id", str(doc.get("_id", ""))),
        name=doc.get("name", ""),
        description=doc.get("description") or "",
        createdBy=doc.get("created_by", ""),
        isActive=bool(doc.get("is_active", False)),
        isMember=is_member,
        memberCount=member_count,
        createdAt=doc.get("created_at", ""),
    )


async def _require_group(group_id: str, db: Database) -> dict:
    group = await peer_groups.get_group(group_id, db)
    if not group:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Group not found")
    return group


@router.get("", response_model=list[GroupResponse])
async def list_groups(
    current_user: dict = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    """active groups plus any inactive ones the caller created"""
    user_id = current_user["id"]
    cursor = db.peer_groups.find(
        {"$or": [{"is_active": True}, {"created_by": user_id}]}
    ).sort("created_at", -1)
    groups = [doc async for doc in cursor]

    joined = {
        doc["group_id"]
        async for doc in db.group_members.find({"user_id": user_id}, {"group_id": 1})
    }

    results = []
    for doc in groups:
        count = await peer_groups.member_count(doc["group_id"], db)
        results.append(_doc_to_group(doc, doc["group_id"] in joined, count))
    return results


@router.post("", response_model=GroupResponse, status_code=status.HTTP_201_CREATED)
async def create_group(
    body: GroupCreate,
    current_user: dict = Depends(require_role("teacher")),
    db: Database = Depends(get_db),
):
    """teacher creates a new peer support group"""
    doc = {
        "group_id": uuid.uuid4().hex[:12],
        "name": body.name.strip(),
        "description": body.description,
        "created_by": current_user["id"],
        "is_active": True,
        "created_at": _now().isoformat(),
    }
    await db.peer_groups.insert_one(doc)
    logger.info(f"Group {doc['group_id']} created by teacher {current_user['id']}")
    return _doc_to_group(doc, False, 0)


@router.patch("/{group_id}/active", response_model=GroupResponse)
async def set_group_active(
    group_id: str,
    body: GroupActiveUpdate,
    current_user: dict = Depends(require_role("teacher")),
    db: Database = Depends(get_db),
):
    """activate or deactivate a group — creator only"""
    group = await _require_group(group_id, db)
    if group.get("created_by") != current_user["id"]:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the group creator can change this group",
        )

    await db.peer_groups.update_one({"group_id": group_id}, {"$set": {"is_active": body.is_active}})
    logger.info(f"Group {group_id} is_active={body.is_active}")

    updated = await _require_group(group_id, db)
    is_member = await peer_groups.is_member(group_id, current_user["id"], db)
    return _doc_to_group(updated, is_member, await peer_groups.member_count(group_id, db))


@router.post("/{group_id}/join", response_model=GroupResponse)
async def join_group(
    group_id: str,
    current_user: dict = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    """join an active group; joining twice is a no-op"""
    group = await _require_group(group_id, db)
    if not group.get("is_active"):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="This group is not active")

    await db.group_members.update_one(
        {"group_id": group_id, "user_id": current_user["id"]},
        {"$setOnInsert": {"joined_at": _now().isoformat()}},
        upsert=True,
    )
    logger.info(f"User {current_user['id']} joined group {group_id}")
    return _doc_to_group(group, True, await peer_groups.member_count(group_id, db))


@router.delete("/{group_id}/membership", status_code=status.HTTP_204_NO_CONTENT)
async def leave_group(
    group_id: str,
    current_user: dict = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    await _require_group(group_id, db)
    result = await db.group_members.delete_one({"group_id": group_id, "user_id": current_user["id"]})
    if result.deleted_count == 0:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="You are not a member of this group")
    logger.info(f"User {current_user['id']} left group {group_id}")
