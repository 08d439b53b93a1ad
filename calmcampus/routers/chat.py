# chat router — peer group messages over http and a realtime websocket relay
# every write is published to the change feed; each socket keeps its own timeline
# and forwards only the events that changed it

import asyncio
import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, WebSocket, WebSocketDisconnect, status
from pydantic import ValidationError
from pymongo.errors import PyMongoError

from calmcampus.models.group import MessageAuthor, MessageCreate, MessageEdit, MessageResponse
from calmcampus.services import peer_groups, roster
from calmcampus.services.chat_relay import ChangeEvent, ChangeFeed, ChatTimeline, get_feed
from calmcampus.services.db import Database, get_db
from calmcampus.dependencies import get_current_user, get_ws_user

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/groups", tags=["chat"])

# websocket close codes
WS_UNAUTHORIZED = 4401
WS_FORBIDDEN = 4403
WS_STORE_UNAVAILABLE = 1011

STORE_UNAVAILABLE = "The data store is unavailable. Please try again."


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _author(profile: Optional[dict]) -> dict:
    profile = profile or {}
    return {
        "first_name": profile.get("first_name", ""),
        "last_name": profile.get("last_name", ""),
    }


def _doc_to_record(doc: dict, profile: Optional[dict] = None) -> dict:
    """stored message -> change feed record, with the author's name attached"""
    return {
        "id": doc.get("message_id", str(doc.get("_id", ""))),
        "group_id": doc.get("group_id", ""),
        "user_id": doc.get("user_id", ""),
        "author": _author(profile),
        "message": doc.get("message", ""),
        "message_type": doc.get("message_type") or "text",
        "reply_to": doc.get("reply_to"),
        "edited_at": doc.get("edited_at"),
        "created_at": doc.get("created_at", ""),
    }


def _record_to_response(record: dict) -> MessageResponse:
    return MessageResponse(
        id=record["id"],
        groupId=record["group_id"],
        userId=record["user_id"],
        author=MessageAuthor(**record.get("author") or {}),
        message=record["message"],
        messageType=record.get("message_type") or "text",
        replyTo=record.get("reply_to"),
        editedAt=record.get("edited_at"),
        createdAt=record["created_at"],
    )


def _frame_message(record: dict) -> dict:
    return _record_to_response(record).model_dump(by_alias=True)


async def _require_access(group_id: str, user: dict, db: Database) -> dict:
    group = await peer_groups.get_group(group_id, db)
    if not group:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Group not found")
    if not await peer_groups.can_access(group, user, db):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have access to this group",
        )
    return group


async def _load_history(group_id: str, db: Database, limit: Optional[int] = None) -> list[dict]:
    """group messages oldest first, authors resolved in one lookup"""
    cursor = db.group_messages.find({"group_id": group_id}).sort("created_at", 1)
    if limit:
        cursor = cursor.limit(limit)
    docs = await cursor.to_list(length=None)
    profiles = await roster.get_profiles(list({d.get("user_id", "") for d in docs}), db)
    return [_doc_to_record(doc, profiles.get(doc.get("user_id", ""))) for doc in docs]


async def _reply_target(group_id: str, reply_to: Optional[str], db: Database) -> Optional[str]:
    """keep reply_to only when it names a message in the same group"""
    if not reply_to:
        return None
    target = await db.group_messages.find_one({"group_id": group_id, "message_id": reply_to})
    if not target:
        logger.warning(f"Dropping reply_to {reply_to}: not a message in group {group_id}")
        return None
    return reply_to


async def _create_message(group_id: str, user: dict, body: MessageCreate, db: Database) -> dict:
    doc = {
        "message_id": uuid.uuid4().hex[:12],
        "group_id": group_id,
        "user_id": user["id"],
        "message": body.message,
        "message_type": "text",
        "reply_to": await _reply_target(group_id, body.reply_to, db),
        "edited_at": None,
        "created_at": _now().isoformat(),
    }
    await db.group_messages.insert_one(doc)
    logger.info(f"Message {doc['message_id']} posted to group {group_id} by {user['id']}")
    return _doc_to_record(doc, user)


async def _load_own_message(group_id: str, message_id: str, user: dict, db: Database) -> dict:
    doc = await db.group_messages.find_one({"group_id": group_id, "message_id": message_id})
    if not doc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Message not found")
    if doc.get("user_id") != user["id"]:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only change your own messages",
        )
    return doc


async def _edit_message(group_id: str, message_id: str, body: MessageEdit, user: dict, db: Database, feed: ChangeFeed) -> dict:
    await _load_own_message(group_id, message_id, user, db)
    edited_at = _now().isoformat()
    await db.group_messages.update_one(
        {"group_id": group_id, "message_id": message_id},
        {"$set": {"message": body.message, "edited_at": edited_at}},
    )
    doc = await db.group_messages.find_one({"group_id": group_id, "message_id": message_id})
    record = _doc_to_record(doc, user)
    await feed.publish(ChangeEvent("update", group_id, record))
    logger.info(f"Message {message_id} edited in group {group_id}")
    return record


async def _delete_message(group_id: str, message_id: str, user: dict, db: Database, feed: ChangeFeed):
    await _load_own_message(group_id, message_id, user, db)
    await db.group_messages.delete_one({"group_id": group_id, "message_id": message_id})
    await feed.publish(ChangeEvent("delete", group_id, {"id": message_id, "group_id": group_id}))
    logger.info(f"Message {message_id} deleted from group {group_id}")


# http endpoints

@router.get("/{group_id}/messages", response_model=list[MessageResponse])
async def list_messages(
    group_id: str,
    limit: int = Query(200, ge=1, le=1000),
    current_user: dict = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    """group history, oldest first"""
    await _require_access(group_id, current_user, db)
    return [_record_to_response(record) for record in await _load_history(group_id, db, limit)]


@router.post("/{group_id}/messages", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def post_message(
    group_id: str,
    body: MessageCreate,
    current_user: dict = Depends(get_current_user),
    db: Database = Depends(get_db),
    feed: ChangeFeed = Depends(get_feed),
):
    await _require_access(group_id, current_user, db)
    record = await _create_message(group_id, current_user, body, db)
    await feed.publish(ChangeEvent("insert", group_id, record))
    return _record_to_response(record)


@router.patch("/{group_id}/messages/{message_id}", response_model=MessageResponse)
async def edit_message(
    group_id: str,
    message_id: str,
    body: MessageEdit,
    current_user: dict = Depends(get_current_user),
    db: Database = Depends(get_db),
    feed: ChangeFeed = Depends(get_feed),
):
    """author only; sets edited_at"""
    await _require_access(group_id, current_user, db)
    record = await _edit_message(group_id, message_id, body, current_user, db, feed)
    return _record_to_response(record)


@router.delete("/{group_id}/messages/{message_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_message(
    group_id: str,
    message_id: str,
    current_user: dict = Depends(get_current_user),
    db: Database = Depends(get_db),
    feed: ChangeFeed = Depends(get_feed),
):
    await _require_access(group_id, current_user, db)
    await _delete_message(group_id, message_id, current_user, db, feed)


# realtime relay

async def _forward_events(websocket: WebSocket, queue: asyncio.Queue, timeline: ChatTimeline):
    """drain the feed queue into the socket, skipping events that change nothing"""
    while True:
        event: ChangeEvent = await queue.get()
        if not timeline.apply(event):
            continue
        try:
            if event.event_type == "delete":
                await websocket.send_json({"type": "delete", "messageId": event.message_id})
            else:
                message = timeline.get(event.message_id)
                await websocket.send_json({"type": event.event_type, "message": _frame_message(message)})
        except (WebSocketDisconnect, RuntimeError) as e:
            # socket already closed; the receive loop does the cleanup
            logger.info(f"Stopped forwarding to group {timeline.group_id} socket: {e}")
            return


async def _handle_frame(
    frame: dict,
    websocket: WebSocket,
    group_id: str,
    user: dict,
    timeline: ChatTimeline,
    db: Database,
    feed: ChangeFeed,
) -> bool:
    """apply one client frame; returns False once the user has lost access to the group"""
    kind = frame.get("type")
    try:
        if kind not in ("send", "edit", "delete"):
            await websocket.send_json({"type": "error", "detail": f"Unknown frame type: {kind}"})
            return True

        # membership or the group itself may have changed since connect
        group = await peer_groups.get_group(group_id, db)
        if not group or not await peer_groups.can_access(group, user, db):
            logger.info(f"User {user['id']} lost access to group {group_id}, closing socket")
            await websocket.send_json({"type": "error", "detail": "You no longer have access to this group"})
            return False

        if kind == "send":
            record = await _create_message(group_id, user, MessageCreate.model_validate(frame), db)
            # optimistic local append before the feed echo
            timeline.append_local(record)
            await websocket.send_json({"type": "insert", "message": _frame_message(record)})
            await feed.publish(ChangeEvent("insert", group_id, record))
        elif kind == "edit":
            await _edit_message(
                group_id, str(frame.get("messageId", "")), MessageEdit.model_validate(frame), user, db, feed
            )
        else:
            await _delete_message(group_id, str(frame.get("messageId", "")), user, db, feed)
    except ValidationError as e:
        await websocket.send_json({"type": "error", "detail": e.errors(include_url=False)[0]["msg"]})
    except HTTPException as e:
        await websocket.send_json({"type": "error", "detail": e.detail})
    except PyMongoError as e:
        logger.error(f"Store error on {kind} frame in group {group_id}: {e}")
        await websocket.send_json({"type": "error", "detail": STORE_UNAVAILABLE})
    return True


@router.websocket("/{group_id}/ws")
async def group_chat_socket(
    websocket: WebSocket,
    group_id: str,
    user: Optional[dict] = Depends(get_ws_user),
    db: Database = Depends(get_db),
    feed: ChangeFeed = Depends(get_feed),
):
    """snapshot on connect, then live insert/update/delete frames for one group"""
    if user is None:
        await websocket.close(code=WS_UNAUTHORIZED)
        return

    group = await peer_groups.get_group(group_id, db)
    if not group or not await peer_groups.can_access(group, user, db):
        await websocket.close(code=WS_FORBIDDEN)
        return

    await websocket.accept()

    # subscribe before the snapshot so nothing written in between is missed
    queue = feed.subscribe(group_id)
    timeline = ChatTimeline(group_id, user["id"])
    forwarder = None
    try:
        timeline.load(await _load_history(group_id, db))
        await websocket.send_json({
            "type": "snapshot",
            "messages": [_frame_message(m) for m in timeline.messages],
        })

        forwarder = asyncio.create_task(_forward_events(websocket, queue, timeline))
        while True:
            try:
                frame = await websocket.receive_json()
            except json.JSONDecodeError:
                await websocket.send_json({"type": "error", "detail": "Frames must be JSON objects"})
                continue
            if not isinstance(frame, dict):
                await websocket.send_json({"type": "error", "detail": "Frames must be JSON objects"})
                continue
            if not await _handle_frame(frame, websocket, group_id, user, timeline, db, feed):
                await websocket.close(code=WS_FORBIDDEN)
                break
    except WebSocketDisconnect:
        logger.info(f"Chat socket closed for user {user['id']} in group {group_id}")
    except PyMongoError as e:
        logger.error(f"Store error loading group {group_id} for socket: {e}")
        await websocket.close(code=WS_STORE_UNAVAILABLE)
    finally:
        feed.unsubscribe(group_id, queue)
        if forwarder is not None:
            forwarder.cancel()
            try:
                await forwarder
            except asyncio.CancelledError:
                pass
            except Exception as e:
                logger.warning(f"Chat forwarder for group {group_id} ended with error: {e}")
