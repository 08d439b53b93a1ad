# fastapi dependency injection
# provides the per-request session context (current user) and role-based access control

import logging
from typing import Optional
from fastapi import Depends, HTTPException, Query, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from bson import ObjectId
from bson.errors import InvalidId

from calmcampus.services.auth_service import decode_token
from calmcampus.services.db import Database, get_db

logger = logging.getLogger(__name__)

security = HTTPBearer()


async def _load_user(payload: Optional[dict], db: Database) -> Optional[dict]:
    """resolve a decoded access token payload to the user document, or none"""
    if payload is None or payload.get("type") != "access":
        return None

    user_id = payload.get("sub")
    if not user_id:
        return None

    try:
        user = await db.users.find_one({"_id": ObjectId(user_id)})
    except InvalidId:
        user = None

    if not user:
        return None

    # convert _id to string
    user = dict(user)
    user["id"] = str(user.pop("_id"))
    return user


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Database = Depends(get_db),
) -> dict:
    """extract and validate the current user from the jwt bearer token"""
    payload = decode_token(credentials.credentials)

    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )

    if payload.get("type") != "access":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token type",
        )

    user = await _load_user(payload, db)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )
    return user


async def get_ws_user(
    token: Optional[str] = Query(None),
    db: Database = Depends(get_db),
) -> Optional[dict]:
    """session context for websockets — token comes from the ?token= query param.
    returns none instead of raising so the handler can close with 4401."""
    if not token:
        return None
    return await _load_user(decode_token(token), db)


def require_role(role: str):
    """factory for role-based access control dependency"""

    async def role_checker(current_user: dict = Depends(get_current_user)) -> dict:
        if current_user.get("role") != role:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required role: {role}",
            )
        return current_user

    return role_checker
