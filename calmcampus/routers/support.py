# support router — chat deep links for the ai advisor and the crisis line

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from calmcampus.config import settings
from calmcampus.models.support import ChatLinkResponse
from calmcampus.services.roster import clean_phone
from calmcampus.dependencies import get_current_user

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/support", tags=["support"])

CHAT_LINK_BASE = "https://wa.me/"


def build_chat_link(phone: str) -> str:
    digits = clean_phone(phone)
    if not digits:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Support contact is not configured",
        )
    return f"{CHAT_LINK_BASE}{digits}"


@router.get("/advisor-link", response_model=ChatLinkResponse)
async def advisor_link(current_user: dict = Depends(get_current_user)):
    return ChatLinkResponse(url=build_chat_link(settings.ADVISOR_PHONE), purpose="advisor")


@router.get("/crisis-link", response_model=ChatLinkResponse)
async def crisis_link(current_user: dict = Depends(get_current_user)):
    """emergency contact — served to any signed-in user"""
    logger.info(f"Crisis link requested by user {current_user['id']}")
    return ChatLinkResponse(url=build_chat_link(settings.CRISIS_PHONE), purpose="crisis")
