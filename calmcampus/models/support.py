# support models — outbound chat deep links

from typing import Literal
from pydantic import BaseModel


class ChatLinkResponse(BaseModel):
    """deep link into the third-party chat app"""
    url: str
    purpose: Literal["advisor", "crisis"]
