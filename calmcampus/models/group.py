# peer group models — groups, membership, and chat messages

from typing import Optional
from pydantic import BaseModel, Field


class GroupCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: str = Field("", max_length=2000)


class GroupActiveUpdate(BaseModel):
    is_active: bool = Field(..., alias="isActive")

    model_config = {"populate_by_name": True}


class GroupResponse(BaseModel):
    id: str
    name: str
    description: str = ""
    created_by: str = Field("", alias="createdBy")
    is_active: bool = Field(True, alias="isActive")
    is_member: bool = Field(False, alias="isMember")
    member_count: int = Field(0, alias="memberCount")
    created_at: str = Field("", alias="createdAt")

    model_config = {"populate_by_name": True}


class MessageCreate(BaseModel):
    message: str = Field(..., min_length=1, max_length=4000)
    reply_to: Optional[str] = Field(None, alias="replyTo")

    model_config = {"populate_by_name": True}


class MessageEdit(BaseModel):
    message: str = Field(..., min_length=1, max_length=4000)


class MessageAuthor(BaseModel):
    first_name: str = Field("", alias="firstName")
    last_name: str = Field("", alias="lastName")

    model_config = {"populate_by_name": True}


class MessageResponse(BaseModel):
    id: str
    group_id: str = Field(..., alias="groupId")
    user_id: str = Field(..., alias="userId")
    message: str
    author: MessageAuthor = Field(default_factory=MessageAuthor)
    message_type: str = Field("text", alias="messageType")
    reply_to: Optional[str] = Field(None, alias="replyTo")
    edited_at: Optional[str] = Field(None, alias="editedAt")
    created_at: str = Field(..., alias="createdAt")

    model_config = {"populate_by_name": True}
