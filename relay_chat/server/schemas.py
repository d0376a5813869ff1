"""Pydantic schemas for relay payloads and HTTP responses."""
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class IdentityIn(BaseModel):
    model_config = ConfigDict(extra="allow")

    userId: str
    username: str = Field(..., min_length=1)
    avatar: Optional[str] = Field(default=None, validation_alias=AliasChoices("avatar", "dp"))


class ChatMessageIn(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str = Field(..., min_length=1)
    userId: str
    username: str
    avatar: Optional[str] = Field(default=None, validation_alias=AliasChoices("avatar", "dp"))
    text: str
    timestamp: str


class IdentityOut(BaseModel):
    userId: str
    username: str
    avatar: Optional[str] = None


class StatusOut(BaseModel):
    status: str = "ok"
    connections: int = 0
