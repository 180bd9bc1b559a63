from typing import Any

from pydantic import BaseModel, ConfigDict
from datetime import datetime


# --- Requests ---
#
# Fields accept any JSON value: type and content rules live in
# postboard.validation so that bad input comes back as a field -> message
# map (400), never as a FastAPI 422.

class PostCreate(BaseModel):
    text: Any = None
    name: Any = None
    avatar: Any = None


class CommentCreate(BaseModel):
    text: Any = None
    name: Any = None
    avatar: Any = None


# --- Like ---

class LikeResponse(BaseModel):
    id: str
    user: str
    model_config = ConfigDict(from_attributes=True)


# --- Comment ---

class CommentResponse(BaseModel):
    id: str
    text: str
    name: str | None = None
    avatar: str | None = None
    user: str
    date: datetime
    model_config = ConfigDict(from_attributes=True)


# --- Post ---

class PostResponse(BaseModel):
    id: str
    text: str
    name: str | None = None
    avatar: str | None = None
    user: str
    date: datetime
    likes: list[LikeResponse] = []
    comments: list[CommentResponse] = []
    model_config = ConfigDict(from_attributes=True)


class DeleteResponse(BaseModel):
    success: bool = True


class HealthResponse(BaseModel):
    status: str
    version: str
    cache_info: dict = {}
