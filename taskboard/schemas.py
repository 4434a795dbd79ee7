from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class Input(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)


class ErrorBody(BaseModel):
    code: str
    message: str
    details: dict[str, Any] = Field(default_factory=dict)
    requestId: Optional[str] = None


class ErrorEnvelope(BaseModel):
    error: ErrorBody


class Health(BaseModel):
    status: str = "ok"


class Version(BaseModel):
    version: str


class Message(BaseModel):
    message: str


# === Boards ===


class BoardCreate(Input):
    title: str = Field(min_length=1, max_length=140)
    description: Optional[str] = Field(default=None, max_length=2000)


class BoardUpdate(Input):
    title: Optional[str] = Field(default=None, min_length=1, max_length=140)
    description: Optional[str] = Field(default=None, max_length=2000)


class MemberIn(Input):
    userId: str = Field(min_length=1, max_length=128)


class BoardOut(BaseModel):
    id: str
    title: str
    description: str
    owner: str
    members: list[str]
    createdAt: datetime
    updatedAt: datetime


# === Lists ===


class ListCreate(Input):
    title: str = Field(min_length=1, max_length=140)
    boardId: str = Field(min_length=1)


class ListUpdate(Input):
    title: Optional[str] = Field(default=None, min_length=1, max_length=140)


class ListMove(BaseModel):
    destinationIndex: int = Field(ge=0)


class ListOut(BaseModel):
    id: str
    boardId: str
    title: str
    position: int
    createdAt: datetime
    updatedAt: datetime


# === Cards ===


class CardCreate(Input):
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=8000)
    listId: str = Field(min_length=1)


class CardUpdate(Input):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=8000)


class CardMove(BaseModel):
    sourceListId: str = Field(min_length=1)
    destinationListId: str = Field(min_length=1)
    sourceIndex: int = Field(ge=0)
    destinationIndex: int = Field(ge=0)


class CardOut(BaseModel):
    id: str
    listId: str
    title: str
    description: str
    position: int
    createdAt: datetime
    updatedAt: datetime


# === Aggregated board ===


class ListView(ListOut):
    cards: list[CardOut]


class BoardView(BoardOut):
    lists: list[ListView]
