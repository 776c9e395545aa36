"""Note schemas, shared by personal notes and update change notes."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from .. import validators
from .common import utcnow
from .users import PublicUser


class Note(BaseModel):
    id: str
    author: Optional[PublicUser] = None
    content: str = Field(alias="content_note")
    creation_date: datetime = Field(default_factory=utcnow)
    marked_as_done: bool = False
    marked_as_done_by: Optional[PublicUser] = None
    marked_as_done_date: Optional[datetime] = None

    model_config = {"populate_by_name": True}

    def mark_as_done(self, actor: PublicUser, when: Optional[datetime] = None) -> None:
        self.marked_as_done = True
        self.marked_as_done_by = actor
        self.marked_as_done_date = when or utcnow()

    def mark_as_todo(self) -> None:
        self.marked_as_done = False
        self.marked_as_done_by = None
        self.marked_as_done_date = None


class NoteCreate(BaseModel):
    content_note: str

    @field_validator("content_note")
    @classmethod
    def _check_content(cls, value: str) -> str:
        if not validators.is_content_note_valid(value):
            raise ValueError("Wrong content")
        return value
