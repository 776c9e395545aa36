"""Project and update schemas together with the update lifecycle rules."""

from __future__ import annotations

import math
from datetime import datetime
from typing import List, Optional, Sequence

from pydantic import BaseModel, Field, field_validator

from .. import validators
from .common import (
    UPDATE_STATUS_ORDER,
    PandoroItem,
    RepositoryPlatform,
    UpdateEventType,
    UpdateStatus,
    generate_identifier,
    utcnow,
)
from .notes import Note
from .users import PublicUser

SECONDS_PER_DAY = 86400


class TransitionError(ValueError):
    """Raised when an update or change note operation breaks the lifecycle rules."""


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------

class UpdateEvent(BaseModel):
    """One entry of an update's timeline."""
    id: str
    type: UpdateEventType
    author: Optional[PublicUser] = None
    timestamp: datetime = Field(default_factory=utcnow)
    note_content: Optional[str] = Field(default=None, alias="content_note")
    # target version of the other update of a move
    extra_content: Optional[str] = None

    model_config = {"populate_by_name": True}


class ProjectUpdate(BaseModel):
    id: str
    author: Optional[PublicUser] = None
    create_date: datetime = Field(default_factory=utcnow)
    target_version: str
    status: UpdateStatus = UpdateStatus.SCHEDULED
    started_by: Optional[PublicUser] = None
    start_date: Optional[datetime] = None
    published_by: Optional[PublicUser] = None
    publish_date: Optional[datetime] = None
    notes: List[Note] = Field(default_factory=list, alias="change_notes")
    events: List[UpdateEvent] = Field(default_factory=list)

    model_config = {"populate_by_name": True}

    @property
    def development_duration(self) -> Optional[int]:
        """Days between start and publish, rounded up. ``None`` until published."""
        if self.status != UpdateStatus.PUBLISHED or not self.start_date or not self.publish_date:
            return None
        elapsed = (self.publish_date - self.start_date).total_seconds()
        return math.ceil(elapsed / SECONDS_PER_DAY)

    def get_note(self, note_id: str) -> Optional[Note]:
        return next((note for note in self.notes if note.id == note_id), None)


class Project(PandoroItem):
    creation_date: datetime = Field(default_factory=utcnow)
    author: Optional[PublicUser] = None
    short_description: str = Field(alias="project_short_description")
    description: str = Field(alias="project_description")
    version: str = Field(alias="project_version")
    icon: Optional[str] = None
    repository: str = Field(default="", alias="project_repository")
    groups: List[PandoroItem] = Field(default_factory=list)
    updates: List[ProjectUpdate] = Field(default_factory=list)

    model_config = {"populate_by_name": True}

    @property
    def updates_number(self) -> int:
        return len(self.updates)

    @property
    def published_updates(self) -> List[ProjectUpdate]:
        return [update for update in self.updates if update.status == UpdateStatus.PUBLISHED]

    @property
    def total_development_days(self) -> int:
        return sum(update.development_duration or 0 for update in self.published_updates)

    @property
    def average_development_time(self) -> int:
        published = self.published_updates
        if not published:
            return 0
        return self.total_development_days // len(published)

    @property
    def last_update_date(self) -> Optional[datetime]:
        dates = [update.publish_date for update in self.published_updates if update.publish_date]
        return max(dates) if dates else None

    @property
    def has_groups(self) -> bool:
        return bool(self.groups)

    @property
    def repository_platform(self) -> Optional[RepositoryPlatform]:
        if not self.repository:
            return None
        return RepositoryPlatform.reach_platform(self.repository)

    def get_update(self, update_id: str) -> Optional[ProjectUpdate]:
        return next((update for update in self.updates if update.id == update_id), None)


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

class ProjectBase(BaseModel):
    name: str
    project_description: str
    project_short_description: str
    project_version: str
    groups: List[str] = Field(default_factory=list)
    project_repository: str = ""

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        if not validators.is_valid_project_name(value):
            raise ValueError("Wrong project name")
        return value

    @field_validator("project_description")
    @classmethod
    def _check_description(cls, value: str) -> str:
        if not validators.is_valid_project_description(value):
            raise ValueError("Wrong project description")
        return value

    @field_validator("project_short_description")
    @classmethod
    def _check_short_description(cls, value: str) -> str:
        if not validators.is_valid_project_short_description(value):
            raise ValueError("Wrong project short description")
        return value

    @field_validator("project_version")
    @classmethod
    def _check_version(cls, value: str) -> str:
        if not validators.is_valid_version(value):
            raise ValueError("Wrong project version")
        return value

    @field_validator("project_repository")
    @classmethod
    def _check_repository(cls, value: str) -> str:
        if not validators.is_valid_repository(value):
            raise ValueError("Wrong project repository")
        return value


class ProjectCreate(ProjectBase):
    pass


class ProjectEdit(ProjectBase):
    pass


class UpdateSchedule(BaseModel):
    target_version: str
    update_change_notes: List[str]

    @field_validator("target_version")
    @classmethod
    def _check_version(cls, value: str) -> str:
        if not validators.is_valid_version(value):
            raise ValueError("Wrong target version")
        return value

    @field_validator("update_change_notes")
    @classmethod
    def _check_notes(cls, value: List[str]) -> List[str]:
        if not validators.are_notes_valid(value):
            raise ValueError("Wrong change notes list")
        return value


class ChangeNoteAdd(BaseModel):
    content_note: str

    @field_validator("content_note")
    @classmethod
    def _check_content(cls, value: str) -> str:
        if not validators.is_content_note_valid(value):
            raise ValueError("Wrong change note content")
        return value


class ChangeNoteEdit(ChangeNoteAdd):
    pass


class ChangeNoteMove(BaseModel):
    destination_update_id: str


# ---------------------------------------------------------------------------
# Update lifecycle
# ---------------------------------------------------------------------------

def validate_update_transition(update: ProjectUpdate, target: UpdateStatus) -> tuple[bool, str]:
    """Validate an update lifecycle transition.

    Rules:
    - Only the next status is reachable: SCHEDULED -> IN_DEVELOPMENT -> PUBLISHED.
    - PUBLISHED is terminal.
    - Publishing also requires every change note to be done.

    Returns (is_valid, error_message).
    """
    current = update.status
    if current == target:
        return False, f"Update is already {current.value}"

    current_idx = UPDATE_STATUS_ORDER.index(current)
    target_idx = UPDATE_STATUS_ORDER.index(target)
    if target_idx != current_idx + 1:
        return False, f"Cannot transition from {current.value} to {target.value}"

    if target == UpdateStatus.PUBLISHED and not validators.are_all_change_notes_done(update.notes):
        return False, "All the change notes must be done before publishing"

    return True, ""


def _check_transition(update: ProjectUpdate, target: UpdateStatus) -> None:
    is_valid, error = validate_update_transition(update, target)
    if not is_valid:
        raise TransitionError(error)


def record_event(
    update: ProjectUpdate,
    event_type: UpdateEventType,
    author: Optional[PublicUser],
    when: Optional[datetime] = None,
    note: Optional[Note] = None,
    extra_content: Optional[str] = None,
) -> UpdateEvent:
    """Append an entry to the timeline of ``update``."""
    event = UpdateEvent(
        id=generate_identifier(),
        type=event_type,
        author=author,
        timestamp=when or utcnow(),
        note_content=note.content if note is not None else None,
        extra_content=extra_content,
    )
    update.events.append(event)
    return event


def schedule_update(
    project: Project,
    target_version: str,
    change_notes: Sequence[str],
    author: PublicUser,
    when: Optional[datetime] = None,
) -> ProjectUpdate:
    if not validators.is_valid_version(target_version):
        raise TransitionError("Wrong target version")
    if not validators.are_notes_valid(change_notes):
        raise TransitionError("Wrong change notes list")
    if any(update.target_version == target_version for update in project.updates):
        raise TransitionError("An update with this target version already exists")

    created = when or utcnow()
    update = ProjectUpdate(
        id=generate_identifier(),
        author=author,
        create_date=created,
        target_version=target_version,
        notes=[
            Note(id=generate_identifier(), author=author, content=content, creation_date=created)
            for content in change_notes
        ],
    )
    record_event(update, UpdateEventType.SCHEDULED, author, created)
    project.updates.append(update)
    return update


def start_update(update: ProjectUpdate, actor: PublicUser, when: Optional[datetime] = None) -> ProjectUpdate:
    _check_transition(update, UpdateStatus.IN_DEVELOPMENT)
    update.status = UpdateStatus.IN_DEVELOPMENT
    update.started_by = actor
    update.start_date = when or utcnow()
    record_event(update, UpdateEventType.STARTED, actor, update.start_date)
    return update


def publish_update(update: ProjectUpdate, actor: PublicUser, when: Optional[datetime] = None) -> ProjectUpdate:
    _check_transition(update, UpdateStatus.PUBLISHED)
    update.status = UpdateStatus.PUBLISHED
    update.published_by = actor
    update.publish_date = when or utcnow()
    record_event(update, UpdateEventType.PUBLISHED, actor, update.publish_date)
    return update


def delete_update(project: Project, update_id: str) -> ProjectUpdate:
    """Remove an update in any status, published ones included."""
    update = project.get_update(update_id)
    if update is None:
        raise TransitionError("Wrong update")
    project.updates.remove(update)
    return update


# ---------------------------------------------------------------------------
# Change notes
# ---------------------------------------------------------------------------
#
# Notes can be toggled only while the update is IN_DEVELOPMENT; a PUBLISHED
# update keeps its notes as they were at publication.

def _require_note(update: ProjectUpdate, note_id: str) -> Note:
    note = update.get_note(note_id)
    if note is None:
        raise TransitionError("Wrong change note")
    return note


def _require_in_development(update: ProjectUpdate) -> None:
    if update.status != UpdateStatus.IN_DEVELOPMENT:
        raise TransitionError("Change notes can be marked only while the update is in development")


def _require_not_published(update: ProjectUpdate, action: str) -> None:
    if update.status == UpdateStatus.PUBLISHED:
        raise TransitionError(f"Cannot {action} change notes of a published update")


def add_change_note(
    update: ProjectUpdate,
    content: str,
    author: PublicUser,
    when: Optional[datetime] = None,
) -> Note:
    _require_not_published(update, "add")
    if not validators.is_content_note_valid(content):
        raise TransitionError("Wrong change note content")
    note = Note(id=generate_identifier(), author=author, content=content, creation_date=when or utcnow())
    update.notes.append(note)
    record_event(update, UpdateEventType.CHANGENOTE_ADDED, author, note.creation_date, note)
    return note


def edit_change_note(
    update: ProjectUpdate,
    note_id: str,
    content: str,
    actor: PublicUser,
    when: Optional[datetime] = None,
) -> Note:
    _require_not_published(update, "edit")
    note = _require_note(update, note_id)
    if not validators.is_content_note_valid(content):
        raise TransitionError("Wrong change note content")
    note.content = content
    record_event(update, UpdateEventType.CHANGENOTE_EDITED, actor, when, note)
    return note


def mark_change_note_as_done(
    update: ProjectUpdate,
    note_id: str,
    actor: PublicUser,
    when: Optional[datetime] = None,
) -> Note:
    _require_in_development(update)
    note = _require_note(update, note_id)
    note.mark_as_done(actor, when)
    record_event(update, UpdateEventType.CHANGENOTE_DONE, actor, note.marked_as_done_date, note)
    return note


def mark_change_note_as_todo(
    update: ProjectUpdate,
    note_id: str,
    actor: PublicUser,
    when: Optional[datetime] = None,
) -> Note:
    _require_in_development(update)
    note = _require_note(update, note_id)
    note.mark_as_todo()
    record_event(update, UpdateEventType.CHANGENOTE_UNDONE, actor, when, note)
    return note


def delete_change_note(
    update: ProjectUpdate,
    note_id: str,
    actor: PublicUser,
    when: Optional[datetime] = None,
) -> Note:
    _require_not_published(update, "delete")
    note = _require_note(update, note_id)
    update.notes.remove(note)
    record_event(update, UpdateEventType.CHANGENOTE_REMOVED, actor, when, note)
    return note


def move_change_note(
    source: ProjectUpdate,
    destination: ProjectUpdate,
    note_id: str,
    actor: PublicUser,
    when: Optional[datetime] = None,
) -> Note:
    if source.id == destination.id:
        raise TransitionError("The destination update must differ from the source one")
    if UpdateStatus.PUBLISHED in (source.status, destination.status):
        raise TransitionError("Cannot move change notes of a published update")
    note = _require_note(source, note_id)
    source.notes.remove(note)
    destination.notes.append(note)
    moved = when or utcnow()
    record_event(source, UpdateEventType.CHANGENOTE_MOVED_TO, actor, moved, note, destination.target_version)
    record_event(destination, UpdateEventType.CHANGENOTE_MOVED_FROM, actor, moved, note, source.target_version)
    return note
