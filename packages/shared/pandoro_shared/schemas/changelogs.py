"""Changelog notifications: events, presentation and read state."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Iterable, List, Optional

from pydantic import BaseModel, Field

from .common import PandoroItem, Role, generate_identifier, utcnow
from .groups import Group

TIMESTAMP_FORMAT = "%d/%m/%Y %H:%M:%S"


class ChangelogEvent(str, Enum):
    INVITED_GROUP = "INVITED_GROUP"
    JOINED_GROUP = "JOINED_GROUP"
    ROLE_CHANGED = "ROLE_CHANGED"
    LEFT_GROUP = "LEFT_GROUP"
    GROUP_DELETED = "GROUP_DELETED"
    PROJECT_ADDED = "PROJECT_ADDED"
    PROJECT_REMOVED = "PROJECT_REMOVED"
    UPDATE_SCHEDULED = "UPDATE_SCHEDULED"
    UPDATE_STARTED = "UPDATE_STARTED"
    UPDATE_PUBLISHED = "UPDATE_PUBLISHED"
    UPDATE_DELETED = "UPDATE_DELETED"

    @property
    def description(self) -> str:
        return CHANGELOG_EVENT_DESCRIPTIONS[self]


CHANGELOG_EVENT_DESCRIPTIONS: dict[ChangelogEvent, str] = {
    ChangelogEvent.INVITED_GROUP: "Invited into a group",
    ChangelogEvent.JOINED_GROUP: "Joined in a group",
    ChangelogEvent.ROLE_CHANGED: "Role changed",
    ChangelogEvent.LEFT_GROUP: "Left a group",
    ChangelogEvent.GROUP_DELETED: "Group deleted",
    ChangelogEvent.PROJECT_ADDED: "Project added",
    ChangelogEvent.PROJECT_REMOVED: "Project removed",
    ChangelogEvent.UPDATE_SCHEDULED: "Update scheduled",
    ChangelogEvent.UPDATE_STARTED: "Update started",
    ChangelogEvent.UPDATE_PUBLISHED: "Update published",
    ChangelogEvent.UPDATE_DELETED: "Update deleted",
}


class Changelog(BaseModel):
    id: str
    changelog_event: ChangelogEvent
    timestamp: datetime = Field(default_factory=utcnow)
    owner: Optional[str] = None
    project: Optional[PandoroItem] = None
    group: Optional[PandoroItem] = None
    extra_content: Optional[str] = None
    read: bool = Field(default=False, alias="red")

    model_config = {"populate_by_name": True}

    @property
    def title(self) -> str:
        return f"{self.changelog_event.description} at {self.timestamp.strftime(TIMESTAMP_FORMAT)}"

    @property
    def is_invitation(self) -> bool:
        return self.changelog_event == ChangelogEvent.INVITED_GROUP

    @property
    def content(self) -> str:
        """Human-readable sentence describing the event."""
        event = self.changelog_event
        group_name = self.group.name if self.group else ""
        project_name = self.project.name if self.project else ""

        if event == ChangelogEvent.INVITED_GROUP:
            return f"You have been invited to join in the {group_name} group"
        if event == ChangelogEvent.JOINED_GROUP:
            return f"You joined in the {group_name} group"
        if event == ChangelogEvent.ROLE_CHANGED:
            article = "an" if self.extra_content == Role.ADMIN.value else "a"
            return f"You became {article} {self.extra_content} in the {group_name} group"
        if event == ChangelogEvent.LEFT_GROUP:
            return f"You left from the {group_name} group"
        if event == ChangelogEvent.GROUP_DELETED:
            return f"The {self.extra_content} group has been deleted"
        if event == ChangelogEvent.PROJECT_ADDED:
            return f"The project {project_name} has been added"
        if event == ChangelogEvent.PROJECT_REMOVED:
            return f"The project {project_name} has been removed"
        if event == ChangelogEvent.UPDATE_SCHEDULED:
            return f"A new update for {project_name}'s project has been scheduled [v. {self.extra_content}]"
        if event == ChangelogEvent.UPDATE_STARTED:
            return f"The [v. {self.extra_content}] update of {project_name}'s project has been started"
        if event == ChangelogEvent.UPDATE_PUBLISHED:
            return f"The [v. {self.extra_content}] update of {project_name}'s project has been published"
        return f"The [v. {self.extra_content}] update of {project_name}'s project has been deleted"

    def mark_as_read(self) -> None:
        """Idempotent: re-reading a changelog leaves it read."""
        self.read = True


class ChangelogDelete(BaseModel):
    group_id: Optional[str] = None


def create_changelog(
    event: ChangelogEvent,
    owner: str,
    *,
    project: Optional[PandoroItem] = None,
    group: Optional[PandoroItem] = None,
    extra_content: Optional[str] = None,
    when: Optional[datetime] = None,
) -> Changelog:
    return Changelog(
        id=generate_identifier(),
        changelog_event=event,
        timestamp=when or utcnow(),
        owner=owner,
        project=PandoroItem(id=project.id, name=project.name) if project else None,
        group=PandoroItem(id=group.id, name=group.name) if group else None,
        extra_content=extra_content,
    )


def notify_members(
    event: ChangelogEvent,
    group: Group,
    exclude: Iterable[str] = (),
    *,
    project: Optional[PandoroItem] = None,
    extra_content: Optional[str] = None,
    when: Optional[datetime] = None,
) -> List[Changelog]:
    """One changelog for every joined member of ``group`` not in ``exclude``."""
    excluded = set(exclude)
    return [
        create_changelog(
            event,
            member.id,
            project=project,
            group=group,
            extra_content=extra_content,
            when=when,
        )
        for member in group.joined_members
        if member.id not in excluded
    ]


def validate_changelog_deletion(changelog: Changelog, group_id: Optional[str]) -> tuple[bool, str]:
    """Deleting an invitation declines it, so it must name the inviting group.

    Returns (is_valid, error_message).
    """
    if not changelog.is_invitation:
        return True, ""
    if changelog.group is None or group_id != changelog.group.id:
        return False, "The group of the invitation is required to decline it"
    return True, ""


def unread_changelogs(changelogs: Iterable[Changelog]) -> int:
    return sum(1 for changelog in changelogs if not changelog.read)
