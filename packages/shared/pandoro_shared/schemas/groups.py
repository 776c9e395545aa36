"""Group schemas and the membership rules a group must obey."""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, List, Optional

from pydantic import BaseModel, Field, field_validator

from .. import validators
from .common import (
    CANNOT_EXECUTE_ACTION_ON_OWN_ACCOUNT_MESSAGE,
    NOT_AUTHORIZED_OR_WRONG_DETAILS_MESSAGE,
    WRONG_ADMIN_MESSAGE,
    WRONG_PROCEDURE_MESSAGE,
    InvitationStatus,
    PandoroItem,
    Role,
    generate_identifier,
    utcnow,
)
from .users import PublicUser


class MembershipError(ValueError):
    """Raised when a membership operation is refused."""


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------

class GroupMember(PublicUser):
    role: Role = Role.DEVELOPER
    invitation_status: InvitationStatus = InvitationStatus.PENDING

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def is_maintainer(self) -> bool:
        return self.role in (Role.ADMIN, Role.MAINTAINER)

    @property
    def has_joined(self) -> bool:
        return self.invitation_status == InvitationStatus.JOINED


class Group(PandoroItem):
    creation_date: datetime = Field(default_factory=utcnow)
    author: Optional[PublicUser] = None
    description: str = Field(alias="group_description")
    logo: Optional[str] = None
    members: List[GroupMember] = Field(default_factory=list, alias="group_members")
    projects: List[PandoroItem] = Field(default_factory=list)

    model_config = {"populate_by_name": True}

    @property
    def total_members(self) -> int:
        return len(self.members)

    @property
    def total_projects(self) -> int:
        return len(self.projects)

    @property
    def admins(self) -> List[GroupMember]:
        return [member for member in self.members if member.is_admin]

    @property
    def joined_members(self) -> List[GroupMember]:
        return [member for member in self.members if member.has_joined]

    def get_member(self, member_id: str) -> Optional[GroupMember]:
        return next((member for member in self.members if member.id == member_id), None)

    def is_user_joined(self, user_id: str) -> bool:
        member = self.get_member(user_id)
        return member is not None and member.has_joined

    def is_user_admin(self, user_id: str) -> bool:
        return self.is_user_joined(user_id) and self.get_member(user_id).is_admin

    def is_user_maintainer(self, user_id: str) -> bool:
        return self.is_user_joined(user_id) and self.get_member(user_id).is_maintainer


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

class GroupCreate(BaseModel):
    name: str
    group_description: str
    members: List[str]

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        if not validators.is_group_name_valid(value):
            raise ValueError("Wrong group name")
        return value

    @field_validator("group_description")
    @classmethod
    def _check_description(cls, value: str) -> str:
        if not validators.is_group_description_valid(value):
            raise ValueError("Wrong group description")
        return value

    @field_validator("members")
    @classmethod
    def _check_members(cls, value: List[str]) -> List[str]:
        if not validators.check_members_validity(value):
            raise ValueError("Wrong members list")
        return value


class MembersAdd(BaseModel):
    members: List[str]

    @field_validator("members")
    @classmethod
    def _check_members(cls, value: List[str]) -> List[str]:
        if not validators.check_members_validity(value):
            raise ValueError("Wrong members list")
        return value


class MemberRoleChange(BaseModel):
    member_id: str = Field(alias="member")
    role: Role

    model_config = {"populate_by_name": True}


class MemberRemove(BaseModel):
    member_id: str = Field(alias="member")

    model_config = {"populate_by_name": True}


class InvitationReply(BaseModel):
    changelog: str


class LeaveGroupRequest(BaseModel):
    next_admin: Optional[str] = None


class ProjectsEdit(BaseModel):
    projects: List[str]


# ---------------------------------------------------------------------------
# Membership rules
# ---------------------------------------------------------------------------

def _require_member(group: Group, member_id: str) -> GroupMember:
    member = group.get_member(member_id)
    if member is None:
        raise MembershipError(NOT_AUTHORIZED_OR_WRONG_DETAILS_MESSAGE)
    return member


def create_group(
    author: PublicUser,
    name: str,
    description: str,
    invited: Iterable[PublicUser],
    when: Optional[datetime] = None,
) -> Group:
    """Found a group: the author joins as ADMIN, everyone else is invited."""
    if not validators.is_group_name_valid(name):
        raise MembershipError("Wrong group name")
    if not validators.is_group_description_valid(description):
        raise MembershipError("Wrong group description")

    members = [
        GroupMember(
            **author.model_dump(),
            role=Role.ADMIN,
            invitation_status=InvitationStatus.JOINED,
        )
    ]
    for user in invited:
        if user.id != author.id and all(member.id != user.id for member in members):
            members.append(GroupMember(**user.model_dump()))

    return Group(
        id=generate_identifier(),
        name=name,
        creation_date=when or utcnow(),
        author=author,
        description=description,
        members=members,
    )


def add_members(group: Group, actor_id: str, users: Iterable[PublicUser]) -> List[GroupMember]:
    """Invite users into the group, skipping the ones already in it."""
    if not group.is_user_maintainer(actor_id):
        raise MembershipError(NOT_AUTHORIZED_OR_WRONG_DETAILS_MESSAGE)
    invited = []
    for user in users:
        if group.get_member(user.id) is None:
            member = GroupMember(**user.model_dump())
            group.members.append(member)
            invited.append(member)
    return invited


def accept_invitation(group: Group, member_id: str) -> GroupMember:
    member = _require_member(group, member_id)
    if member.has_joined:
        raise MembershipError(WRONG_PROCEDURE_MESSAGE)
    member.invitation_status = InvitationStatus.JOINED
    return member


def decline_invitation(group: Group, member_id: str) -> GroupMember:
    member = _require_member(group, member_id)
    if member.has_joined:
        raise MembershipError(WRONG_PROCEDURE_MESSAGE)
    group.members.remove(member)
    return member


def _check_authority(group: Group, actor_id: str, member_id: str) -> GroupMember:
    """Shared checks of the role change and removal operations; returns the target."""
    if actor_id == member_id:
        raise MembershipError(CANNOT_EXECUTE_ACTION_ON_OWN_ACCOUNT_MESSAGE)
    if not group.is_user_maintainer(actor_id):
        raise MembershipError(NOT_AUTHORIZED_OR_WRONG_DETAILS_MESSAGE)
    target = _require_member(group, member_id)
    if group.author is not None and target.id == group.author.id:
        raise MembershipError(NOT_AUTHORIZED_OR_WRONG_DETAILS_MESSAGE)
    # maintainers cannot act on admins
    if target.is_admin and not group.is_user_admin(actor_id):
        raise MembershipError(NOT_AUTHORIZED_OR_WRONG_DETAILS_MESSAGE)
    return target


def change_member_role(group: Group, actor_id: str, member_id: str, role: Role) -> GroupMember:
    target = _check_authority(group, actor_id, member_id)
    if not target.has_joined:
        raise MembershipError(WRONG_PROCEDURE_MESSAGE)
    target.role = role
    return target


def remove_member(group: Group, actor_id: str, member_id: str) -> GroupMember:
    target = _check_authority(group, actor_id, member_id)
    group.members.remove(target)
    return target


def leave_group(group: Group, member_id: str, next_admin_id: Optional[str] = None) -> bool:
    """Remove ``member_id`` from the group keeping at least one admin in it.

    A sole admin leaving a group with other members must name a joined
    successor, who is promoted to ADMIN. Returns ``True`` when the leaving
    member was the last one and the group has to be deleted.
    """
    member = _require_member(group, member_id)
    others = [other for other in group.members if other.id != member_id]
    if not member.is_admin:
        group.members.remove(member)
        return False
    if not others:
        group.members.remove(member)
        return True
    if not any(other.is_admin for other in others):
        successor = group.get_member(next_admin_id) if next_admin_id else None
        if successor is None or successor.id == member_id or not successor.has_joined:
            raise MembershipError(WRONG_ADMIN_MESSAGE)
        successor.role = Role.ADMIN
    group.members.remove(member)
    return False


def edit_projects(
    group: Group,
    actor_id: str,
    projects: Iterable[PandoroItem],
    owned_project_ids: Iterable[str],
) -> tuple[List[PandoroItem], List[PandoroItem]]:
    """Replace the group's projects; returns the (added, removed) references."""
    if not group.is_user_admin(actor_id):
        raise MembershipError(NOT_AUTHORIZED_OR_WRONG_DETAILS_MESSAGE)
    projects = list(projects)
    owned = set(owned_project_ids)
    if any(project.id not in owned for project in projects):
        raise MembershipError("Wrong projects list")

    current_ids = {project.id for project in group.projects}
    new_ids = {project.id for project in projects}
    added = [project for project in projects if project.id not in current_ids]
    removed = [project for project in group.projects if project.id not in new_ids]
    group.projects = projects
    return added, removed


def ensure_can_delete(group: Group, actor_id: str) -> None:
    if not group.is_user_admin(actor_id):
        raise MembershipError(NOT_AUTHORIZED_OR_WRONG_DETAILS_MESSAGE)
