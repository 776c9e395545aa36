"""Static table of the backend REST surface.

Paths are relative to ``BASE_ENDPOINT`` and use ``{name}`` placeholders,
the same syntax FastAPI routes declare their path parameters with.
"""

from typing import NamedTuple

BASE_ENDPOINT = "/api/v1"

IDENTIFIER_HEADER = "id"
TOKEN_HEADER = "token"


class Endpoint(NamedTuple):
    method: str
    path: str

    def format(self, **params: str) -> str:
        return self.path.format(**params)


# Users
SIGN_UP = Endpoint("POST", "/users/signUp")
SIGN_IN = Endpoint("POST", "/users/signIn")
CHANGE_EMAIL = Endpoint("PATCH", "/users/{user_id}/changeEmail")
CHANGE_PASSWORD = Endpoint("PATCH", "/users/{user_id}/changePassword")
CHANGE_PROFILE_PIC = Endpoint("POST", "/users/{user_id}/changeProfilePic")
DELETE_ACCOUNT = Endpoint("DELETE", "/users/{user_id}/deleteAccount")

# Projects
GET_PROJECTS = Endpoint("GET", "/projects")
GET_PROJECT = Endpoint("GET", "/projects/{project_id}")
ADD_PROJECT = Endpoint("POST", "/projects/addProject")
EDIT_PROJECT = Endpoint("PATCH", "/projects/{project_id}/editProject")
DELETE_PROJECT = Endpoint("DELETE", "/projects/{project_id}")

# Updates
_UPDATE = "/projects/{project_id}/updates/{update_id}"
_CHANGE_NOTE = _UPDATE + "/notes/{note_id}"
SCHEDULE_UPDATE = Endpoint("POST", "/projects/{project_id}/updates/schedule")
START_UPDATE = Endpoint("PATCH", _UPDATE + "/start")
PUBLISH_UPDATE = Endpoint("PATCH", _UPDATE + "/publish")
ADD_CHANGE_NOTE = Endpoint("PUT", _UPDATE + "/addChangeNote")
MARK_CHANGE_NOTE_AS_DONE = Endpoint("PATCH", _CHANGE_NOTE + "/markChangeNoteAsDone")
MARK_CHANGE_NOTE_AS_TODO = Endpoint("PATCH", _CHANGE_NOTE + "/markChangeNoteAsToDo")
EDIT_CHANGE_NOTE = Endpoint("PATCH", _CHANGE_NOTE + "/editChangeNote")
MOVE_CHANGE_NOTE = Endpoint("PATCH", _CHANGE_NOTE + "/moveChangeNote")
DELETE_CHANGE_NOTE = Endpoint("DELETE", _CHANGE_NOTE + "/deleteChangeNote")
DELETE_UPDATE = Endpoint("DELETE", _UPDATE + "/delete")

# Groups
GET_GROUPS = Endpoint("GET", "/groups")
GET_GROUP = Endpoint("GET", "/groups/{group_id}")
CREATE_GROUP = Endpoint("POST", "/groups/createGroup")
ADD_MEMBERS = Endpoint("PUT", "/groups/{group_id}/addMembers")
ACCEPT_GROUP_INVITATION = Endpoint("PATCH", "/groups/{group_id}/acceptGroupInvitation")
DECLINE_GROUP_INVITATION = Endpoint("DELETE", "/groups/{group_id}/declineGroupInvitation")
CHANGE_MEMBER_ROLE = Endpoint("PATCH", "/groups/{group_id}/changeMemberRole")
REMOVE_MEMBER = Endpoint("DELETE", "/groups/{group_id}/removeMember")
EDIT_PROJECTS = Endpoint("PATCH", "/groups/{group_id}/editProjects")
LEAVE_GROUP = Endpoint("DELETE", "/groups/{group_id}/leaveGroup")
DELETE_GROUP = Endpoint("DELETE", "/groups/{group_id}/deleteGroup")

# Personal notes
GET_NOTES = Endpoint("GET", "/notes")
CREATE_NOTE = Endpoint("POST", "/notes/create")
MARK_NOTE_AS_DONE = Endpoint("PATCH", "/notes/{note_id}/markAsDone")
MARK_NOTE_AS_TODO = Endpoint("PATCH", "/notes/{note_id}/markAsToDo")
DELETE_NOTE = Endpoint("DELETE", "/notes/{note_id}/deleteNote")

# Changelogs
GET_CHANGELOGS = Endpoint("GET", "/changelogs")
READ_CHANGELOG = Endpoint("PATCH", "/changelogs/{changelog_id}/readChangelog")
DELETE_CHANGELOG = Endpoint("DELETE", "/changelogs/{changelog_id}/deleteChangelog")
