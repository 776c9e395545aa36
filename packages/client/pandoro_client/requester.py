"""
Request façade over the Pandoro REST backend.

Every backend capability is one method. A method builds the typed request
of its operation, sends it to the endpoint the static table assigns, and
answers with a ``PandoroResult``. Transport and serialization failures are
logged and turned into the canned failure result; they are never raised.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Generic, Iterable, List, Optional, TypeVar

import httpx
import structlog
from pydantic import BaseModel, TypeAdapter, ValidationError

from pandoro_shared import endpoints
from pandoro_shared.endpoints import BASE_ENDPOINT, IDENTIFIER_HEADER, TOKEN_HEADER, Endpoint
from pandoro_shared.schemas.changelogs import Changelog, ChangelogDelete
from pandoro_shared.schemas.common import (
    SUCCESS_KEY,
    WRONG_PROCEDURE_MESSAGE,
    APIResponse,
    Role,
    StandardResponseCode,
)
from pandoro_shared.schemas.groups import (
    Group,
    GroupCreate,
    InvitationReply,
    LeaveGroupRequest,
    MemberRemove,
    MemberRoleChange,
    MembersAdd,
    ProjectsEdit,
)
from pandoro_shared.schemas.notes import Note, NoteCreate
from pandoro_shared.schemas.projects import (
    ChangeNoteAdd,
    ChangeNoteEdit,
    ChangeNoteMove,
    Project,
    ProjectCreate,
    ProjectEdit,
    ProjectUpdate,
    UpdateSchedule,
)
from pandoro_shared.schemas.users import (
    ChangeEmailRequest,
    ChangePasswordRequest,
    SignInRequest,
    SignUpRequest,
    UserSession,
)

from .config import PandoroConfig

log = structlog.get_logger()

T = TypeVar("T")

PROFILE_PIC_FIELD = "profile_pic"

_SESSION = TypeAdapter(UserSession)
_PROJECT = TypeAdapter(Project)
_PROJECTS = TypeAdapter(List[Project])
_UPDATE = TypeAdapter(ProjectUpdate)
_NOTE = TypeAdapter(Note)
_NOTES = TypeAdapter(List[Note])
_GROUP = TypeAdapter(Group)
_GROUPS = TypeAdapter(List[Group])
_CHANGELOGS = TypeAdapter(List[Changelog])
_TEXT = TypeAdapter(str)


class PandoroResult(BaseModel, Generic[T]):
    """Outcome of a single backend call."""
    success: bool
    status_code: int
    error: Optional[str] = None
    value: Optional[T] = None

    def success_response(self) -> bool:
        return self.success

    def error_message(self) -> Optional[str]:
        return self.error

    @classmethod
    def failed(cls, error: str = WRONG_PROCEDURE_MESSAGE) -> "PandoroResult":
        return cls(success=False, status_code=StandardResponseCode.FAILED, error=error)


def _validation_message(exc: ValidationError) -> str:
    error = exc.errors()[0]
    return error["msg"].removeprefix("Value error, ")


def _read_envelope(response: httpx.Response) -> APIResponse:
    """Parse the response body; a body without the success flag counts as successful."""
    body = response.json()
    if isinstance(body, dict) and SUCCESS_KEY in body:
        return APIResponse.model_validate(body)
    if response.is_error:
        return APIResponse(success=False, status_code=response.status_code, error=WRONG_PROCEDURE_MESSAGE)
    return APIResponse.successful(body)


class PandoroRequester:
    """
    Synchronous client of the Pandoro backend.

    The user identifier and token travel as request headers. They are set at
    construction and refreshed by a successful sign up or sign in.
    """

    def __init__(
        self,
        host: str,
        user_id: str | None = None,
        token: str | None = None,
        *,
        timeout: int = 30,
        verify_tls: bool = True,
        client: httpx.Client | None = None,
    ):
        self._base_url = host.rstrip("/") + BASE_ENDPOINT
        self.user_id = user_id
        self.token = token
        self._owns_client = client is None
        self._client = client or httpx.Client(
            timeout=httpx.Timeout(timeout),
            verify=verify_tls,
        )

    @classmethod
    def from_config(cls, config: PandoroConfig) -> "PandoroRequester":
        return cls(
            config.host,
            user_id=config.user_id,
            token=config.token,
            timeout=config.request_timeout_seconds,
            verify_tls=config.verify_tls,
        )

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "PandoroRequester":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    @property
    def headers(self) -> dict[str, str]:
        headers = {}
        if self.user_id is not None:
            headers[IDENTIFIER_HEADER] = self.user_id
        if self.token is not None:
            headers[TOKEN_HEADER] = self.token
        return headers

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def _execute(
        self,
        endpoint: Endpoint,
        *,
        payload: Callable[[], BaseModel] | None = None,
        files: dict[str, Any] | None = None,
        adapter: TypeAdapter | None = None,
        **path_params: str,
    ) -> PandoroResult:
        try:
            request = payload() if payload is not None else None
        except ValidationError as exc:
            error = _validation_message(exc)
            log.info("requester.invalid_input", path=endpoint.path, error=error)
            return PandoroResult.failed(error)

        url = self._base_url + endpoint.format(**path_params)
        body = request.model_dump(mode="json", by_alias=True) if request is not None else None
        try:
            response = self._client.request(
                endpoint.method,
                url,
                json=body,
                files=files,
                headers=self.headers,
            )
        except httpx.HTTPError as exc:
            log.error("requester.transport_error", method=endpoint.method, url=url, error=str(exc))
            return PandoroResult.failed()

        try:
            envelope = _read_envelope(response)
            value = None
            if envelope.success and adapter is not None:
                value = adapter.validate_python(envelope.data)
        except ValueError as exc:
            log.error(
                "requester.invalid_response",
                method=endpoint.method,
                url=url,
                status_code=response.status_code,
                error=str(exc),
            )
            return PandoroResult.failed()

        if not envelope.success:
            log.warning(
                "requester.request_failed",
                method=endpoint.method,
                url=url,
                status_code=envelope.status_code,
                error=envelope.error,
            )
        return PandoroResult(
            success=envelope.success,
            status_code=envelope.status_code,
            error=envelope.error,
            value=value,
        )

    def _authenticate(self, result: PandoroResult) -> PandoroResult:
        if result.success and result.value is not None:
            self.user_id = result.value.id
            self.token = result.value.token
            log.info("requester.authenticated", user_id=self.user_id)
        return result

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def sign_up(self, name: str, surname: str, email: str, password: str) -> PandoroResult[UserSession]:
        result = self._execute(
            endpoints.SIGN_UP,
            payload=lambda: SignUpRequest(name=name, surname=surname, email=email, password=password),
            adapter=_SESSION,
        )
        return self._authenticate(result)

    def sign_in(self, email: str, password: str) -> PandoroResult[UserSession]:
        result = self._execute(
            endpoints.SIGN_IN,
            payload=lambda: SignInRequest(email=email, password=password),
            adapter=_SESSION,
        )
        return self._authenticate(result)

    def change_email(self, new_email: str) -> PandoroResult[None]:
        return self._execute(
            endpoints.CHANGE_EMAIL,
            payload=lambda: ChangeEmailRequest(email=new_email),
            user_id=self.user_id,
        )

    def change_password(self, new_password: str) -> PandoroResult[None]:
        return self._execute(
            endpoints.CHANGE_PASSWORD,
            payload=lambda: ChangePasswordRequest(password=new_password),
            user_id=self.user_id,
        )

    def change_profile_pic(self, profile_pic: str | Path) -> PandoroResult[str]:
        """Upload a new profile picture; the value is the stored picture location."""
        profile_pic = Path(profile_pic)
        try:
            content = profile_pic.read_bytes()
        except OSError as exc:
            log.info("requester.invalid_input", path=str(profile_pic), error=str(exc))
            return PandoroResult.failed()
        return self._execute(
            endpoints.CHANGE_PROFILE_PIC,
            files={PROFILE_PIC_FIELD: (profile_pic.name, content)},
            adapter=_TEXT,
            user_id=self.user_id,
        )

    def delete_account(self) -> PandoroResult[None]:
        result = self._execute(endpoints.DELETE_ACCOUNT, user_id=self.user_id)
        if result.success:
            self.user_id = None
            self.token = None
        return result

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    def get_projects(self) -> PandoroResult[List[Project]]:
        return self._execute(endpoints.GET_PROJECTS, adapter=_PROJECTS)

    def get_project(self, project_id: str) -> PandoroResult[Project]:
        return self._execute(endpoints.GET_PROJECT, adapter=_PROJECT, project_id=project_id)

    def add_project(
        self,
        name: str,
        description: str,
        short_description: str,
        version: str,
        groups: Iterable[str] = (),
        repository: str = "",
    ) -> PandoroResult[Project]:
        return self._execute(
            endpoints.ADD_PROJECT,
            payload=lambda: ProjectCreate(
                name=name,
                project_description=description,
                project_short_description=short_description,
                project_version=version,
                groups=list(groups),
                project_repository=repository,
            ),
            adapter=_PROJECT,
        )

    def edit_project(
        self,
        project_id: str,
        name: str,
        description: str,
        short_description: str,
        version: str,
        groups: Iterable[str] = (),
        repository: str = "",
    ) -> PandoroResult[Project]:
        return self._execute(
            endpoints.EDIT_PROJECT,
            payload=lambda: ProjectEdit(
                name=name,
                project_description=description,
                project_short_description=short_description,
                project_version=version,
                groups=list(groups),
                project_repository=repository,
            ),
            adapter=_PROJECT,
            project_id=project_id,
        )

    def delete_project(self, project_id: str) -> PandoroResult[None]:
        return self._execute(endpoints.DELETE_PROJECT, project_id=project_id)

    # ------------------------------------------------------------------
    # Updates
    # ------------------------------------------------------------------

    def schedule_update(
        self,
        project_id: str,
        target_version: str,
        change_notes: Iterable[str],
    ) -> PandoroResult[ProjectUpdate]:
        return self._execute(
            endpoints.SCHEDULE_UPDATE,
            payload=lambda: UpdateSchedule(
                target_version=target_version,
                update_change_notes=list(change_notes),
            ),
            adapter=_UPDATE,
            project_id=project_id,
        )

    def start_update(self, project_id: str, update_id: str) -> PandoroResult[ProjectUpdate]:
        return self._execute(
            endpoints.START_UPDATE,
            adapter=_UPDATE,
            project_id=project_id,
            update_id=update_id,
        )

    def publish_update(self, project_id: str, update_id: str) -> PandoroResult[ProjectUpdate]:
        return self._execute(
            endpoints.PUBLISH_UPDATE,
            adapter=_UPDATE,
            project_id=project_id,
            update_id=update_id,
        )

    def add_change_note(self, project_id: str, update_id: str, content: str) -> PandoroResult[Note]:
        return self._execute(
            endpoints.ADD_CHANGE_NOTE,
            payload=lambda: ChangeNoteAdd(content_note=content),
            adapter=_NOTE,
            project_id=project_id,
            update_id=update_id,
        )

    def mark_change_note_as_done(self, project_id: str, update_id: str, note_id: str) -> PandoroResult[Note]:
        return self._execute(
            endpoints.MARK_CHANGE_NOTE_AS_DONE,
            adapter=_NOTE,
            project_id=project_id,
            update_id=update_id,
            note_id=note_id,
        )

    def mark_change_note_as_todo(self, project_id: str, update_id: str, note_id: str) -> PandoroResult[Note]:
        return self._execute(
            endpoints.MARK_CHANGE_NOTE_AS_TODO,
            adapter=_NOTE,
            project_id=project_id,
            update_id=update_id,
            note_id=note_id,
        )

    def edit_change_note(self, project_id: str, update_id: str, note_id: str, content: str) -> PandoroResult[Note]:
        return self._execute(
            endpoints.EDIT_CHANGE_NOTE,
            payload=lambda: ChangeNoteEdit(content_note=content),
            adapter=_NOTE,
            project_id=project_id,
            update_id=update_id,
            note_id=note_id,
        )

    def move_change_note(
        self,
        project_id: str,
        update_id: str,
        note_id: str,
        destination_update_id: str,
    ) -> PandoroResult[Note]:
        return self._execute(
            endpoints.MOVE_CHANGE_NOTE,
            payload=lambda: ChangeNoteMove(destination_update_id=destination_update_id),
            adapter=_NOTE,
            project_id=project_id,
            update_id=update_id,
            note_id=note_id,
        )

    def delete_change_note(self, project_id: str, update_id: str, note_id: str) -> PandoroResult[None]:
        return self._execute(
            endpoints.DELETE_CHANGE_NOTE,
            project_id=project_id,
            update_id=update_id,
            note_id=note_id,
        )

    def delete_update(self, project_id: str, update_id: str) -> PandoroResult[None]:
        return self._execute(endpoints.DELETE_UPDATE, project_id=project_id, update_id=update_id)

    # ------------------------------------------------------------------
    # Groups
    # ------------------------------------------------------------------

    def get_groups(self) -> PandoroResult[List[Group]]:
        return self._execute(endpoints.GET_GROUPS, adapter=_GROUPS)

    def get_group(self, group_id: str) -> PandoroResult[Group]:
        return self._execute(endpoints.GET_GROUP, adapter=_GROUP, group_id=group_id)

    def create_group(self, name: str, description: str, members: Iterable[str]) -> PandoroResult[Group]:
        return self._execute(
            endpoints.CREATE_GROUP,
            payload=lambda: GroupCreate(name=name, group_description=description, members=list(members)),
            adapter=_GROUP,
        )

    def add_members(self, group_id: str, members: Iterable[str]) -> PandoroResult[Group]:
        return self._execute(
            endpoints.ADD_MEMBERS,
            payload=lambda: MembersAdd(members=list(members)),
            adapter=_GROUP,
            group_id=group_id,
        )

    def accept_invitation(self, group_id: str, changelog_id: str) -> PandoroResult[Group]:
        return self._execute(
            endpoints.ACCEPT_GROUP_INVITATION,
            payload=lambda: InvitationReply(changelog=changelog_id),
            adapter=_GROUP,
            group_id=group_id,
        )

    def decline_invitation(self, group_id: str, changelog_id: str) -> PandoroResult[None]:
        return self._execute(
            endpoints.DECLINE_GROUP_INVITATION,
            payload=lambda: InvitationReply(changelog=changelog_id),
            group_id=group_id,
        )

    def change_member_role(self, group_id: str, member_id: str, role: Role | str) -> PandoroResult[Group]:
        return self._execute(
            endpoints.CHANGE_MEMBER_ROLE,
            payload=lambda: MemberRoleChange(member_id=member_id, role=role),
            adapter=_GROUP,
            group_id=group_id,
        )

    def remove_member(self, group_id: str, member_id: str) -> PandoroResult[Group]:
        return self._execute(
            endpoints.REMOVE_MEMBER,
            payload=lambda: MemberRemove(member_id=member_id),
            adapter=_GROUP,
            group_id=group_id,
        )

    def edit_projects(self, group_id: str, projects: Iterable[str]) -> PandoroResult[Group]:
        return self._execute(
            endpoints.EDIT_PROJECTS,
            payload=lambda: ProjectsEdit(projects=list(projects)),
            adapter=_GROUP,
            group_id=group_id,
        )

    def leave_group(self, group_id: str, next_admin_id: str | None = None) -> PandoroResult[None]:
        return self._execute(
            endpoints.LEAVE_GROUP,
            payload=lambda: LeaveGroupRequest(next_admin=next_admin_id),
            group_id=group_id,
        )

    def delete_group(self, group_id: str) -> PandoroResult[None]:
        return self._execute(endpoints.DELETE_GROUP, group_id=group_id)

    # ------------------------------------------------------------------
    # Personal notes
    # ------------------------------------------------------------------

    def get_notes(self) -> PandoroResult[List[Note]]:
        return self._execute(endpoints.GET_NOTES, adapter=_NOTES)

    def create_note(self, content: str) -> PandoroResult[Note]:
        return self._execute(
            endpoints.CREATE_NOTE,
            payload=lambda: NoteCreate(content_note=content),
            adapter=_NOTE,
        )

    def mark_note_as_done(self, note_id: str) -> PandoroResult[Note]:
        return self._execute(endpoints.MARK_NOTE_AS_DONE, adapter=_NOTE, note_id=note_id)

    def mark_note_as_todo(self, note_id: str) -> PandoroResult[Note]:
        return self._execute(endpoints.MARK_NOTE_AS_TODO, adapter=_NOTE, note_id=note_id)

    def delete_note(self, note_id: str) -> PandoroResult[None]:
        return self._execute(endpoints.DELETE_NOTE, note_id=note_id)

    # ------------------------------------------------------------------
    # Changelogs
    # ------------------------------------------------------------------

    def get_changelogs(self) -> PandoroResult[List[Changelog]]:
        return self._execute(endpoints.GET_CHANGELOGS, adapter=_CHANGELOGS)

    def read_changelog(self, changelog_id: str) -> PandoroResult[None]:
        return self._execute(endpoints.READ_CHANGELOG, changelog_id=changelog_id)

    def delete_changelog(self, changelog_id: str, group_id: str | None = None) -> PandoroResult[None]:
        """Delete a changelog; for an invitation ``group_id`` also declines it."""
        return self._execute(
            endpoints.DELETE_CHANGELOG,
            payload=lambda: ChangelogDelete(group_id=group_id),
            changelog_id=changelog_id,
        )
