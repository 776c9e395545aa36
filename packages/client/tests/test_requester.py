"""
Request façade tests against the in-memory Pandoro backend.
"""

import httpx
import pytest

from conftest import HOST, PASSWORD
from pandoro_client.requester import PandoroRequester
from pandoro_shared.schemas.changelogs import ChangelogEvent
from pandoro_shared.schemas.common import (
    NOT_AUTHORIZED_OR_WRONG_DETAILS_MESSAGE,
    WRONG_ADMIN_MESSAGE,
    WRONG_PROCEDURE_MESSAGE,
    InvitationStatus,
    Role,
    StandardResponseCode,
    UpdateEventType,
    UpdateStatus,
)


def _add_project(requester, name="Pandoro", groups=()):
    result = requester.add_project(
        name,
        "Projects and updates manager",
        "Manager",
        "1.0.0",
        groups=groups,
        repository="https://github.com/N7ghtm4r3/Pandoro",
    )
    assert result.success, result.error
    return result.value


def _invitation(requester, group_id):
    changelogs = requester.get_changelogs().value
    return next(
        c for c in changelogs
        if c.changelog_event == ChangelogEvent.INVITED_GROUP and c.group.id == group_id
    )


@pytest.fixture
def team(signed_up):
    """An admin and a joined developer sharing a group."""
    admin = signed_up()
    developer = signed_up("Grace", "Hopper", "grace@pandoro.dev")
    group = admin.create_group("Tecknobit", "Open source team", ["grace@pandoro.dev"]).value
    developer.accept_invitation(group.id, _invitation(developer, group.id).id)
    return admin, developer, group


class TestAuthentication:
    def test_sign_up_sets_credentials(self, requester):
        """Signing up stores the returned id and token as request headers."""
        assert requester.user_id is not None
        assert requester.headers == {"id": requester.user_id, "token": requester.token}

    def test_sign_in_refreshes_credentials(self, requester, make_requester):
        other = make_requester()
        result = other.sign_in("ada@pandoro.dev", PASSWORD)
        assert result.success_response()
        assert other.user_id == requester.user_id
        assert other.token == requester.token
        assert result.value.complete_name == "Ada Lovelace"

    def test_sign_in_with_wrong_password(self, requester, make_requester):
        other = make_requester()
        result = other.sign_in("ada@pandoro.dev", "wrong-password")
        assert not result.success_response()
        assert result.error_message() == NOT_AUTHORIZED_OR_WRONG_DETAILS_MESSAGE
        assert other.user_id is None

    def test_invalid_input_is_not_sent(self, make_requester, backend):
        """A request failing its own validation never reaches the backend."""
        result = make_requester().sign_up("Ada", "Lovelace", "not-an-email", PASSWORD)
        assert not result.success
        assert result.status_code == StandardResponseCode.FAILED
        assert result.error == "Wrong email"
        assert backend.state.pandoro.users == {}

    def test_unauthenticated_request_fails(self, make_requester):
        result = make_requester().get_projects()
        assert not result.success
        assert result.error == NOT_AUTHORIZED_OR_WRONG_DETAILS_MESSAGE

    def test_change_email_and_password(self, requester, make_requester):
        assert requester.change_email("ada@tecknobit.dev").success
        assert requester.change_password("brand-new-password").success
        assert make_requester().sign_in("ada@tecknobit.dev", "brand-new-password").success

    def test_account_routes_check_path_against_headers(self, signed_up, http_client):
        """The ``id`` header and the ``user_id`` path segment must name the same user."""
        ada = signed_up()
        grace = signed_up("Grace", "Hopper", "grace@pandoro.dev")
        response = http_client.patch(
            f"/api/v1/users/{grace.user_id}/changeEmail",
            headers=ada.headers,
            json={"email": "taken@pandoro.dev"},
        )
        assert response.status_code == 400
        assert response.json()["error"] == NOT_AUTHORIZED_OR_WRONG_DETAILS_MESSAGE
        assert ada.change_email("ada@tecknobit.dev").success

    def test_change_profile_pic(self, requester, tmp_path):
        picture = tmp_path / "ada.png"
        picture.write_bytes(b"\x89PNG")
        result = requester.change_profile_pic(picture)
        assert result.success
        assert result.value == f"profiles/{requester.user_id}/ada.png"

    def test_change_profile_pic_missing_file(self, requester, tmp_path):
        result = requester.change_profile_pic(tmp_path / "missing.png")
        assert not result.success
        assert result.error == WRONG_PROCEDURE_MESSAGE

    def test_delete_account_clears_credentials(self, requester, make_requester):
        _add_project(requester)
        assert requester.delete_account().success
        assert requester.user_id is None
        assert requester.token is None
        assert not make_requester().sign_in("ada@pandoro.dev", PASSWORD).success


class TestProjects:
    def test_add_and_list(self, requester):
        project = _add_project(requester)
        assert project.short_description == "Manager"
        assert project.repository_platform.value == "Github"
        projects = requester.get_projects().value
        assert [p.id for p in projects] == [project.id]

    def test_add_with_invalid_repository(self, requester):
        result = requester.add_project("Pandoro", "Manager", "Manager", "1.0.0", repository="https://example.com/x")
        assert not result.success
        assert result.error == "Wrong project repository"

    def test_edit(self, requester):
        project = _add_project(requester)
        result = requester.edit_project(project.id, "Pandoro 2", "New description", "Manager", "2.0.0")
        assert result.success
        assert requester.get_project(project.id).value.name == "Pandoro 2"

    def test_delete(self, requester):
        project = _add_project(requester)
        assert requester.delete_project(project.id).success
        assert not requester.get_project(project.id).success

    def test_only_the_author_deletes(self, team):
        admin, developer, group = team
        project = _add_project(admin, groups=[group.id])
        result = developer.delete_project(project.id)
        assert not result.success
        assert admin.get_project(project.id).success


class TestUpdateLifecycle:
    @pytest.fixture
    def project(self, requester):
        return _add_project(requester)

    def test_full_lifecycle(self, requester, project):
        update = requester.schedule_update(project.id, "1.0.1", ["Fix login", "Add overview"]).value
        assert update.status == UpdateStatus.SCHEDULED

        started = requester.start_update(project.id, update.id).value
        assert started.status == UpdateStatus.IN_DEVELOPMENT
        assert started.started_by.id == requester.user_id

        refused = requester.publish_update(project.id, update.id)
        assert not refused.success
        assert refused.error == "All the change notes must be done before publishing"

        for note in started.notes:
            assert requester.mark_change_note_as_done(project.id, update.id, note.id).value.marked_as_done

        published = requester.publish_update(project.id, update.id).value
        assert published.status == UpdateStatus.PUBLISHED
        assert published.published_by.id == requester.user_id
        assert published.publish_date is not None

        assert not requester.start_update(project.id, update.id).success

    def test_schedule_requires_notes(self, requester, project):
        result = requester.schedule_update(project.id, "1.0.1", [])
        assert not result.success
        assert result.error == "Wrong change notes list"

    def test_duplicate_target_version(self, requester, project):
        assert requester.schedule_update(project.id, "1.0.1", ["Fix"]).success
        assert not requester.schedule_update(project.id, "1.0.1", ["Fix again"]).success

    def test_change_notes(self, requester, project):
        update = requester.schedule_update(project.id, "1.0.1", ["Fix login"]).value
        note = requester.add_change_note(project.id, update.id, "Write docs").value
        assert note.content == "Write docs"

        refused = requester.mark_change_note_as_done(project.id, update.id, note.id)
        assert not refused.success
        assert "in development" in refused.error

        requester.start_update(project.id, update.id)
        assert requester.mark_change_note_as_done(project.id, update.id, note.id).value.marked_as_done
        undone = requester.mark_change_note_as_todo(project.id, update.id, note.id).value
        assert not undone.marked_as_done
        assert undone.marked_as_done_by is None

        assert requester.delete_change_note(project.id, update.id, note.id).success
        notes = requester.get_project(project.id).value.get_update(update.id).notes
        assert [n.content for n in notes] == ["Fix login"]

    def test_published_change_notes_are_frozen(self, requester, project):
        """Once published, notes can be neither reopened nor removed."""
        update = requester.schedule_update(project.id, "1.0.1", ["Fix login"]).value
        note_id = update.notes[0].id
        requester.start_update(project.id, update.id)
        requester.mark_change_note_as_done(project.id, update.id, note_id)
        assert requester.publish_update(project.id, update.id).success

        assert not requester.mark_change_note_as_todo(project.id, update.id, note_id).success
        assert not requester.delete_change_note(project.id, update.id, note_id).success
        assert not requester.edit_change_note(project.id, update.id, note_id, "Rewritten").success

        stored = requester.get_project(project.id).value.get_update(update.id)
        assert stored.status == UpdateStatus.PUBLISHED
        assert [(n.content, n.marked_as_done) for n in stored.notes] == [("Fix login", True)]

    def test_edit_and_move_change_note(self, requester, project):
        source = requester.schedule_update(project.id, "1.0.1", ["Fix login", "Add docs"]).value
        destination = requester.schedule_update(project.id, "1.0.2", ["Add overview"]).value
        note_id = source.notes[1].id

        edited = requester.edit_change_note(project.id, source.id, note_id, "Add user docs").value
        assert edited.content == "Add user docs"
        invalid = requester.edit_change_note(project.id, source.id, note_id, "")
        assert not invalid.success
        assert invalid.error == "Wrong change note content"

        assert requester.move_change_note(project.id, source.id, note_id, destination.id).success
        stored = requester.get_project(project.id).value
        assert [n.content for n in stored.get_update(source.id).notes] == ["Fix login"]
        assert [n.content for n in stored.get_update(destination.id).notes] == ["Add overview", "Add user docs"]
        assert not requester.move_change_note(project.id, destination.id, note_id, destination.id).success

    def test_update_timeline(self, requester, project):
        update = requester.schedule_update(project.id, "1.0.1", ["Fix login"]).value
        requester.start_update(project.id, update.id)
        requester.mark_change_note_as_done(project.id, update.id, update.notes[0].id)
        requester.publish_update(project.id, update.id)

        stored = requester.get_project(project.id).value.get_update(update.id)
        assert [event.type for event in stored.events] == [
            UpdateEventType.SCHEDULED,
            UpdateEventType.STARTED,
            UpdateEventType.CHANGENOTE_DONE,
            UpdateEventType.PUBLISHED,
        ]
        assert all(event.author.id == requester.user_id for event in stored.events)
        assert stored.events[2].note_content == "Fix login"

    def test_developer_cannot_drive_lifecycle(self, team):
        """Starting and publishing need the same rights as scheduling."""
        admin, developer, group = team
        project = _add_project(admin, groups=[group.id])
        update = admin.schedule_update(project.id, "1.0.1", ["Fix login"]).value

        refused = developer.start_update(project.id, update.id)
        assert not refused.success
        assert refused.error == NOT_AUTHORIZED_OR_WRONG_DETAILS_MESSAGE

        admin.start_update(project.id, update.id)
        developer.mark_change_note_as_done(project.id, update.id, update.notes[0].id)
        assert not developer.publish_update(project.id, update.id).success
        assert admin.publish_update(project.id, update.id).success

    def test_delete_published_update(self, requester, project):
        update = requester.schedule_update(project.id, "1.0.1", ["Fix login"]).value
        requester.start_update(project.id, update.id)
        requester.mark_change_note_as_done(project.id, update.id, update.notes[0].id)
        requester.publish_update(project.id, update.id)
        assert requester.delete_update(project.id, update.id).success
        assert requester.get_project(project.id).value.updates == []


class TestGroups:
    def test_invitation_flow(self, team):
        admin, developer, group = team
        group = developer.get_group(group.id).value
        member = group.get_member(developer.user_id)
        assert member.invitation_status == InvitationStatus.JOINED
        assert member.role == Role.DEVELOPER
        assert [g.id for g in developer.get_groups().value] == [group.id]

    def test_duplicate_group_name(self, team):
        admin, _, _ = team
        result = admin.create_group("Tecknobit", "Another one", ["grace@pandoro.dev"])
        assert not result.success
        assert result.error == "A group with this name already exists"

    def test_sole_admin_needs_successor(self, team):
        admin, developer, group = team
        refused = admin.leave_group(group.id)
        assert not refused.success
        assert refused.error == WRONG_ADMIN_MESSAGE

        assert admin.leave_group(group.id, next_admin_id=developer.user_id).success
        group = developer.get_group(group.id).value
        assert group.get_member(admin.user_id) is None
        assert group.get_member(developer.user_id).role == Role.ADMIN

    def test_developer_cannot_change_roles(self, team):
        admin, developer, group = team
        result = developer.change_member_role(group.id, admin.user_id, Role.DEVELOPER)
        assert not result.success
        assert result.error == NOT_AUTHORIZED_OR_WRONG_DETAILS_MESSAGE

    def test_admin_promotes_member(self, team):
        admin, developer, group = team
        group = admin.change_member_role(group.id, developer.user_id, Role.MAINTAINER).value
        assert group.get_member(developer.user_id).role == Role.MAINTAINER
        contents = [c.content for c in developer.get_changelogs().value]
        assert "You became a MAINTAINER in the Tecknobit group" in contents

    def test_remove_member(self, team):
        admin, developer, group = team
        group = admin.remove_member(group.id, developer.user_id).value
        assert group.get_member(developer.user_id) is None

    def test_decline_by_deleting_invitation(self, signed_up):
        admin = signed_up()
        guest = signed_up("Grace", "Hopper", "grace@pandoro.dev")
        group = admin.create_group("Tecknobit", "Open source team", ["grace@pandoro.dev"]).value
        invitation = _invitation(guest, group.id)

        assert not guest.delete_changelog(invitation.id).success
        assert guest.delete_changelog(invitation.id, group_id=group.id).success
        assert admin.get_group(group.id).value.get_member(guest.user_id) is None

    def test_decline_invitation_endpoint(self, signed_up):
        admin = signed_up()
        guest = signed_up("Grace", "Hopper", "grace@pandoro.dev")
        group = admin.create_group("Tecknobit", "Open source team", ["grace@pandoro.dev"]).value
        assert guest.decline_invitation(group.id, _invitation(guest, group.id).id).success
        assert admin.get_group(group.id).value.total_members == 1

    def test_add_members(self, signed_up):
        admin = signed_up()
        signed_up("Grace", "Hopper", "grace@pandoro.dev")
        group = admin.create_group("Tecknobit", "Open source team", ["grace@pandoro.dev"]).value
        signed_up("Alan", "Turing", "alan@pandoro.dev")
        group = admin.add_members(group.id, ["alan@pandoro.dev", "grace@pandoro.dev"]).value
        assert group.total_members == 3

    def test_shared_project_notifies_members(self, team):
        admin, developer, group = team
        project = _add_project(admin)
        assert admin.edit_projects(group.id, [project.id]).success
        assert [p.id for p in developer.get_projects().value] == [project.id]

        admin.schedule_update(project.id, "1.0.1", ["Fix login"])
        events = [c.changelog_event for c in developer.get_changelogs().value]
        assert ChangelogEvent.PROJECT_ADDED in events
        assert ChangelogEvent.UPDATE_SCHEDULED in events

    def test_edit_projects_requires_owned_projects(self, team):
        admin, developer, group = team
        foreign = _add_project(developer, name="Foreign")
        result = admin.edit_projects(group.id, [foreign.id])
        assert not result.success
        assert result.error == "Wrong projects list"

    def test_delete_group_keeps_projects(self, team):
        admin, developer, group = team
        project = _add_project(admin, groups=[group.id])
        assert not developer.delete_group(group.id).success
        assert admin.delete_group(group.id).success
        assert admin.get_project(project.id).value.groups == []
        assert not developer.get_projects().value


class TestNotes:
    def test_note_lifecycle(self, requester):
        note = requester.create_note("Buy coffee").value
        assert requester.mark_note_as_done(note.id).value.marked_as_done
        assert not requester.mark_note_as_todo(note.id).value.marked_as_done
        assert [n.id for n in requester.get_notes().value] == [note.id]
        assert requester.delete_note(note.id).success
        assert requester.get_notes().value == []

    def test_empty_note_refused(self, requester):
        result = requester.create_note("")
        assert not result.success
        assert result.error == "Wrong content"


class TestChangelogs:
    def test_read_is_idempotent(self, team):
        _, developer, _ = team
        changelogs = developer.get_changelogs().value
        unread = [c for c in changelogs if not c.read]
        assert unread
        for _ in range(2):
            assert developer.read_changelog(unread[0].id).success
        refreshed = {c.id: c for c in developer.get_changelogs().value}
        assert refreshed[unread[0].id].read


class TestTransportFailures:
    def _requester(self, handler) -> PandoroRequester:
        return PandoroRequester(HOST, "user", "token", client=httpx.Client(transport=httpx.MockTransport(handler)))

    def test_connection_error_is_canned_failure(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        result = self._requester(handler).get_projects()
        assert not result.success_response()
        assert result.status_code == StandardResponseCode.FAILED
        assert result.error_message() == WRONG_PROCEDURE_MESSAGE

    def test_non_json_body_is_canned_failure(self):
        result = self._requester(lambda request: httpx.Response(200, text="<html>")).get_projects()
        assert not result.success
        assert result.error == WRONG_PROCEDURE_MESSAGE

    def test_unparsable_payload_is_canned_failure(self):
        body = {"success": True, "statusCode": 200, "data": [{"unexpected": True}]}
        result = self._requester(lambda request: httpx.Response(200, json=body)).get_projects()
        assert not result.success
        assert result.error == WRONG_PROCEDURE_MESSAGE

    def test_body_without_success_flag_is_successful(self):
        result = self._requester(lambda request: httpx.Response(200, json=[])).get_notes()
        assert result.success
        assert result.value == []

    def test_error_status_without_envelope(self):
        result = self._requester(lambda request: httpx.Response(404, json={"detail": "Not Found"})).get_notes()
        assert not result.success
        assert result.status_code == 404
        assert result.error == WRONG_PROCEDURE_MESSAGE

    def test_headers_are_sent(self):
        seen = {}

        def handler(request):
            seen.update(request.headers)
            return httpx.Response(200, json={"success": True, "statusCode": 200, "data": []})

        self._requester(handler).get_changelogs()
        assert seen["id"] == "user"
        assert seen["token"] == "token"
