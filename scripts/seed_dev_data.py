#!/usr/bin/env python3
"""Seed a development backend with a user, projects, updates and a group.

Usage:
    python scripts/seed_dev_data.py [--host http://localhost:8080]

Everything goes through the public REST API, so any backend honouring the
Pandoro contract can be seeded.
"""

import argparse
import sys

from pandoro_client.main import configure_logging
from pandoro_client.requester import PandoroRequester

PASSWORD = "pandoro-dev-password"

USERS = [
    ("Ada", "Lovelace", "ada@pandoro.dev"),
    ("Grace", "Hopper", "grace@pandoro.dev"),
]

PROJECTS = [
    ("Pandoro", "Projects and updates manager", "Manager", "1.0.0", "https://github.com/tecknobit/pandoro"),
    ("Equinox", "Utilities library for backends", "Library", "1.0.3", "https://github.com/tecknobit/equinox"),
    ("Glider", "Notes synchronisation service", "Notes", "0.1.0", ""),
]

# (target version, change notes, how far along the lifecycle it goes)
UPDATES = [
    ("1.0.1", ["Fix login redirect", "Add overview screen"], "published"),
    ("1.0.2", ["Support GitLab repositories"], "started"),
    ("1.1.0", ["Move change notes between updates", "Group changelogs"], "scheduled"),
]


def _check(result, what: str):
    if not result.success_response():
        raise RuntimeError(f"{what} failed: {result.error_message()}")
    return result.value


def _sign_in_or_up(requester: PandoroRequester, name: str, surname: str, email: str) -> None:
    if requester.sign_in(email, PASSWORD).success_response():
        return
    _check(requester.sign_up(name, surname, email, PASSWORD), f"Sign up of {email}")


def seed(host: str) -> None:
    with PandoroRequester(host) as owner, PandoroRequester(host) as member:
        _sign_in_or_up(owner, *USERS[0])
        _sign_in_or_up(member, *USERS[1])

        group = _check(
            owner.create_group("Tecknobit", "Open source team", [USERS[1][2]]),
            "Group creation",
        )
        invitation = next(
            changelog for changelog in _check(member.get_changelogs(), "Changelogs")
            if changelog.is_invitation and changelog.group.id == group.id
        )
        _check(member.accept_invitation(group.id, invitation.id), "Invitation acceptance")

        for index, (name, description, short_description, version, repository) in enumerate(PROJECTS):
            groups = [group.id] if index == 0 else []
            project = _check(
                owner.add_project(name, description, short_description, version, groups, repository),
                f"Project {name}",
            )
            for target_version, notes, stage in UPDATES:
                update = _check(
                    owner.schedule_update(project.id, target_version, notes),
                    f"Update {target_version} of {name}",
                )
                if stage == "scheduled":
                    continue
                _check(owner.start_update(project.id, update.id), f"Start of {target_version}")
                if stage == "started":
                    continue
                for note in update.notes:
                    _check(
                        owner.mark_change_note_as_done(project.id, update.id, note.id),
                        f"Change note of {target_version}",
                    )
                _check(owner.publish_update(project.id, update.id), f"Publication of {target_version}")

        _check(owner.create_note("Plan the 1.1.0 release"), "Personal note")

    print(f"Seeded {host} with {len(USERS)} users, {len(PROJECTS)} projects and 1 group.")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--host", default="http://localhost:8080")
    args = parser.parse_args()
    configure_logging("warning")
    try:
        seed(args.host)
    except RuntimeError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)
