"""Input validation predicates.

Every predicate answers ``False`` for missing, empty, out-of-range or
malformed input and never raises. Typed request models reuse them in their
field validators so the backend and the client agree on the same rules.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Iterable, Optional

from email_validator import EmailNotValidError, validate_email

from .schemas.common import RepositoryPlatform

NAME_MAX_LENGTH = 20
SURNAME_MAX_LENGTH = 30
PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 32

PROJECT_NAME_MAX_LENGTH = 25
PROJECT_SHORT_DESCRIPTION_MAX_LENGTH = 15
PROJECT_DESCRIPTION_MAX_LENGTH = 65535
TARGET_VERSION_MAX_LENGTH = 20
NOTE_CONTENT_MAX_LENGTH = 65535

GROUP_NAME_MAX_LENGTH = 25
GROUP_DESCRIPTION_MAX_LENGTH = 65535

URL_REGEX = re.compile(
    r"^[a-zA-Z][a-zA-Z0-9+.-]*://"
    r"(([a-zA-Z0-9\-]+\.)+[a-zA-Z]{2,6}|\d{1,3}(?:\.\d{1,3}){3})"
    r"(?::\d{1,5})?(/\S*)?(\?(\S*))?(#(\S*))?$"
)


class InputStatus(str, Enum):
    OK = "OK"
    WRONG_NAME = "WRONG_NAME"
    WRONG_SURNAME = "WRONG_SURNAME"
    WRONG_EMAIL = "WRONG_EMAIL"
    WRONG_PASSWORD = "WRONG_PASSWORD"


def _is_in_range(value: Optional[str], max_length: int, min_length: int = 1) -> bool:
    return value is not None and min_length <= len(value) <= max_length


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

def is_name_valid(name: Optional[str]) -> bool:
    return _is_in_range(name, NAME_MAX_LENGTH)


def is_surname_valid(surname: Optional[str]) -> bool:
    return _is_in_range(surname, SURNAME_MAX_LENGTH)


def is_email_valid(email: Optional[str]) -> bool:
    if not email:
        return False
    try:
        validate_email(email, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def is_password_valid(password: Optional[str]) -> bool:
    return _is_in_range(password, PASSWORD_MAX_LENGTH, min_length=PASSWORD_MIN_LENGTH)


def are_credentials_valid(email: Optional[str], password: Optional[str]) -> InputStatus:
    if not is_email_valid(email):
        return InputStatus.WRONG_EMAIL
    if not is_password_valid(password):
        return InputStatus.WRONG_PASSWORD
    return InputStatus.OK


def validate_sign_up(
    name: Optional[str],
    surname: Optional[str],
    email: Optional[str],
    password: Optional[str],
) -> InputStatus:
    """Return the first invalid sign up field, or ``InputStatus.OK``."""
    if not is_name_valid(name):
        return InputStatus.WRONG_NAME
    if not is_surname_valid(surname):
        return InputStatus.WRONG_SURNAME
    return are_credentials_valid(email, password)


# ---------------------------------------------------------------------------
# Projects and updates
# ---------------------------------------------------------------------------

def is_valid_project_name(name: Optional[str]) -> bool:
    return _is_in_range(name, PROJECT_NAME_MAX_LENGTH)


def is_valid_project_short_description(short_description: Optional[str]) -> bool:
    return _is_in_range(short_description, PROJECT_SHORT_DESCRIPTION_MAX_LENGTH)


def is_valid_project_description(description: Optional[str]) -> bool:
    return _is_in_range(description, PROJECT_DESCRIPTION_MAX_LENGTH)


def is_valid_version(version: Optional[str]) -> bool:
    return _is_in_range(version, TARGET_VERSION_MAX_LENGTH)


def is_valid_repository(repository: Optional[str]) -> bool:
    """An empty repository means "no repository" and is accepted."""
    if repository is None:
        return False
    if repository == "":
        return True
    return bool(URL_REGEX.match(repository)) and RepositoryPlatform.is_valid_platform(repository)


def is_content_note_valid(content: Optional[str]) -> bool:
    return _is_in_range(content, NOTE_CONTENT_MAX_LENGTH)


def are_notes_valid(notes: Optional[Iterable[str]]) -> bool:
    if notes is None:
        return False
    empty = True
    for note in notes:
        empty = False
        if not is_content_note_valid(note):
            return False
    return not empty


def are_all_change_notes_done(notes) -> bool:
    """Fails closed: a missing or empty collection is never publishable."""
    if not notes:
        return False
    return all(note.marked_as_done for note in notes)


# ---------------------------------------------------------------------------
# Groups
# ---------------------------------------------------------------------------

def is_group_name_valid(name: Optional[str]) -> bool:
    return _is_in_range(name, GROUP_NAME_MAX_LENGTH)


def is_group_description_valid(description: Optional[str]) -> bool:
    return _is_in_range(description, GROUP_DESCRIPTION_MAX_LENGTH)


def check_members_validity(members: Optional[Iterable[str]]) -> bool:
    if members is None:
        return False
    empty = True
    for member in members:
        empty = False
        if not is_email_valid(member):
            return False
    return not empty
