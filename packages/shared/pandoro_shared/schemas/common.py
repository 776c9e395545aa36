import uuid
from datetime import datetime, timezone
from enum import Enum, IntEnum
from typing import Any, Optional

from pydantic import BaseModel, Field

# Envelope keys
SUCCESS_KEY = "success"
STATUS_CODE_KEY = "statusCode"
ERROR_KEY = "error"
DATA_KEY = "data"

# Backend error messages
WRONG_PROCEDURE_MESSAGE = "Wrong procedure"
NOT_AUTHORIZED_OR_WRONG_DETAILS_MESSAGE = "Not authorized or wrong details"
CANNOT_EXECUTE_ACTION_ON_OWN_ACCOUNT_MESSAGE = "You cannot execute this action on your account"
WRONG_ADMIN_MESSAGE = "You must choose a new admin"


class StandardResponseCode(IntEnum):
    SUCCESSFUL = 200
    FAILED = 500


class UpdateStatus(str, Enum):
    SCHEDULED = "SCHEDULED"
    IN_DEVELOPMENT = "IN_DEVELOPMENT"
    PUBLISHED = "PUBLISHED"

# Ordered list for transition validation
UPDATE_STATUS_ORDER: list["UpdateStatus"] = [
    UpdateStatus.SCHEDULED,
    UpdateStatus.IN_DEVELOPMENT,
    UpdateStatus.PUBLISHED,
]

class UpdateEventType(str, Enum):
    SCHEDULED = "SCHEDULED"
    STARTED = "STARTED"
    CHANGENOTE_ADDED = "CHANGENOTE_ADDED"
    CHANGENOTE_DONE = "CHANGENOTE_DONE"
    CHANGENOTE_UNDONE = "CHANGENOTE_UNDONE"
    CHANGENOTE_EDITED = "CHANGENOTE_EDITED"
    CHANGENOTE_MOVED_TO = "CHANGENOTE_MOVED_TO"
    CHANGENOTE_MOVED_FROM = "CHANGENOTE_MOVED_FROM"
    CHANGENOTE_REMOVED = "CHANGENOTE_REMOVED"
    PUBLISHED = "PUBLISHED"

class Role(str, Enum):
    ADMIN = "ADMIN"
    MAINTAINER = "MAINTAINER"
    DEVELOPER = "DEVELOPER"

class InvitationStatus(str, Enum):
    PENDING = "PENDING"
    JOINED = "JOINED"

class RepositoryPlatform(str, Enum):
    GITHUB = "Github"
    GITLAB = "GitLab"

    @classmethod
    def is_valid_platform(cls, url: str) -> bool:
        url = url.lower()
        return any(platform.value.lower() in url for platform in cls)

    @classmethod
    def reach_platform(cls, url: str) -> "RepositoryPlatform":
        if cls.GITHUB.value.lower() in url.lower():
            return cls.GITHUB
        return cls.GITLAB


class PandoroItem(BaseModel):
    """Identity shared by every named entity; also used as a lightweight reference."""
    id: str
    name: str


class APIResponse(BaseModel):
    """The envelope every backend endpoint answers with."""
    success: bool = True
    status_code: int = Field(default=StandardResponseCode.SUCCESSFUL, alias=STATUS_CODE_KEY)
    error: Optional[str] = None
    data: Optional[Any] = None

    model_config = {"populate_by_name": True}

    @classmethod
    def successful(cls, data: Any = None) -> "APIResponse":
        return cls(success=True, status_code=StandardResponseCode.SUCCESSFUL, data=data)

    @classmethod
    def failed(cls, error: str = WRONG_PROCEDURE_MESSAGE) -> "APIResponse":
        return cls(success=False, status_code=StandardResponseCode.FAILED, error=error)


def generate_identifier() -> str:
    return uuid.uuid4().hex


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
