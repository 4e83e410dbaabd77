"""Domain exceptions raised by CRUD and task ordering operations.

Routers translate these into HTTP errors; nothing below the API layer
knows about status codes.
"""
from typing import Optional
from uuid import UUID


class NotFoundError(LookupError):
    """Raised when a referenced entity does not exist."""

    kind = "NotFound"
    resource = "Resource"

    def __init__(self, entity_id: Optional[UUID] = None, message: Optional[str] = None):
        self.entity_id = entity_id
        if message is None:
            message = f"{self.resource} not found"
            if entity_id is not None:
                message = f"{message}: {entity_id}"
        super().__init__(message)


class ProjectNotFoundError(NotFoundError):
    kind = "ProjectNotFound"
    resource = "Project"


class CreatorNotFoundError(NotFoundError):
    kind = "CreatorNotFound"
    resource = "Creator user"


class AssigneeNotFoundError(NotFoundError):
    kind = "AssigneeNotFound"
    resource = "Assignee user"


class TaskNotFoundError(NotFoundError):
    kind = "TaskNotFound"
    resource = "Task"


class UserNotFoundError(NotFoundError):
    kind = "UserNotFound"
    resource = "User"


class AuthorNotFoundError(NotFoundError):
    kind = "AuthorNotFound"
    resource = "Author user"


class InviterNotFoundError(NotFoundError):
    kind = "InviterNotFound"
    resource = "Inviting user"


class OrganizationNotFoundError(NotFoundError):
    kind = "OrganizationNotFound"
    resource = "Organization"


class MembershipNotFoundError(NotFoundError):
    kind = "MembershipNotFound"
    resource = "Project membership"


class InvitationNotFoundError(NotFoundError):
    kind = "InvitationNotFound"
    resource = "Invitation"


class ConflictError(ValueError):
    """Raised when a create would duplicate a unique record."""
    pass


class InvitationError(ValueError):
    """Raised when an invitation can no longer be used (accepted or expired)."""
    pass


class PositionOutOfRangeError(ValueError):
    """Raised when a move targets a position past the end of a column."""

    def __init__(self, message: str, requested_position: int, max_position: int):
        super().__init__(message)
        self.requested_position = requested_position
        self.max_position = max_position
