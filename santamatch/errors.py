from __future__ import annotations


class MatchingError(RuntimeError):
    """Base for every way a matching request can be refused or fail.

    ``code`` is the stable machine-readable kind, ``status`` the HTTP status a
    view should answer with, and ``retryable`` tells the caller whether trying
    again can produce a different outcome.
    """

    code = "matching_error"
    status = 500
    retryable = False
    default_message = "Matching failed."

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)

    def to_dict(self) -> dict:
        return {
            "error": self.code,
            "message": str(self),
            "retryable": self.retryable,
        }


class Unauthenticated(MatchingError):
    code = "unauthorized"
    status = 401
    default_message = "You must be logged in."


class GroupNotFound(MatchingError):
    code = "group_not_found"
    status = 404
    default_message = "Group not found."


class AlreadyMatched(MatchingError):
    code = "already_matched"
    status = 409
    default_message = "This group has already been matched."


class Forbidden(MatchingError):
    code = "forbidden"
    status = 403
    default_message = "Only the group moderator can start matching."


class InsufficientMembers(MatchingError):
    code = "min_members"
    status = 400
    default_message = "A group needs at least 3 members to be matched."


class PersistenceConflict(AlreadyMatched):
    """Another request committed a matching for the group first."""


class PersistenceFailure(MatchingError):
    code = "apply_failed"
    status = 500
    retryable = True
    default_message = "Could not save the matching. Nothing was changed; please try again."


class NotificationError(RuntimeError):
    pass
