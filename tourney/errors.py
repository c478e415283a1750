"""
Error taxonomy for match and game operations.

Every error aborts the operation before anything is persisted. The web layer
maps each class to its HTTP status code.
"""


class TourneyError(Exception):
    """Base class for request-scoped failures."""
    status_code = 400

    def __init__(self, message: str = ""):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__


class AuthenticationRequired(TourneyError):
    """No caller identity was supplied."""
    status_code = 401


class AuthorizationDenied(TourneyError):
    """Caller is not the owner, not an assigned player, or not on turn."""
    status_code = 403


class NotFound(TourneyError):
    """Match, tournament or game session does not exist."""
    status_code = 404


class InvalidState(TourneyError):
    """Operation attempted in the wrong lifecycle state."""
    status_code = 409


class InvalidMove(TourneyError):
    """Move rejected by the rules engine."""
    status_code = 422


class AlreadyExists(TourneyError):
    """Record already exists (duplicate session or match slot)."""
    status_code = 409
