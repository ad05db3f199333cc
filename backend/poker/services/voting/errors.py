"""Typed failures raised by the voting services.

Routes never build error payloads by hand for these; the app-wide handler
in ``poker.api.errors`` turns them into ``{"success": false, ...}`` JSON.
"""


class VotingError(Exception):
    status_code = 400
    code = 'error'

    def __init__(self, message=None):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__

    def to_dict(self):
        return {'success': False, 'error': self.message, 'code': self.code}


class ValidationError(VotingError):
    """Missing or malformed input, e.g. an absent story id."""
    status_code = 400
    code = 'validation_error'


class Unauthenticated(VotingError):
    """Missing or wrong login credentials."""
    status_code = 401
    code = 'unauthenticated'


class Forbidden(VotingError):
    """The caller's role does not allow the operation."""
    status_code = 403
    code = 'forbidden'


class NotFound(VotingError):
    status_code = 404
    code = 'not_found'


class AlreadyVoted(VotingError):
    status_code = 409
    code = 'already_voted'


class RoundStateError(VotingError):
    """The story is not in a status that allows the operation."""
    status_code = 409
    code = 'invalid_state'


class ConflictError(VotingError):
    """A concurrent write changed the story between read and update."""
    status_code = 409
    code = 'conflict'


class StorageError(VotingError):
    status_code = 500
    code = 'storage_error'
