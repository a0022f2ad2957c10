"""Game and review errors.

Routes map these to JSON error responses; the engine handles
``ValidationError`` itself by raising the input-error flag.
"""


class CharadsError(Exception):
    """Base class for all game errors."""
    status_code = 400


class ValidationError(CharadsError):
    """Bad user input: wrong first letter, empty term, empty name."""
    pass


class PreconditionError(CharadsError):
    """The call cannot apply to the current state. Nothing was changed."""
    status_code = 409


class RecordNotFound(PreconditionError):
    status_code = 404

    def __init__(self, record_id):
        self.record_id = record_id
        super().__init__(f"Result {record_id} not found")


class SessionNotFound(PreconditionError):
    status_code = 404

    def __init__(self, code):
        self.code = code
        super().__init__(f"Session {code} not found")


class PersistenceError(CharadsError):
    """The result store failed to read or write."""
    status_code = 503

    def __init__(self, message, record_id=None):
        self.record_id = record_id
        super().__init__(message)
