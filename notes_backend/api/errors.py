class NotesError(Exception):
    """Base class for errors that reach the API boundary as a structured message."""

    status_code = 500

    def __init__(self, message, **extra):
        super().__init__(message)
        self.message = message
        self.extra = extra

    def to_dict(self):
        return {"error": self.message, **self.extra}


class ValidationError(NotesError):
    """Missing or malformed input."""
    status_code = 400


class AuthError(NotesError):
    """Missing or invalid token, or bad credentials."""
    status_code = 401


class NotFoundError(NotesError):
    """Resource absent or owned by someone else."""
    status_code = 404


class ConflictError(NotesError):
    """Duplicate username or email."""
    status_code = 409


ERRORS_BY_STATUS = {cls.status_code: cls for cls in (ValidationError, AuthError, NotFoundError, ConflictError)}
