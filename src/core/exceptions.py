"""Exception hierarchy for the follow-up engine.

Each error carries the HTTP status the API layer maps it to.
"""


class AssistantError(Exception):
    """Base exception for all assistant errors."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(AssistantError):
    """Malformed or missing input."""

    status_code = 400


class NotFoundError(AssistantError):
    """Referenced entity does not exist."""

    status_code = 404


class ConflictError(AssistantError):
    """Unique constraint or state-machine conflict."""

    status_code = 409


class UpstreamError(AssistantError):
    """Generation backend or push provider failed."""

    status_code = 500


class InvalidGenerationError(UpstreamError):
    """Generation backend answered, but the result did not pass validation."""

    pass


class InternalError(AssistantError):
    """Unexpected store failure."""

    status_code = 500
