class SiwesError(Exception):
    """Base class for errors raised by the logbook services."""

    code = "error"

    def __init__(self, message="", **context):
        super().__init__(message)
        self.message = message
        self.context = context


class ValidationError(SiwesError):
    code = "validation_error"


class PreconditionFailed(SiwesError):
    code = "precondition_failed"


class Locked(PreconditionFailed):
    code = "locked"


class NotFound(SiwesError):
    code = "not_found"


class Unauthorized(SiwesError):
    code = "unauthorized"


class Forbidden(SiwesError):
    code = "forbidden"


class Unexpected(SiwesError):
    code = "unexpected"
