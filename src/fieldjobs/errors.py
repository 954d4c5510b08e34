class FailureClass:
    RETRYABLE = "RETRYABLE"
    NON_RETRYABLE = "NON_RETRYABLE"


class FieldJobsError(Exception):
    code = "error"
    failure_class = FailureClass.NON_RETRYABLE

    def __init__(self, message: str, **details) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    @property
    def retryable(self) -> bool:
        return self.failure_class == FailureClass.RETRYABLE


class ValidationError(FieldJobsError):
    """Input shape or content violated a precondition; fix the input and retry."""

    code = "validation_error"
    failure_class = FailureClass.RETRYABLE


class ConflictError(FieldJobsError):
    """A concurrency invariant was violated, e.g. a second open work session."""

    code = "conflict"
    failure_class = FailureClass.RETRYABLE


class InvalidStateError(FieldJobsError):
    """The job's lifecycle state does not allow the operation."""

    code = "invalid_state"


class NotFoundError(FieldJobsError):
    code = "not_found"
