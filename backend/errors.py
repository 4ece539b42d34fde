"""
Survey Errors

Every failure the ingestion and aggregation services surface to their
callers derives from SurveyError.
"""


class SurveyError(Exception):
    """Base class for survey service errors."""


class ValidationError(SurveyError):
    """A required field is missing or malformed."""

    def __init__(self, errors):
        self.errors = errors
        fields = ", ".join(".".join(str(part) for part in err["loc"]) for err in errors)
        super().__init__(f"Invalid survey response: {fields}")


class DuplicateSubmission(SurveyError):
    """A stored response already carries the submitted email or IP."""
    field = None

    def __init__(self, value):
        self.value = value
        super().__init__(f"A response with {self.field} {value!r} already exists")


class DuplicateEmail(DuplicateSubmission):
    field = "email"


class DuplicateIp(DuplicateSubmission):
    field = "ipAddress"


class StoreUnavailable(SurveyError):
    """The response store could not be read or written."""


class UndefinedCorrelation(SurveyError):
    """The correlation coefficient cannot be computed for the given series."""


class UniqueConstraintViolation(SurveyError):
    """The database rejected an insert because of a unique constraint."""

    def __init__(self, field):
        self.field = field
        super().__init__(f"Unique constraint violated on {field}")
