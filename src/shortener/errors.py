class ShortenerError(Exception):
    """Base error carrying the HTTP status and machine-readable category."""

    status_code = 500
    category = "internal_error"
    default_message = "An internal error occurred"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(ShortenerError, ValueError):
    status_code = 400
    category = "validation_error"
    default_message = "Please check your input data"


class InvalidURL(ValidationError):
    category = "invalid_url"
    default_message = "Please provide a valid HTTP or HTTPS URL"


class InvalidShortCode(ValidationError):
    category = "invalid_short_code"
    default_message = "Short code contains invalid characters"


class GenerationExhausted(ShortenerError):
    category = "generation_exhausted"

    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(f"Unable to generate unique short code after {attempts} attempts")


class UniquenessViolation(ShortenerError):
    status_code = 409
    category = "uniqueness_violation"

    def __init__(self, short_code: str):
        self.short_code = short_code
        super().__init__(f"Short code {short_code!r} already exists")


class LinkNotFound(ShortenerError):
    status_code = 404
    category = "not_found"
    default_message = "The shortened URL you requested does not exist"


class LinkGone(ShortenerError):
    status_code = 410
    category = "gone"

    MESSAGES = {
        "disabled": "This shortened URL has been disabled",
        "expired": "This shortened URL has expired",
    }

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(self.MESSAGES[reason])


class PermissionDenied(ShortenerError):
    status_code = 403
    category = "forbidden"
    default_message = "You are not an owner of this link"


class StorageUnavailable(ShortenerError):
    status_code = 503
    category = "storage_unavailable"
    default_message = "Link storage is temporarily unavailable"
