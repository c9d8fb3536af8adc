"""Exception hierarchy for the redirect service.

Every error a core operation can report derives from ``RedirectServiceError``
and carries the HTTP status the API answers with, so routes never translate
error types by hand. ``main.py`` registers one handler for the whole family.

Hierarchy
=========
::
    RedirectServiceError (500)
    ├─ BadRequestError (400)      malformed input, failed validation, empty patch
    ├─ UnauthorizedError (401)    admin credential check failed
    ├─ NotFoundError (404)        no record at the composite key
    ├─ ConflictError (409)        create or rename onto a live key
    ├─ CorruptedRecordError (500) stored value does not parse
    └─ StorageError (500)         the store call itself failed
"""

__all__ = [
    "RedirectServiceError",
    "BadRequestError",
    "UnauthorizedError",
    "NotFoundError",
    "ConflictError",
    "CorruptedRecordError",
    "StorageError",
]


class RedirectServiceError(Exception):
    status_code: int = 500
    default_detail: str = "Internal server error"

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class BadRequestError(RedirectServiceError):
    status_code = 400
    default_detail = "Bad request"


class UnauthorizedError(RedirectServiceError):
    status_code = 401
    default_detail = "Unauthorized"


class NotFoundError(RedirectServiceError):
    status_code = 404
    default_detail = "Not found"


class ConflictError(RedirectServiceError):
    status_code = 409
    default_detail = "Key already exists"


class CorruptedRecordError(RedirectServiceError):
    """Stored value exists but cannot be parsed; a data-integrity fault, not a miss."""

    status_code = 500
    default_detail = "Redirect data corrupted"

    def __init__(self, key: str, detail: str | None = None):
        self.key = key
        super().__init__(detail)


class StorageError(RedirectServiceError):
    status_code = 500
    default_detail = "Storage backend unavailable"
