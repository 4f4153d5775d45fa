"""
Error kinds raised by the loan core.

All of them are ValueError subclasses so controllers can keep catching
``ValueError`` and answer with ``status_code``.
"""


class LibraryError(ValueError):
    status_code = 400

    def __init__(self, message: str, errors: list | None = None):
        super().__init__(message)
        self.message = message
        self.errors = errors or []


class NotFound(LibraryError):
    status_code = 404


class Conflict(LibraryError):
    # HTTP contract answers 400 for "no copies" / "already returned"
    status_code = 400


class Forbidden(LibraryError):
    status_code = 403


class InvalidInput(LibraryError):
    status_code = 400


class Cancelled(LibraryError):
    status_code = 409
