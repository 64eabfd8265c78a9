"""
Domain errors raised by services.

Each carries the HTTP status the API answers with; the handler registered in
``create_app`` renders them as ``{"error": message}``.
"""


class LibraryError(ValueError):
    status_code = 400

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(LibraryError):
    status_code = 400


class ConflictError(LibraryError):
    """A business rule rejected the request (already borrowed, duplicate, ...)."""
    status_code = 400


class AuthenticationError(LibraryError):
    status_code = 401


class PermissionDenied(LibraryError):
    status_code = 403


class NotFoundError(LibraryError):
    status_code = 404
