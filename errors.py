"""
Error taxonomy shared by the services and the HTTP layer.

Every error carries the HTTP status it maps to; the API converts any
BookstoreError into a JSON ``{"error": message}`` body with that status.
"""


class BookstoreError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(BookstoreError):
    status_code = 400

    @classmethod
    def from_schema(cls, exc) -> "ValidationError":
        """Wrap the first problem reported by a pydantic ValidationError."""
        err = exc.errors()[0]
        field = ".".join(str(p) for p in err["loc"])
        return cls(f"Invalid {field}: {err['msg']}")


class ConflictError(BookstoreError):
    status_code = 400


class AuthError(BookstoreError):
    status_code = 401


class ForbiddenError(BookstoreError):
    status_code = 403


class NotFoundError(BookstoreError):
    status_code = 404


class PersistenceError(BookstoreError):
    status_code = 500
