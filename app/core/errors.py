"""
Error taxonomy for credentialing workflows.

Every workflow failure is raised as a CredentialingError subclass carrying a
stable machine-readable kind and a message that is safe to show to end users.
The exception handler in app.main turns these into JSON error responses.
"""
import enum

from fastapi import status


class ErrorKind(str, enum.Enum):
    """Machine-readable error kinds returned to callers."""
    MISSING_FIELDS = "MISSING_FIELDS"
    INVALID_FORMAT = "INVALID_FORMAT"
    NOT_FOUND = "NOT_FOUND"
    DUPLICATE_LINK = "DUPLICATE_LINK"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    CONFLICT = "CONFLICT"
    STORAGE_ERROR = "STORAGE_ERROR"
    VERIFICATION_ERROR = "VERIFICATION_ERROR"


class CredentialingError(Exception):
    """Base class for all workflow errors."""
    kind: ErrorKind = ErrorKind.STORAGE_ERROR
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "An unexpected error occurred"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"error": {"message": self.message, "code": self.kind.value}}


class MissingFieldsError(CredentialingError):
    kind = ErrorKind.MISSING_FIELDS
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Required fields are missing"


class InvalidFormatError(CredentialingError):
    kind = ErrorKind.INVALID_FORMAT
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Input is not in the expected format"


class NotFoundError(CredentialingError):
    kind = ErrorKind.NOT_FOUND
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, resource: str, message: str | None = None):
        self.resource = resource
        super().__init__(message or f"{resource} not found")


class DuplicateLinkError(CredentialingError):
    kind = ErrorKind.DUPLICATE_LINK
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "A request for this company already exists"


class UnauthorizedError(CredentialingError):
    kind = ErrorKind.UNAUTHORIZED
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized"


class ForbiddenError(CredentialingError):
    kind = ErrorKind.FORBIDDEN
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Forbidden"


class ConflictError(CredentialingError):
    kind = ErrorKind.CONFLICT
    status_code = status.HTTP_409_CONFLICT
    default_message = "The record was changed by another request. Please refresh and try again."


class StorageError(CredentialingError):
    kind = ErrorKind.STORAGE_ERROR
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "A storage error occurred. Please try again."


class VerificationError(CredentialingError):
    kind = ErrorKind.VERIFICATION_ERROR
    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = "The licensing board could not be reached. Please try again later."
