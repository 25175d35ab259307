from __future__ import annotations


class DomainError(Exception):
    """Base exception for business rule violations.

    Subclasses carry the HTTP status and the stable numeric error code the web
    layer puts into the response envelope.
    """

    http_status = 500
    error_code = 5000

    def __init__(self, message: str = "", *, error_code: int | None = None):
        super().__init__(message)
        self.message = message
        if error_code is not None:
            self.error_code = error_code


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    http_status = 400
    error_code = 4000


class AuthenticationError(DomainError):
    """Raised when login credentials are invalid."""

    http_status = 401
    error_code = 4001


class Unauthenticated(AuthenticationError):
    """No resolvable principal where one is required."""


class IdentityResolutionError(AuthenticationError):
    """An external principal could not be mapped onto a user."""

    MISSING_EMAIL = "MISSING_EMAIL"

    error_code = 4002

    def __init__(self, message: str, *, reason: str):
        super().__init__(message)
        self.reason = reason


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""

    http_status = 403
    error_code = 4003


class Forbidden(AuthorizationError):
    """Acting on a record owned by someone else."""


class SelfActionForbidden(AuthorizationError):
    """Disabling, deleting or re-roling the account you are signed in as."""

    http_status = 400
    error_code = 4031


class ResourceNotFound(DomainError):
    http_status = 404
    error_code = 4004

    def __init__(self, resource: str, field: str, value: object):
        super().__init__(f"{resource} not found with {field}: '{value}'")
        self.resource = resource
        self.field = field
        self.value = value


class DuplicateIdentity(DomainError):
    """Username or email collision."""

    http_status = 409
    error_code = 4009


class AlreadyMarked(DomainError):
    http_status = 409
    error_code = 4091


class AlreadyCheckedOut(DomainError):
    http_status = 409
    error_code = 4092


class InvalidRange(ValidationError):
    error_code = 4005


class OverlappingLeave(ValidationError):
    error_code = 4006


class InvalidTransition(ValidationError):
    error_code = 4007
