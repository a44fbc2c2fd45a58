"""
Domain exception hierarchy.

Services raise these; the handlers registered in ``peerstudy.main`` turn them
into JSON error responses with a stable ``error`` code clients can branch on.

    PeerStudyError
    ├── AuthenticationRequired   → 401
    ├── AuthorizationDenied      → 403
    ├── NotFound                 → 404
    ├── Conflict                 → 409
    ├── ValidationFailure        → 400
    └── AtomicityFailure         → 500
"""

from typing import Any


class PeerStudyError(Exception):
    """Base exception for all application errors."""

    status_code: int = 500
    code: str = "internal_error"

    def __init__(self, message: str = "An unexpected error occurred", context: dict[str, Any] | None = None):
        self.message = message
        # Logged, never returned to the client
        self.context = context or {}
        super().__init__(self.message)


class AuthenticationRequired(PeerStudyError):
    """No credential, or a credential that does not identify an existing user."""

    status_code = 401
    code = "authentication_required"

    def __init__(self, message: str = "Could not validate credentials", context: dict[str, Any] | None = None):
        super().__init__(message=message, context=context)


class AuthorizationDenied(PeerStudyError):
    """Valid caller without rights over the target resource."""

    status_code = 403
    code = "authorization_denied"

    def __init__(self, message: str = "Not allowed", context: dict[str, Any] | None = None):
        super().__init__(message=message, context=context)


class NotFound(PeerStudyError):
    """Referenced group, message, note, task or user does not exist."""

    status_code = 404
    code = "not_found"

    def __init__(self, resource: str = "Resource", resource_id: int | None = None, context: dict[str, Any] | None = None):
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id is not None:
            ctx["resource_id"] = resource_id
        super().__init__(message=f"{resource} not found", context=ctx)
        self.resource = resource
        self.resource_id = resource_id


class Conflict(PeerStudyError):
    """
    Expected, recoverable uniqueness violation.

    Raised for duplicate note imports, repeated task completions and already
    registered emails. No state is changed when it is raised.
    """

    status_code = 409
    code = "conflict"

    def __init__(self, message: str = "Resource already exists", context: dict[str, Any] | None = None):
        super().__init__(message=message, context=context)


class ValidationFailure(PeerStudyError):
    """Missing or empty required field detected before any mutation."""

    status_code = 400
    code = "validation_failure"

    def __init__(self, message: str = "Validation failed", field: str | None = None, context: dict[str, Any] | None = None):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class AtomicityFailure(PeerStudyError):
    """A multi-row write failed partway and was rolled back."""

    status_code = 500
    code = "atomicity_failure"

    def __init__(self, message: str = "The operation could not be completed", context: dict[str, Any] | None = None):
        super().__init__(message=message, context=context)
