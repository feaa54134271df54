"""API error classes.

HTTP status codes and machine-readable error codes for the account service.

WHY CUSTOM ERROR CLASSES:
- Consistent error response format across all endpoints
- Easy to map to HTTP status codes in exception handlers
- Type-safe error handling in services and repositories
"""


class APIError(Exception):
    """Base class for API errors.

    All API errors have a code, message, and HTTP status.
    Subclasses set default status_code.

    Attributes:
        code: Machine-readable error code (e.g., "NOT_FOUND").
        message: Human-readable error message.
        status_code: HTTP status code to return.
        details: Optional list of additional error details.
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: list[dict] | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(message)


class BadRequestError(APIError):
    """Request cannot be honoured (400).

    Use for invalid or expired one-time tokens and rule violations that
    depend on stored state (e.g., reusing the current password).
    """

    def __init__(self, message: str) -> None:
        super().__init__(
            code="BAD_REQUEST",
            message=message,
            status_code=400,
        )


class ValidationError(APIError):
    """Field validation failed (400).

    Use for request body validation errors and password rule failures.
    """

    def __init__(
        self,
        message: str,
        details: list[dict] | None = None,
    ) -> None:
        super().__init__(
            code="VALIDATION_ERROR",
            message=message,
            status_code=400,
            details=details,
        )


class UnauthorizedError(APIError):
    """Authentication required or credentials rejected (401)."""

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(
            code="UNAUTHORIZED",
            message=message,
            status_code=401,
        )


class InvalidTokenError(UnauthorizedError):
    """Session token rejected (401).

    Raised for bad signatures, malformed tokens, expired tokens, and tokens
    whose claims are missing or mistyped. The message never says which.
    """

    def __init__(self, message: str = "Invalid access token") -> None:
        APIError.__init__(
            self,
            code="INVALID_TOKEN",
            message=message,
            status_code=401,
        )


class ForbiddenError(APIError):
    """Not allowed to perform the action (403).

    Use when auth is valid but the action is refused.
    """

    def __init__(self, message: str = "Access denied") -> None:
        super().__init__(
            code="FORBIDDEN",
            message=message,
            status_code=403,
        )


class EmailNotVerifiedError(ForbiddenError):
    """Action requires a verified email address (403)."""

    def __init__(self) -> None:
        APIError.__init__(
            self,
            code="EMAIL_NOT_VERIFIED",
            message="Please verify your email address first",
            status_code=403,
        )


class NotFoundError(APIError):
    """Resource not found (404)."""

    def __init__(self, resource: str, resource_id: str | None = None) -> None:
        if resource_id:
            message = f"{resource} with id '{resource_id}' not found"
        else:
            message = f"{resource} not found"
        super().__init__(
            code="NOT_FOUND",
            message=message,
            status_code=404,
        )


class ConflictError(APIError):
    """Duplicate or conflicting resource (409).

    Accepts custom code for specific conflict types.
    """

    def __init__(
        self,
        code: str,
        message: str,
        details: list[dict] | None = None,
    ) -> None:
        super().__init__(
            code=code,
            message=message,
            status_code=409,
            details=details,
        )


class CorruptCredentialError(APIError):
    """Stored password hash cannot be parsed (500).

    Security: The message is generic. The stored value is never echoed.
    """

    def __init__(self) -> None:
        super().__init__(
            code="CORRUPT_CREDENTIAL",
            message="An unexpected error occurred",
            status_code=500,
        )


class InternalError(APIError):
    """Unexpected server error (500).

    Use for unhandled exceptions. Never expose stack traces to clients.
    """

    def __init__(self, message: str = "An unexpected error occurred") -> None:
        super().__init__(
            code="INTERNAL_ERROR",
            message=message,
            status_code=500,
        )
