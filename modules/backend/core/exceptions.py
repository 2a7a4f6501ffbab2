"""
Application Exceptions.

Services and integrations raise these; exception_handlers.py turns
them into the error envelope. Each carries a stable ``code`` the Mini
App switches on, and optional ``details`` rendered as ``error.details``.
"""

from typing import Any


class ApplicationError(Exception):
    """Base for every error the API reports to clients."""

    def __init__(
        self,
        message: str,
        code: str = "SYS_INTERNAL_ERROR",
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)


class NotFoundError(ApplicationError):
    def __init__(self, message: str = "Resource not found") -> None:
        super().__init__(message, code="RES_NOT_FOUND")


class ValidationError(ApplicationError):
    def __init__(self, message: str = "Validation failed", details: dict[str, Any] | None = None) -> None:
        super().__init__(message, code="VAL_VALIDATION_ERROR", details=details)


class AuthenticationError(ApplicationError):
    """Missing, malformed, expired or forged Telegram initData."""

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(message, code="AUTH_UNAUTHORIZED")


class ConflictError(ApplicationError):
    def __init__(self, message: str = "Resource conflict") -> None:
        super().__init__(message, code="RES_CONFLICT")


class InvalidStateTransitionError(ConflictError):
    """A mission or transaction is not in the status the action requires."""

    def __init__(self, message: str = "Invalid state transition") -> None:
        super().__init__(message)
        self.code = "RES_INVALID_STATE"


class ExternalServiceError(ApplicationError):
    """
    A partner API, bundler, paymaster or RPC node failed.

    ``service`` names the upstream (cloverly, pimlico, polygon-rpc, ...)
    and is echoed in ``error.details`` so the client can tell them apart.
    """

    def __init__(self, message: str = "External service error", service: str | None = None) -> None:
        self.service = service
        super().__init__(
            message,
            code="SYS_EXTERNAL_SERVICE_ERROR",
            details={"service": service} if service else None,
        )


class RateLimitError(ApplicationError):
    def __init__(self, message: str = "Rate limit exceeded", retry_after: int | None = None) -> None:
        self.retry_after = retry_after
        super().__init__(
            message,
            code="RATE_LIMITED",
            details={"retry_after": retry_after} if retry_after else None,
        )


class DatabaseError(ApplicationError):
    def __init__(self, message: str = "Database error") -> None:
        super().__init__(message, code="SYS_DATABASE_ERROR")
