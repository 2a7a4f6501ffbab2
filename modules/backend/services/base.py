"""
Base Service.

Services hold the business rules for missions, badges, receipts and
sponsorships. They work through repositories on the caller's session and
never commit: the request dependency or task session scope does.

Usage:
    from modules.backend.services.base import BaseService

    class ReceiptService(BaseService):
        def __init__(self, session: AsyncSession) -> None:
            super().__init__(session)
            self.repo = ReceiptRepository(session)

        async def get_receipt(self, user: User, receipt_id: str) -> Receipt:
            return await self.repo.get_for_user(receipt_id, user.id)
"""

from collections.abc import Awaitable
from typing import Any, TypeVar

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from modules.backend.core.exceptions import (
    ConflictError,
    DatabaseError,
    ValidationError,
)
from modules.backend.core.logging import get_logger

T = TypeVar("T")


class BaseService:
    """
    Base class for all services.

    Subclasses call super().__init__(session), build their repositories,
    and wrap writes in _execute_db_operation so database failures surface
    as ConflictError or DatabaseError.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._logger = get_logger(self.__class__.__module__)

    @property
    def session(self) -> AsyncSession:
        return self._session

    async def _execute_db_operation(self, operation: str, coro: Awaitable[T]) -> T:
        """
        Await a repository call, translating SQLAlchemy errors.

        Args:
            operation: Short name for logs, e.g. "create_mission"
            coro: The repository coroutine

        Raises:
            ConflictError: Unique constraint violation (duplicate badge, receipt number)
            DatabaseError: Any other database failure
        """
        try:
            return await coro
        except IntegrityError as e:
            self._logger.warning(
                "Database integrity error",
                extra={"operation": operation, "error": str(e.orig)},
            )
            error_str = str(e).lower()
            if "unique" in error_str or "duplicate" in error_str:
                raise ConflictError("Resource already exists") from e
            raise DatabaseError(f"Database constraint violation: {operation}") from e
        except SQLAlchemyError as e:
            self._logger.error(
                "Database error",
                extra={"operation": operation, "error": str(e)},
            )
            raise DatabaseError(f"Database operation failed: {operation}") from e

    def _validate_required(self, fields: dict[str, Any], field_names: list[str]) -> None:
        """
        Raises:
            ValidationError: Listing every name whose value is None or blank
        """
        missing = [
            name for name in field_names
            if fields.get(name) is None
            or (isinstance(fields.get(name), str) and not fields[name].strip())
        ]
        if missing:
            raise ValidationError(
                "Required fields missing",
                details={"missing_fields": missing},
            )

    def _log_operation(self, operation: str, **context: Any) -> None:
        self._logger.info(operation, extra={"service": self.__class__.__name__, **context})

    def _log_debug(self, message: str, **context: Any) -> None:
        self._logger.debug(message, extra={"service": self.__class__.__name__, **context})
