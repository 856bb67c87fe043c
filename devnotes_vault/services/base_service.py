"""
Base service implementation with common functionality for all vault services.

Services share one SQLAlchemy session per request. They flush but never
commit; the unit of work is settled by whoever owns the session (the vault
boundary, a job runner, or a test).
"""

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Callable, Mapping, NoReturn, Optional, Type, TypeVar, Union

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..db.db_base import utc_now
from ..exceptions import BaseError, ErrorCode, ServiceError, ValidationError, storage_failed
from ..utils.logger import ContextAwareLogger, get_logger

Clock = Callable[[], datetime]

TSchema = TypeVar("TSchema", bound=BaseModel)


class SessionManagedService:
    """
    Service bound to a database session.

    Pass an existing session to take part in the caller's unit of work. When
    no session is given one is opened from the global DatabaseManager and the
    service owns it (commit/rollback/close become effective).
    """

    def __init__(
        self,
        session: Optional[Session] = None,
        logger: Optional[Union[logging.Logger, ContextAwareLogger]] = None,
        clock: Clock = utc_now,
    ):
        """
        Initialize service with a session.

        Args:
            session: Optional existing session (for request scoping or testing)
            logger: Optional logger instance
            clock: Source of "now"; injected so tests can move time
        """
        if session is not None:
            self.session = session
            self._owns_session = False
        else:
            self.session = self._create_session()
            self._owns_session = True

        self.logger = logger or get_logger()
        self.clock = clock

    def _create_session(self) -> Session:
        """Create a new database session from the global database manager."""
        from ..db.db_config import get_db_manager

        return get_db_manager().get_session()

    def _validate(self, schema: Type[TSchema], data: Union[TSchema, Mapping[str, Any]]) -> TSchema:
        """
        Coerce input into a schema instance, translating pydantic errors.

        Raises:
            ValidationError: With the first offending field and a readable message
        """
        if isinstance(data, schema):
            return data
        try:
            return schema.model_validate(dict(data))
        except PydanticValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(part) for part in first.get("loc", ())) or None
            if first.get("type") == "missing" and field:
                message = f"{field.replace('_', ' ').capitalize()} is required."
            else:
                message = first.get("msg", "Invalid data").removeprefix("Value error, ")
            raise ValidationError(
                message,
                field=field,
                error_code=ErrorCode.VALIDATION_FAILED,
                validation_errors=[
                    {"loc": err.get("loc"), "type": err.get("type")} for err in e.errors()
                ],
            ) from e
        except TypeError as e:
            raise ValidationError(
                f"Invalid {schema.__name__} payload", error_code=ErrorCode.INVALID_FORMAT, cause=e
            ) from e

    def _handle_service_exception(
        self, operation: str, exception: Exception, entity_id: Optional[Any] = None
    ) -> NoReturn:
        """
        Handle and log service exceptions consistently.

        BaseErrors pass through unchanged, SQLAlchemy errors become
        StorageError and anything else is wrapped in ServiceError.
        """
        if isinstance(exception, BaseError):
            raise exception

        if isinstance(exception, SQLAlchemyError):
            self.logger.error(
                f"Storage failure in {operation}",
                extra={
                    "operation": operation,
                    "entity_id": entity_id,
                    "error_type": type(exception).__name__,
                },
            )
            raise storage_failed(operation, cause=exception, entity_id=entity_id) from exception

        error_msg = f"Error in {operation}: {type(exception).__name__}"
        self.logger.error(
            error_msg,
            extra={
                "operation": operation,
                "entity_id": entity_id,
                "error_type": type(exception).__name__,
            },
            exc_info=True,
        )
        raise ServiceError(
            error_msg,
            error_code=ErrorCode.INTERNAL_ERROR,
            operation=operation,
            entity_id=entity_id,
            cause=exception,
        ) from exception

    @contextmanager
    def transaction(self):
        """
        Context manager for transactional operations.

        Usage:
            with service.transaction():
                service.create(...)
                # Commits on success, rolls back on exception (owned sessions only)
        """
        try:
            yield self.session
            if self._owns_session:
                self.session.commit()
        except Exception:
            if self._owns_session:
                self.session.rollback()
            raise

    def commit(self):
        """Manually commit the current transaction."""
        if self._owns_session:
            self.session.commit()

    def rollback(self):
        """Manually rollback the current transaction."""
        if self._owns_session:
            self.session.rollback()

    def close(self):
        """Close the session if we own it."""
        if self._owns_session and self.session:
            self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type:
            self.rollback()
        else:
            self.commit()
        self.close()
