"""
Error types raised by the gamification engine

Every error records which student and operation it concerns and logs
itself once, when raised.
"""

from datetime import datetime, timezone
from typing import Optional, Dict, Any
import logging

logger = logging.getLogger(__name__)


class LearnifyError(Exception):
    """
    Root of the engine's error types

    Args:
        message: What went wrong
        student_id: Student the failed operation was for
        operation: Engine or repository operation name
        context: Extra values worth having in the log record
        cause: Underlying driver or library error
    """

    def __init__(
        self,
        message: str,
        student_id: Optional[str] = None,
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.student_id = student_id
        self.operation = operation
        self.context = context or {}
        self.cause = cause
        self.timestamp = datetime.now(timezone.utc)

        self._log_error()

    def _log_error(self) -> None:
        # 'message' is reserved on LogRecord
        extra = {
            "error_type": self.__class__.__name__,
            "error_message": self.message,
            "student_id": self.student_id,
            "operation": self.operation,
            "error_context": self.context,
        }
        logger.error(
            f"{self.__class__.__name__}: {self.message}",
            extra=extra,
            exc_info=self.cause,
        )


class ValidationError(LearnifyError):
    """Caller input that clamping cannot turn into a usable value"""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        **kwargs
    ):
        self.field = field
        self.value = value
        super().__init__(message, context={"field": field, "value": value}, **kwargs)


# Persistence

class DatabaseError(LearnifyError):
    pass


class ConnectionError(DatabaseError):
    """The database could not be reached"""


class QueryError(DatabaseError):
    """A statement was rejected by the database"""


class RecordNotFoundError(DatabaseError):
    """A student (or other row) the engine needs does not exist"""

    def __init__(
        self,
        message: str,
        record_type: Optional[str] = None,
        record_id: Optional[str] = None,
        **kwargs
    ):
        self.record_type = record_type
        self.record_id = record_id
        super().__init__(
            message,
            context={"record_type": record_type, "record_id": record_id},
            **kwargs
        )


class EvaluationUnavailableError(LearnifyError):
    """
    Student data could not be read, so no leveling, streak or achievement
    decision was made.
    """

    def __init__(self, message: str = "Gamification evaluation unavailable", **kwargs):
        super().__init__(message, **kwargs)


class ConfigurationError(LearnifyError):
    """A setting in src.config is missing or unusable"""

    def __init__(self, message: str, config_key: Optional[str] = None, **kwargs):
        self.config_key = config_key
        super().__init__(message, context={"config_key": config_key}, **kwargs)


def wrap_external_exception(
    error: Exception,
    operation: str,
    student_id: Optional[str] = None,
    context: Optional[Dict[str, Any]] = None
) -> LearnifyError:
    """
    Translate a repository failure into an engine error

    psycopg connection problems become ConnectionError, other psycopg errors
    QueryError, and anything else a plain LearnifyError. Engine errors are
    returned unchanged. Callers raise the result `from error`.
    """
    import psycopg

    if isinstance(error, LearnifyError):
        return error

    if isinstance(error, psycopg.OperationalError):
        error_class, message = ConnectionError, f"Database unreachable during {operation}: {error}"
    elif isinstance(error, psycopg.Error):
        error_class, message = QueryError, f"Database rejected {operation}: {error}"
    else:
        error_class, message = LearnifyError, f"{operation} failed: {error}"

    return error_class(
        message,
        student_id=student_id,
        operation=operation,
        context=context,
        cause=error
    )
