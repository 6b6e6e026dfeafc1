"""Unit tests for the engine's error types"""
import pytest
from datetime import datetime

import psycopg

from src.exceptions import (
    LearnifyError,
    ValidationError,
    DatabaseError,
    ConnectionError,
    QueryError,
    RecordNotFoundError,
    EvaluationUnavailableError,
    ConfigurationError,
    wrap_external_exception
)


class TestLearnifyError:
    """Test base exception class"""

    def test_basic_exception(self):
        error = LearnifyError("Test error")

        assert error.message == "Test error"
        assert str(error) == "Test error"
        assert error.context == {}
        assert isinstance(error.timestamp, datetime)

    def test_exception_with_context(self):
        error = LearnifyError(
            "Failed to update stats",
            student_id="stu-1",
            operation="update_student_stats",
            context={"total_points": 250},
        )

        assert error.student_id == "stu-1"
        assert error.operation == "update_student_stats"
        assert error.context == {"total_points": 250}

    def test_exception_logs_on_creation(self, caplog):
        """Test errors log themselves with structured context"""
        with caplog.at_level("ERROR", logger="src.exceptions"):
            LearnifyError("Boom", student_id="stu-1", operation="process_login")

        assert "LearnifyError: Boom" in caplog.text
        record = caplog.records[-1]
        assert record.student_id == "stu-1"
        assert record.operation == "process_login"
        assert record.exc_info is None

    def test_cause_is_logged_with_traceback(self, caplog):
        cause = RuntimeError("socket closed")

        with caplog.at_level("ERROR", logger="src.exceptions"):
            LearnifyError("Write failed", cause=cause)

        assert caplog.records[-1].exc_info[1] is cause


class TestErrorSubclasses:
    """Test the domain subclasses"""

    def test_validation_error(self):
        error = ValidationError("must be positive", field="total_questions", value=0)

        assert error.field == "total_questions"
        assert error.context == {"field": "total_questions", "value": 0}

    def test_database_hierarchy(self):
        assert issubclass(ConnectionError, DatabaseError)
        assert issubclass(QueryError, DatabaseError)
        assert issubclass(RecordNotFoundError, DatabaseError)

    def test_record_not_found(self):
        error = RecordNotFoundError("missing", record_type="Student", record_id="stu-9")

        assert error.record_type == "Student"
        assert error.context["record_id"] == "stu-9"

    def test_evaluation_unavailable_defaults(self):
        error = EvaluationUnavailableError()

        assert error.message == "Gamification evaluation unavailable"

    def test_configuration_error(self):
        error = ConfigurationError("bad", config_key="DEFAULT_TIMEZONE")

        assert error.config_key == "DEFAULT_TIMEZONE"
        assert error.context == {"config_key": "DEFAULT_TIMEZONE"}


class TestWrapExternalException:
    """Test mapping of driver errors onto the hierarchy"""

    def test_operational_error(self):
        error = wrap_external_exception(psycopg.OperationalError("down"), operation="get_student_stats")

        assert isinstance(error, ConnectionError)
        assert isinstance(error.cause, psycopg.OperationalError)
        assert error.operation == "get_student_stats"

    def test_query_error_keeps_context(self):
        error = wrap_external_exception(
            psycopg.errors.UniqueViolation("dup"),
            operation="insert_quiz_attempt",
            student_id="stu-1",
            context={"quiz_id": "q1"},
        )

        assert isinstance(error, QueryError)
        assert error.context == {"quiz_id": "q1"}
        assert error.student_id == "stu-1"

    def test_existing_error_passes_through(self):
        original = ValidationError("bad")

        assert wrap_external_exception(original, operation="x") is original

    def test_generic_error(self):
        error = wrap_external_exception(RuntimeError("oops"), operation="add_student_points")

        assert type(error) is LearnifyError
        assert error.message == "add_student_points failed: oops"
