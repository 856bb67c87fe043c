"""
Tests for the operation decorator and its log sanitization.
"""

import logging

import pytest

from devnotes_vault.context.operation_context import (
    REDACTED,
    OperationContext,
    OperationHandler,
    _sanitize_param,
    operation,
)
from devnotes_vault.context.request_context import request_context
from devnotes_vault.exceptions import ValidationError, get_correlation_id
from devnotes_vault.utils.logger import ContextAwareLogger


class Recorder:
    @operation()
    def save(self, label, password, retries=3):
        return label

    @operation(name="custom.name")
    def fail(self):
        raise ValidationError("Label is required.", field="label")

    @operation()
    def crash(self):
        raise RuntimeError("unexpected")


@pytest.fixture
def captured(caplog):
    caplog.set_level(logging.DEBUG)
    return caplog


class TestSanitizeParam:
    @pytest.mark.parametrize("name", ["password", "api_key", "ssh_key", "secrets", "data", "KEY"])
    def test_sensitive_names_redacted(self, name):
        assert _sanitize_param(name, "hunter2") == REDACTED

    def test_strings_logged_by_type_only(self):
        assert _sanitize_param("label", "prod db") == "str"

    def test_scalars_kept(self):
        assert _sanitize_param("credential_id", 12) == 12
        assert _sanitize_param("decrypt", True) is True
        assert _sanitize_param("notes", None) is None

    def test_short_lists_keep_numbers_only(self):
        assert _sanitize_param("ordered_ids", [3, "x", 1]) == [3, 1]


class TestOperationDecorator:
    def test_enter_and_exit_logged(self, captured):
        assert Recorder().save("prod db", "hunter2") == "prod db"

        messages = [r.getMessage() for r in captured.records]
        assert any(m.startswith("ENTER: ") and "Recorder.save" in m for m in messages)
        assert any(m.startswith("EXIT: ") and "Recorder.save" in m for m in messages)

    def test_secret_arguments_never_logged(self, captured):
        Recorder().save("prod db", "hunter2")

        text = "\n".join(r.getMessage() for r in captured.records)
        assert "hunter2" not in text
        assert "prod db" not in text

    def test_actor_added_to_context(self, captured):
        with request_context("9"):
            Recorder().save("x", "y")

        enter = next(r for r in captured.records if r.getMessage().startswith("ENTER"))
        assert enter.actor_id == "9"

    def test_base_error_enriched_and_reraised(self, captured):
        with pytest.raises(ValidationError) as exc_info:
            Recorder().fail()

        assert exc_info.value.context["operation_name"] == "custom.name"
        assert any(r.getMessage().startswith("ERROR: custom.name") for r in captured.records)

    def test_unexpected_error_reraised(self, captured):
        with pytest.raises(RuntimeError):
            Recorder().crash()

        error = next(r for r in captured.records if r.getMessage().startswith("ERROR"))
        assert error.error_type == "RuntimeError"

    def test_sets_correlation_id(self):
        Recorder().save("x", "y")
        assert get_correlation_id() is not None


class TestOperationContext:
    def test_reuses_existing_correlation_id(self):
        first = OperationContext("outer")
        second = OperationContext("inner")
        assert first.correlation_id == second.correlation_id
        assert first.operation_id != second.operation_id

    def test_handler_with_explicit_logger(self, captured):
        handler = OperationHandler(ContextAwareLogger(logging.getLogger("devnotes_vault.ops")))

        with handler.operation("manual", source_module="tests") as ctx:
            ctx.add_context(step=1)

        assert ctx.context["step"] == 1
        assert any(r.name == "devnotes_vault.ops" for r in captured.records)
