"""
Tests for the Support Desk error handling module.
"""

import logging
from errors import (
    ErrorCode,
    SupportDeskError,
    ValidationError,
    NotFoundError,
    CompletionError,
    ExternalServiceError,
    PersistenceError,
    ChatDisabledError,
    SessionStateError,
    error_response,
    success_response,
    http_status_for,
    format_error_for_user,
    handle_action_errors,
    log_error,
)


class TestErrorCodes:
    """Test error code enum."""

    def test_error_codes_are_strings(self):
        """Error codes should be string values."""
        assert ErrorCode.VALIDATION_EMPTY_MESSAGE.value == "VALIDATION_EMPTY_MESSAGE"
        assert ErrorCode.NOT_FOUND_CHAT.value == "NOT_FOUND_CHAT"

    def test_error_codes_have_categories(self):
        """Error codes should follow category naming convention."""
        validation_codes = [c for c in ErrorCode if c.value.startswith("VALIDATION_")]
        assert len(validation_codes) >= 4

        completion_codes = [c for c in ErrorCode if c.value.startswith("COMPLETION_")]
        assert len(completion_codes) >= 3


class TestSupportDeskError:
    """Test base SupportDeskError exception."""

    def test_basic_creation(self):
        """Create basic error with message."""
        err = SupportDeskError("Test error")
        assert err.message == "Test error"
        assert err.details is None
        assert err.code == ErrorCode.INTERNAL_UNEXPECTED
        assert err.recoverable is False

    def test_with_context(self):
        """Create error with additional context."""
        err = SupportDeskError("Test error", foo="bar", count=42)
        assert err.context == {"foo": "bar", "count": 42}

    def test_str_representation(self):
        """String representation includes message and details."""
        err = SupportDeskError("Test error", details="More info")
        assert str(err) == "Test error - More info"

        err_no_details = SupportDeskError("Test error")
        assert str(err_no_details) == "Test error"

    def test_to_dict(self):
        """Convert error to dictionary."""
        err = SupportDeskError("Test error", details="More info", key="value")
        d = err.to_dict()
        assert d["code"] == ErrorCode.INTERNAL_UNEXPECTED.value
        assert d["message"] == "Test error"
        assert d["details"] == "More info"
        assert d["recoverable"] is False
        assert d["context"] == {"key": "value"}

    def test_code_override(self):
        err = SupportDeskError("Test error", code=ErrorCode.INTERNAL_CONFIG_ERROR, recoverable=True)
        assert err.code == ErrorCode.INTERNAL_CONFIG_ERROR
        assert err.recoverable is True


class TestValidationError:
    """Test ValidationError exception."""

    def test_default_code(self):
        """Default code is VALIDATION_MISSING_PARAM."""
        err = ValidationError("Missing param")
        assert err.code == ErrorCode.VALIDATION_MISSING_PARAM
        assert err.recoverable is True

    def test_with_parameter_info(self):
        """Include parameter context."""
        err = ValidationError(
            "Out of range",
            parameter="followUpTimeout",
            expected="1000-3600000",
            received="5",
            code=ErrorCode.VALIDATION_OUT_OF_RANGE,
        )
        assert err.code == ErrorCode.VALIDATION_OUT_OF_RANGE
        assert err.context["parameter"] == "followUpTimeout"
        assert err.context["expected"] == "1000-3600000"
        assert err.context["received"] == "5"


class TestNotFoundError:
    """Test NotFoundError exception."""

    def test_default_code(self):
        err = NotFoundError("Not found")
        assert err.code == ErrorCode.NOT_FOUND_CHAT
        assert err.recoverable is True

    def test_agent_resource_type(self):
        err = NotFoundError("Not found", resource_type="agent")
        assert err.code == ErrorCode.NOT_FOUND_AGENT

    def test_widget_resource_type(self):
        err = NotFoundError("Not found", resource_type="widget", resource_id="w-1")
        assert err.code == ErrorCode.NOT_FOUND_WIDGET
        assert err.context["resource_id"] == "w-1"


class TestCompletionError:
    """Test CompletionError exception."""

    def test_default_code(self):
        err = CompletionError("No reply")
        assert err.code == ErrorCode.COMPLETION_UNAVAILABLE
        assert err.recoverable is True

    def test_error_types(self):
        assert CompletionError("x", error_type="timeout").code == ErrorCode.COMPLETION_TIMEOUT
        assert CompletionError("x", error_type="invalid_key").code == ErrorCode.COMPLETION_INVALID_KEY
        assert CompletionError("x", error_type="invalid").code == ErrorCode.COMPLETION_RESPONSE_INVALID


class TestExternalServiceError:
    """Test ExternalServiceError exception."""

    def test_default_code(self):
        err = ExternalServiceError("Network error")
        assert err.code == ErrorCode.EXTERNAL_NETWORK_ERROR

    def test_completion_service(self):
        """Completion service sets appropriate code and context."""
        err = ExternalServiceError("Failed", service="completion", status_code=500)
        assert err.code == ErrorCode.EXTERNAL_COMPLETION_FAILED
        assert err.context["service"] == "completion"
        assert err.context["status_code"] == 500


class TestPersistenceError:
    def test_operation_selects_code(self):
        assert PersistenceError("x", operation="read").code == ErrorCode.PERSISTENCE_READ_FAILED
        err = PersistenceError("x", key="chats", operation="write")
        assert err.code == ErrorCode.PERSISTENCE_WRITE_FAILED
        assert err.context == {"key": "chats", "operation": "write"}


class TestSessionStateError:
    def test_context(self):
        err = SessionStateError("Bad transition", status="idle", event="end")
        assert err.code == ErrorCode.INTERNAL_STATE_ERROR
        assert err.context == {"status": "idle", "event": "end"}


class TestErrorResponse:
    """Test error_response function."""

    def test_support_desk_error_response(self):
        err = NotFoundError("No chat", details="Already deleted")
        resp = error_response(err, action="delete_chat")

        assert resp["success"] is False
        assert resp["error"]["code"] == "NOT_FOUND_CHAT"
        assert resp["error"]["message"] == "No chat"
        assert resp["error"]["details"] == "Already deleted"
        assert resp["error"]["action"] == "delete_chat"
        assert resp["error"]["recoverable"] is True

    def test_generic_exception_response(self):
        err = ValueError("Bad value")
        resp = error_response(err, action="test")

        assert resp["success"] is False
        assert resp["error"]["code"] == "INTERNAL_UNEXPECTED"
        assert resp["error"]["message"] == "Bad value"
        assert resp["error"]["recoverable"] is False

    def test_without_context(self):
        err = NotFoundError("No chat", resource_id="abc123")
        resp = error_response(err, include_context=False)

        assert resp["error"]["context"] is None


class TestSuccessResponse:
    """Test success_response function."""

    def test_basic_success(self):
        assert success_response() == {"success": True}

    def test_with_kwargs(self):
        resp = success_response(deleted=3, items=[1, 2, 3])
        assert resp["success"] is True
        assert resp["deleted"] == 3
        assert resp["items"] == [1, 2, 3]

    def test_with_data_dict(self):
        resp = success_response({"items": [1, 2], "count": 2})
        assert resp["items"] == [1, 2]
        assert resp["count"] == 2


class TestHttpStatusFor:
    def test_category_mapping(self):
        assert http_status_for(ValidationError("x")) == 400
        assert http_status_for(NotFoundError("x")) == 404
        assert http_status_for(CompletionError("x")) == 502
        assert http_status_for(ExternalServiceError("x", service="completion")) == 502
        assert http_status_for(PersistenceError("x")) == 500
        assert http_status_for(ChatDisabledError("x")) == 503

    def test_unknown_errors_are_500(self):
        assert http_status_for(SessionStateError("x")) == 500
        assert http_status_for(RuntimeError("x")) == 500


class TestFormatErrorForUser:
    def test_with_details(self):
        err = ExternalServiceError("Completion service unavailable", details="connection refused")
        assert format_error_for_user(err) == "Completion service unavailable: connection refused"

    def test_without_details(self):
        assert format_error_for_user(ValidationError("API key is required")) == "API key is required"

    def test_generic_exception(self):
        assert format_error_for_user(ValueError("Bad value")) == "Unexpected error: Bad value"


class TestHandleActionErrors:
    """Test handle_action_errors decorator."""

    def test_success_passthrough(self):
        @handle_action_errors("test")
        def my_func():
            return {"success": True, "result": 42}

        result = my_func()
        assert result["success"] is True
        assert result["result"] == 42

    def test_support_desk_error_handling(self):
        @handle_action_errors("test")
        def my_func():
            raise NotFoundError("Not found")

        result = my_func()
        assert result["success"] is False
        assert result["error"]["code"] == "NOT_FOUND_CHAT"
        assert result["error"]["action"] == "test"

    def test_generic_exception_handling(self):
        @handle_action_errors("test")
        def my_func():
            raise ValueError("Bad value")

        result = my_func()
        assert result["success"] is False
        assert result["error"]["code"] == "INTERNAL_UNEXPECTED"

    def test_logging(self, caplog):
        """Domain errors are logged as warnings with their code."""

        @handle_action_errors("test")
        def my_func():
            raise NotFoundError("Not found")

        with caplog.at_level(logging.WARNING):
            my_func()

        assert "NOT_FOUND_CHAT" in caplog.text
        assert "Not found" in caplog.text

    def test_preserves_function_metadata(self):
        @handle_action_errors("test")
        def my_func():
            """My docstring."""
            return {"success": True}

        assert my_func.__name__ == "my_func"
        assert my_func.__doc__ == "My docstring."


class TestAsyncHandleActionErrors:
    """Test handle_async_action_errors decorator."""

    def test_decorator_creates_wrapper(self):
        from errors import handle_async_action_errors
        import asyncio

        @handle_async_action_errors("test")
        async def my_func():
            return {"success": True}

        assert asyncio.iscoroutinefunction(my_func)
        assert my_func.__name__ == "my_func"

    def test_error_converted(self):
        from errors import handle_async_action_errors
        import asyncio

        @handle_async_action_errors("validate_api_key")
        async def my_func():
            raise CompletionError("Key rejected", error_type="invalid_key")

        result = asyncio.run(my_func())
        assert result["success"] is False
        assert result["error"]["code"] == "COMPLETION_INVALID_KEY"
        assert result["error"]["action"] == "validate_api_key"


class TestLogError:
    def test_prefixes_context_and_code(self, caplog):
        logger = logging.getLogger("test.log_error")
        with caplog.at_level(logging.WARNING):
            log_error(logger, CompletionError("No reply"), context="resolver", include_traceback=False, level=logging.WARNING)
        assert "[resolver] COMPLETION_UNAVAILABLE: No reply" in caplog.text
