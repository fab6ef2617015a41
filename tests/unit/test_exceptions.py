"""
Unit tests for the exception system.
"""

from unittest.mock import patch

from fitbit_token_bridge.exceptions import (
    AuthenticationError,
    BaseError,
    ConfigurationError,
    DataIntegrityError,
    ErrorCode,
    ExternalApiError,
    MethodNotAllowedError,
    SecretAccessError,
    ValidationError,
    clear_correlation_id,
    get_correlation_id,
    set_correlation_id,
)


class TestBaseError:
    """Test BaseError class."""

    def test_basic_error_creation(self):
        """Test creating a basic error."""
        error = BaseError("Test error message")

        assert error.message == "Test error message"
        assert error.error_code == ErrorCode.INTERNAL_ERROR
        assert error.status_code == 500
        assert error.cause is None
        assert error.context["error_id"] == error.error_id
        assert str(error) == "Test error message"

    def test_error_with_cause(self):
        """Test error with underlying cause."""
        original = ValueError("Original error")
        error = BaseError("Wrapped error", cause=original)

        assert error.context["cause"]["type"] == "ValueError"
        assert error.context["cause"]["message"] == "Original error"

    def test_error_with_context(self):
        """Test context keyword arguments are kept."""
        error = BaseError("Context error", owner_id="u1", operation="refresh")

        assert error.context["owner_id"] == "u1"
        assert error.context["operation"] == "refresh"

    def test_error_with_correlation_id(self):
        """Test error includes correlation ID when available."""
        set_correlation_id("corr-123")
        try:
            error = BaseError("Correlated")
            assert error.context["correlation_id"] == "corr-123"
        finally:
            clear_correlation_id()

    def test_to_dict(self):
        """Test the response body carries message, code and id but no context or cause."""
        error = ValidationError("Bad input", field="foods", cause=ValueError("nope"), owner_id="u1")

        assert error.to_dict() == {
            "error": "Bad input",
            "code": ErrorCode.VALIDATION_FAILED.value,
            "errorId": error.error_id,
        }

    def test_add_context(self):
        error = BaseError("x").add_context(owner_id="u1")
        assert error.context["owner_id"] == "u1"

    def test_server_errors_logged_at_error_level(self):
        """Test 5xx errors log at error level, 4xx at warning level."""
        with patch("fitbit_token_bridge.utils.logger.get_logger") as get_logger:
            BaseError("server side")
            AuthenticationError("client side")

        logger = get_logger.return_value
        logger.error.assert_called_once()
        logger.warning.assert_called_once()
        assert "error_message" in logger.error.call_args.kwargs["extra"]


class TestErrorKinds:
    """Test status codes and error codes of each kind."""

    def test_authentication_error(self):
        error = AuthenticationError("No tokens", owner_id="u1")
        assert (error.status_code, error.error_code) == (401, ErrorCode.AUTHENTICATION_FAILED)

    def test_validation_error(self):
        error = ValidationError("Missing", field="log_date", error_code=ErrorCode.MISSING_REQUIRED)
        assert (error.status_code, error.error_code) == (400, ErrorCode.MISSING_REQUIRED)
        assert error.context["field"] == "log_date"

    def test_external_api_error(self):
        error = ExternalApiError("Invalid code")
        assert (error.status_code, error.error_code) == (500, ErrorCode.EXTERNAL_API_ERROR)
        assert error.context["service_name"] == "fitbit"

    def test_method_not_allowed(self):
        error = MethodNotAllowedError()
        assert error.status_code == 405
        assert error.message == "Method Not Allowed"

    def test_secret_access_error(self):
        error = SecretAccessError(secret_name="FITBIT_CLIENT_ID")
        assert error.error_code == ErrorCode.CONFIGURATION_ERROR
        assert error.status_code == 500

    def test_configuration_error(self):
        error = ConfigurationError("No store", setting="DATABASE_URL")
        assert (error.status_code, error.error_code) == (500, ErrorCode.CONFIGURATION_ERROR)
        assert error.context["setting"] == "DATABASE_URL"

    def test_data_integrity_error(self):
        error = DataIntegrityError("two records", record_keys=["f1", "f2"])
        assert error.error_code == ErrorCode.CONFLICT
        assert error.context["record_keys"] == ["f1", "f2"]


class TestCorrelationId:
    """Test correlation id helpers."""

    def test_set_get_clear(self):
        set_correlation_id("abc")
        assert get_correlation_id() == "abc"
        clear_correlation_id()
        assert get_correlation_id() is None

    def test_clear_when_unset(self):
        clear_correlation_id()
        clear_correlation_id()
        assert get_correlation_id() is None
