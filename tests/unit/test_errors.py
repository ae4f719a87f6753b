"""Tests for the provider error taxonomy and classification."""

import httpx
import pytest

from mindsphere_ai.providers.errors import (
    AuthenticationError,
    CapabilityNotSupportedError,
    ErrorClass,
    ModelNotAvailableError,
    NetworkError,
    NoProviderAvailable,
    OrchestrationError,
    ProviderError,
    ProviderNotFoundError,
    RateLimitError,
    ServerError,
    StreamInterruptedError,
    classify_error,
    error_from_status,
    is_retryable,
    parse_retry_after,
)

REQUEST = httpx.Request("POST", "https://api.example.test/v1/chat")


def _status_error(status: int) -> httpx.HTTPStatusError:
    response = httpx.Response(status, request=REQUEST)
    return httpx.HTTPStatusError(f"status {status}", request=REQUEST, response=response)


class TestErrorHierarchy:
    """Tests for error classes and their attributes."""

    def test_provider_errors_are_orchestration_errors(self):
        assert issubclass(ProviderError, OrchestrationError)
        assert issubclass(NoProviderAvailable, OrchestrationError)
        assert not issubclass(NoProviderAvailable, ProviderError)

    def test_stream_interrupted_is_server_error(self):
        """A truncated stream retries like any other server failure."""
        error = StreamInterruptedError("stream ended early", "openai")
        assert isinstance(error, ServerError)
        assert error.error_class == ErrorClass.SERVER_ERROR
        assert error.retryable is True

    def test_str_includes_provider(self):
        assert str(ServerError("boom", "claude")) == "[claude] boom"
        assert str(ProviderError("boom")) == "boom"

    def test_authentication_error_has_remediation_hint(self):
        """Auth failures tell the operator what a valid key looks like."""
        error = AuthenticationError("claude")
        assert error.retryable is False
        assert "sk-ant-" in error.remediation
        assert "sk-ant-" in str(error)

    def test_authentication_error_unknown_provider(self):
        error = AuthenticationError("local_llm")
        assert error.remediation == ""
        assert str(error) == "[local_llm] Authentication failed for local_llm"

    def test_rate_limit_retry_after(self):
        error = RateLimitError("openai", retry_after=2.5)
        assert error.retry_after == 2.5
        assert "Retry after 2.5 seconds" in str(error)
        assert error.retryable is True

    def test_model_not_available(self):
        error = ModelNotAvailableError("gemini", "gemini-9")
        assert error.model == "gemini-9"
        assert error.retryable is False

    def test_capability_not_supported_never_retries(self):
        error = CapabilityNotSupportedError("claude", "speech synthesis")
        assert error.retryable is False
        assert classify_error(error) == ErrorClass.UNKNOWN

    def test_provider_not_found_is_key_error(self):
        error = ProviderNotFoundError("mistral")
        assert isinstance(error, KeyError)
        assert str(error) == "Unknown provider: mistral"


class TestErrorFromStatus:
    """Tests for HTTP status mapping."""

    @pytest.mark.parametrize(
        ("status", "message", "expected"),
        [
            (401, "invalid key", AuthenticationError),
            (403, "forbidden", AuthenticationError),
            (429, "slow down", RateLimitError),
            (404, "model llama9 not found", ModelNotAvailableError),
            (500, "internal", ServerError),
            (503, "unavailable", ServerError),
        ],
    )
    def test_status_mapping(self, status, message, expected):
        error = error_from_status("openai", status, message, model="gpt-x")
        assert type(error) is expected
        assert error.provider == "openai"

    def test_plain_404_is_unknown(self):
        error = error_from_status("openai", 404, "no such route")
        assert type(error) is ProviderError
        assert classify_error(error) == ErrorClass.UNKNOWN

    def test_400_is_unknown(self):
        error = error_from_status("claude", 400, "bad request")
        assert classify_error(error) == ErrorClass.UNKNOWN

    def test_retry_after_is_carried(self):
        error = error_from_status("openai", 429, "slow down", retry_after=7)
        assert error.retry_after == 7


class TestClassifyError:
    """Tests for classify_error and is_retryable."""

    def test_provider_errors_use_their_class(self):
        assert classify_error(AuthenticationError("openai")) == ErrorClass.AUTHENTICATION
        assert classify_error(RateLimitError("openai")) == ErrorClass.RATE_LIMITED
        assert classify_error(ServerError("x", "openai")) == ErrorClass.SERVER_ERROR
        assert classify_error(NetworkError("x", "openai")) == ErrorClass.NETWORK_ERROR

    def test_timeouts_are_server_errors(self):
        assert classify_error(TimeoutError()) == ErrorClass.SERVER_ERROR
        assert classify_error(httpx.ReadTimeout("slow", request=REQUEST)) == (
            ErrorClass.SERVER_ERROR
        )

    def test_transport_errors_are_network_errors(self):
        assert classify_error(httpx.ConnectError("refused", request=REQUEST)) == (
            ErrorClass.NETWORK_ERROR
        )
        assert classify_error(ConnectionResetError()) == ErrorClass.NETWORK_ERROR

    @pytest.mark.parametrize(
        ("status", "expected"),
        [
            (401, ErrorClass.AUTHENTICATION),
            (429, ErrorClass.RATE_LIMITED),
            (502, ErrorClass.SERVER_ERROR),
            (422, ErrorClass.UNKNOWN),
        ],
    )
    def test_http_status_errors(self, status, expected):
        assert classify_error(_status_error(status)) == expected

    def test_anything_else_is_unknown(self):
        assert classify_error(ValueError("bad")) == ErrorClass.UNKNOWN
        assert classify_error(KeyError("x")) == ErrorClass.UNKNOWN

    def test_retryable_classes(self):
        retryable = {cls for cls in ErrorClass if is_retryable(cls)}
        assert retryable == {
            ErrorClass.RATE_LIMITED,
            ErrorClass.SERVER_ERROR,
            ErrorClass.NETWORK_ERROR,
        }


class TestParseRetryAfter:
    """Tests for retry-after header parsing."""

    def test_seconds(self):
        assert parse_retry_after("3") == 3.0

    def test_missing_or_invalid(self):
        assert parse_retry_after(None) is None
        assert parse_retry_after("") is None
        assert parse_retry_after("Wed, 21 Oct 2026 07:28:00 GMT") is None
