"""Error taxonomy for backend calls and routing.

Adapters translate their SDK exceptions into the ``ProviderError``
hierarchy; the retry coordinator only ever looks at the resulting
``ErrorClass``. Configuration failures (nothing to route to, unknown
provider names) sit outside that hierarchy because retrying them can
never help.
"""

from __future__ import annotations

from enum import Enum

import httpx


class ErrorClass(str, Enum):
    """Retry-relevant classification of a failed call."""

    AUTHENTICATION = "authentication"
    RATE_LIMITED = "rate_limited"
    SERVER_ERROR = "server_error"
    NETWORK_ERROR = "network_error"
    MODEL_NOT_AVAILABLE = "model_not_available"
    UNKNOWN = "unknown"


RETRYABLE_CLASSES = frozenset(
    {ErrorClass.RATE_LIMITED, ErrorClass.SERVER_ERROR, ErrorClass.NETWORK_ERROR}
)

AUTH_REMEDIATION_HINTS: dict[str, str] = {
    "openai": 'OpenAI API keys start with "sk-". Check the key in your OpenAI dashboard.',
    "claude": 'Anthropic API keys start with "sk-ant-". Check the key in the Anthropic console.',
    "gemini": (
        'Gemini API keys start with "AIzaSy" and are 39 characters long. '
        "Check the key in Google AI Studio."
    ),
}


class OrchestrationError(Exception):
    """Base class for every error raised by the orchestration layer."""


class ProviderError(OrchestrationError):
    """A backend call failed."""

    error_class = ErrorClass.UNKNOWN

    def __init__(self, message: str, provider: str = "", *, retryable: bool | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.provider = provider
        self.retryable = self.error_class in RETRYABLE_CLASSES if retryable is None else retryable

    def __str__(self) -> str:
        if self.provider:
            return f"[{self.provider}] {self.message}"
        return self.message


class AuthenticationError(ProviderError):
    """The backend rejected the credential."""

    error_class = ErrorClass.AUTHENTICATION

    def __init__(self, provider: str, message: str | None = None) -> None:
        super().__init__(message or f"Authentication failed for {provider}", provider)
        self.remediation = AUTH_REMEDIATION_HINTS.get(provider, "")

    def __str__(self) -> str:
        text = super().__str__()
        if self.remediation:
            return f"{text}. {self.remediation}"
        return text


class RateLimitError(ProviderError):
    """The backend throttled the request."""

    error_class = ErrorClass.RATE_LIMITED

    def __init__(
        self, provider: str, retry_after: float | None = None, message: str | None = None
    ) -> None:
        text = message or f"Rate limit exceeded for {provider}"
        if retry_after is not None and message is None:
            text = f"{text}. Retry after {retry_after:g} seconds"
        super().__init__(text, provider)
        self.retry_after = retry_after


class ServerError(ProviderError):
    """Backend-side failure (5xx or timeout)."""

    error_class = ErrorClass.SERVER_ERROR


class StreamInterruptedError(ServerError):
    """A stream ended without its terminal chunk."""


class NetworkError(ProviderError):
    """Transport-level failure reaching the backend."""

    error_class = ErrorClass.NETWORK_ERROR


class ModelNotAvailableError(ProviderError):
    """The requested model is unknown to the backend."""

    error_class = ErrorClass.MODEL_NOT_AVAILABLE

    def __init__(self, provider: str, model: str) -> None:
        super().__init__(f"Model {model} is not available on {provider}", provider)
        self.model = model


class CapabilityNotSupportedError(ProviderError):
    """The backend does not implement the requested operation."""

    def __init__(self, provider: str, operation: str) -> None:
        super().__init__(f"{provider} does not support {operation}", provider, retryable=False)
        self.operation = operation


class NoProviderAvailable(OrchestrationError):
    """No enabled provider could be resolved for a request."""

    def __init__(self, message: str = "No AI provider is enabled") -> None:
        super().__init__(message)


class ProviderNotFoundError(OrchestrationError, KeyError):
    """An administrative operation named an unregistered provider."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown provider: {name}")
        self.name = name

    def __str__(self) -> str:
        return str(self.args[0])


def error_from_status(
    provider: str,
    status: int,
    message: str,
    *,
    model: str | None = None,
    retry_after: float | None = None,
) -> ProviderError:
    """Map an HTTP status from any backend onto the taxonomy."""
    if status in (401, 403):
        return AuthenticationError(provider)
    if status == 429:
        return RateLimitError(provider, retry_after)
    if status == 404 and "model" in message.lower():
        return ModelNotAvailableError(provider, model or "unknown")
    if status >= 500:
        return ServerError(f"{provider} server error ({status}): {message}", provider)
    return ProviderError(f"{provider} request failed ({status}): {message}", provider)


def parse_retry_after(value: str | None) -> float | None:
    """Parse a ``retry-after`` header given in seconds."""
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def classify_error(error: BaseException) -> ErrorClass:
    """Classify an exception for the retry policy.

    Adapters normally raise ``ProviderError`` subclasses already; raw
    transport and timeout errors that escape an adapter are classified
    here so a forgotten mapping still retries sensibly.
    """
    if isinstance(error, ProviderError):
        return error.error_class
    if isinstance(error, (TimeoutError, httpx.TimeoutException)):
        return ErrorClass.SERVER_ERROR
    if isinstance(error, httpx.HTTPStatusError):
        status = error.response.status_code
        if status in (401, 403):
            return ErrorClass.AUTHENTICATION
        if status == 429:
            return ErrorClass.RATE_LIMITED
        if status >= 500:
            return ErrorClass.SERVER_ERROR
        return ErrorClass.UNKNOWN
    if isinstance(error, (httpx.TransportError, ConnectionError)):
        return ErrorClass.NETWORK_ERROR
    return ErrorClass.UNKNOWN


def is_retryable(error_class: ErrorClass) -> bool:
    """Whether failures of this class may be retried."""
    return error_class in RETRYABLE_CLASSES
