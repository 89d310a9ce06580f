"""Provider error taxonomy shared by adapters, the retry policy and the poller."""

from __future__ import annotations


class ProviderError(Exception):
    """Base error for a generation provider call.

    ``code`` is stable and machine-readable; ``user_message`` is what callers display.
    """

    code = "provider"
    retryable = False

    def __init__(self, message: str, provider: str = "", remedy: str | None = None):
        super().__init__(message)
        self.message = message
        self.provider = provider
        self.remedy = remedy

    @property
    def user_message(self) -> str:
        text = f"{self.provider}: {self.message}" if self.provider else self.message
        if self.remedy:
            text = f"{text.rstrip('.')}. {self.remedy}"
        return text

    def __str__(self) -> str:
        return self.user_message


class AuthError(ProviderError):
    """Missing or rejected credential."""

    code = "auth"


class RateLimitError(ProviderError):
    """HTTP 429 or provider throttling. Retryable after ``retry_after`` seconds."""

    code = "rate_limit"
    retryable = True

    def __init__(
        self,
        message: str,
        provider: str = "",
        remedy: str | None = None,
        retry_after: float = 10.0,
    ):
        super().__init__(message, provider, remedy)
        self.retry_after = retry_after


class NotFoundError(ProviderError):
    """Model or endpoint not supported by the provider. Never retried."""

    code = "not_found"


class TransientError(ProviderError):
    """5xx, network failure or model still loading. Retryable."""

    code = "transient"
    retryable = True

    def __init__(
        self,
        message: str,
        provider: str = "",
        remedy: str | None = None,
        retry_after: float | None = None,
    ):
        super().__init__(message, provider, remedy)
        self.retry_after = retry_after


class ValidationError(ProviderError):
    """Empty or malformed input. Raised before anything is sent to the network."""

    code = "validation"


class JobTimeoutError(ProviderError):
    """The poller gave up waiting for a terminal state."""

    code = "timeout"


class JobCanceledError(ProviderError):
    """The job was canceled by the provider or the caller stopped polling."""

    code = "canceled"


_ERRORS_BY_CODE: dict[str, type[ProviderError]] = {
    cls.code: cls
    for cls in (
        AuthError,
        RateLimitError,
        NotFoundError,
        TransientError,
        ValidationError,
        JobTimeoutError,
        JobCanceledError,
    )
}


def error_for_code(code: str | None, message: str, provider: str = "") -> ProviderError:
    """Rebuild the typed error for a failed job from its ``error_code``.

    Unknown codes (``provider``, ``status_check``) give a plain ``ProviderError``.
    """
    return _ERRORS_BY_CODE.get(code or "", ProviderError)(message, provider=provider)
