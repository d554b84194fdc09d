# ABOUTME: Typed error taxonomy for provider operations and their callers.
# ABOUTME: Each provider error declares whether it counts against the circuit breaker.


class TomeError(Exception):
    """Base class for all errors raised by Tome."""


class ValidationError(TomeError):
    """Malformed input from a caller. Never retried."""


class UnknownProviderError(TomeError):
    """A provider id that does not name any compiled-in provider."""

    def __init__(self, provider_id: str) -> None:
        self.provider_id = provider_id
        super().__init__(f"Provider '{provider_id}' does not exist")


class UnsupportedOperationError(ValidationError):
    """An operation was requested that the provider does not declare."""

    def __init__(self, provider_id: str, operation: str) -> None:
        self.provider_id = provider_id
        self.operation = operation
        super().__init__(f"Provider '{provider_id}' does not support {operation}")


class ProviderError(TomeError):
    """A provider operation failed.

    Subclasses set ``trips_breaker`` to say whether the failure means the
    provider itself is unhealthy. Only those failures are counted by the
    circuit breaker; a well-formed negative answer is not.
    """

    trips_breaker = True

    def __init__(self, provider: str, operation: str, message: str) -> None:
        self.provider = provider
        self.operation = operation
        self.reason = message
        super().__init__(f"Provider '{provider}' {operation} failed: {message}")


class ProviderNotFoundError(ProviderError):
    """The upstream answered, and it has no record with the requested id."""

    trips_breaker = False


class TransientProviderError(ProviderError):
    """Timeout, network error, rate limiting, or an upstream 5xx."""

    trips_breaker = True


class ProviderTimeoutError(TransientProviderError):
    """The provider did not answer within the allotted time."""


class ProviderAuthError(ProviderError):
    """The upstream rejected our credentials."""

    trips_breaker = True


class ProviderConfigurationError(ProviderError):
    """The provider cannot be called as configured (e.g. missing API key)."""

    trips_breaker = False


class CircuitOpenError(ProviderError):
    """The circuit breaker is open; the call was not attempted."""

    trips_breaker = False

    def __init__(self, provider: str, operation: str, retry_after: float | None = None) -> None:
        self.retry_after = retry_after
        super().__init__(
            provider, operation, "Circuit breaker is OPEN - provider temporarily unavailable"
        )
