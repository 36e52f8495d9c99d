"""Base exceptions for employee services."""


class ServiceError(Exception):
    """Base class for all service-layer errors."""


class ServiceNotConfigured(ServiceError):
    """Raised when a required service has no active configuration."""


class ProviderError(ServiceError):
    """Base class for failures reported by the remote language-model provider."""


class ProviderUnavailable(ProviderError):
    """Network failure, timeout, rate limit or 5xx from the provider.

    Safe to retry for idempotent calls (playbook synthesis, assistant CRUD);
    never retried for calls that may trigger tool execution.
    """


class ProviderRejected(ProviderError):
    """The provider refused the request (4xx / validation). Not retryable."""


class ResourceNotFound(ProviderError):
    """The remote resource does not exist (404)."""


class ToolExecutionFailed(ServiceError):
    """A tool handler could not complete its side effect."""

    def __init__(self, message: str, payload: dict | None = None):
        self.payload = payload or {}
        super().__init__(message)


class UnknownSection(ServiceError):
    """Raised when a section name is not part of the instruction document."""


class InvalidTransition(ServiceError):
    """Raised when the tool orchestrator is driven out of its state order."""


class MalformedDocument(ServiceError):
    """Section markers are missing or ambiguous; callers fall back to a full compile."""


class InappropriateContent(ServiceError):
    """The agent's public name contains words from the content-filter denylist."""
