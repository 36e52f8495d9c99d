"""Abstract base class for the AI provider implementation."""

import abc
from typing import Any, Optional

from .schemas import ProviderResponse


class BaseProvider(abc.ABC):
    """Interface the engine depends on; tests substitute fakes for it."""

    def __init__(self, api_key: str = '', **kwargs: Any) -> None:
        self._api_key = api_key

    @abc.abstractmethod
    def chat(
        self,
        messages: list[dict],
        model_id: str,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        tools: Optional[list[dict]] = None,
        tool_choice: Optional[str] = None,
        retry: bool = True,
        **kwargs: Any,
    ) -> ProviderResponse:
        """Send a chat completion request and return a :class:`ProviderResponse`.

        Args:
            messages: List of ``{"role": ..., "content": ...}`` dicts.
            model_id: Provider-side model identifier.
            temperature: Sampling temperature (optional).
            max_tokens: Maximum tokens in the response (optional).
            tools: Function tool schemas the model may call (optional).
            tool_choice: ``"auto"`` (default when tools are given) or ``"none"``
                to keep the schemas visible while forbidding new calls.
            retry: Whether transient failures may be retried. Must be
                ``False`` for calls that can lead to side-effecting tool use.

        Raises:
            ProviderUnavailable: Network/5xx/rate-limit failure.
            ProviderRejected: The request was refused (4xx).
        """

    @abc.abstractmethod
    def create_assistant(
        self,
        *,
        name: str,
        instructions: str,
        model_id: str,
        temperature: Optional[float] = None,
        tools: Optional[list[dict]] = None,
        vector_store_ids: Optional[list[str]] = None,
    ) -> str:
        """Create a persistent remote assistant and return its id."""

    @abc.abstractmethod
    def update_assistant(self, assistant_id: str, **fields: Any) -> None:
        """Update fields (``instructions``, ``temperature``, ...) of a remote assistant."""

    @abc.abstractmethod
    def delete_assistant(self, assistant_id: str) -> None:
        """Delete a remote assistant.

        Raises:
            ResourceNotFound: If the assistant does not exist.
        """

    @abc.abstractmethod
    def create_vector_store(self, name: str, filename: str, content: bytes) -> str:
        """Upload *content* as a searchable corpus and return the vector store id."""
