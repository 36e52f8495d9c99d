"""OpenAI provider adapter (Chat Completions, Assistants and Vector Stores APIs)."""

import json
import logging
from contextlib import contextmanager
from typing import Any, Optional

import openai

from employee.services.base import ProviderRejected, ProviderUnavailable, ResourceNotFound

from .base_provider import BaseProvider
from .client import get_client
from .schemas import ProviderResponse, ToolCallRequest

logger = logging.getLogger(__name__)


@contextmanager
def translate_errors(operation: str):
    """Map ``openai`` SDK exceptions onto the service error taxonomy."""
    try:
        yield
    except openai.NotFoundError as exc:
        raise ResourceNotFound(f'{operation}: resource not found') from exc
    except (openai.APIConnectionError, openai.RateLimitError, openai.InternalServerError) as exc:
        logger.warning('%s failed, provider unavailable: %s', operation, exc)
        raise ProviderUnavailable(f'{operation}: provider unavailable') from exc
    except openai.APIStatusError as exc:
        if exc.status_code >= 500:
            logger.warning('%s failed with status %s: %s', operation, exc.status_code, exc)
            raise ProviderUnavailable(f'{operation}: provider error {exc.status_code}') from exc
        logger.error('%s rejected with status %s: %s', operation, exc.status_code, exc)
        raise ProviderRejected(f'{operation}: request rejected ({exc.status_code})') from exc
    except openai.APIError as exc:
        logger.warning('%s failed: %s', operation, exc)
        raise ProviderUnavailable(f'{operation}: provider error') from exc


def _parse_arguments(raw: Optional[str]) -> dict[str, Any]:
    """Decode tool arguments; malformed JSON yields an empty dict."""
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning('Discarding malformed tool arguments: %.200s', raw)
        return {}
    return parsed if isinstance(parsed, dict) else {}


class OpenAIProvider(BaseProvider):
    """Calls the OpenAI Chat Completions and Assistants APIs."""

    def __init__(
        self,
        api_key: str = '',
        organization_id: str = '',
        client: Optional[openai.OpenAI] = None,
        max_retries: Optional[int] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(api_key, **kwargs)
        self._organization_id = organization_id
        self._client = client
        self._max_retries = max_retries

    def _get_client(self) -> openai.OpenAI:
        if self._client is None:
            if self._api_key:
                self._client = openai.OpenAI(
                    api_key=self._api_key,
                    organization=self._organization_id or None,
                )
            else:
                self._client = get_client()
        return self._client

    def _client_for(self, retry: bool) -> openai.OpenAI:
        """Return the client with retries enabled only for idempotent calls."""
        client = self._get_client()
        if not retry:
            return client.with_options(max_retries=0)
        if self._max_retries is not None:
            return client.with_options(max_retries=self._max_retries)
        return client

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
        call_kwargs: dict[str, Any] = {'model': model_id, 'messages': messages}
        if temperature is not None:
            call_kwargs['temperature'] = temperature
        if max_tokens is not None:
            call_kwargs['max_tokens'] = max_tokens
        if tools:
            call_kwargs['tools'] = tools
            call_kwargs['tool_choice'] = tool_choice or 'auto'
        call_kwargs.update(kwargs)

        with translate_errors('chat completion'):
            response = self._client_for(retry).chat.completions.create(**call_kwargs)

        if not getattr(response, 'choices', None):
            raise ProviderUnavailable('chat completion: response contained no choices')
        message = response.choices[0].message
        tool_calls = [
            ToolCallRequest(
                id=call.id,
                name=call.function.name,
                arguments=_parse_arguments(call.function.arguments),
                raw_arguments=call.function.arguments or '',
            )
            for call in (message.tool_calls or [])
            if getattr(call, 'function', None) is not None
        ]

        input_tokens: Optional[int] = None
        output_tokens: Optional[int] = None
        if response.usage:
            input_tokens = response.usage.prompt_tokens
            output_tokens = response.usage.completion_tokens

        return ProviderResponse(
            text=message.content or '',
            raw=response,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            tool_calls=tool_calls,
        )

    # ------------------------------------------------------------------
    # Persistent assistants
    # ------------------------------------------------------------------

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
        params: dict[str, Any] = {
            'name': name,
            'instructions': instructions,
            'model': model_id,
            'tools': list(tools or []),
        }
        if temperature is not None:
            params['temperature'] = temperature
        if vector_store_ids:
            params['tool_resources'] = {'file_search': {'vector_store_ids': list(vector_store_ids)}}

        with translate_errors('assistant create'):
            assistant = self._client_for(retry=True).beta.assistants.create(**params)
        logger.info('Created assistant %s (%s)', assistant.id, name)
        return assistant.id

    def update_assistant(self, assistant_id: str, **fields: Any) -> None:
        with translate_errors('assistant update'):
            self._client_for(retry=True).beta.assistants.update(assistant_id, **fields)
        logger.info('Updated assistant %s (%s)', assistant_id, ', '.join(sorted(fields)))

    def delete_assistant(self, assistant_id: str) -> None:
        with translate_errors('assistant delete'):
            self._client_for(retry=True).beta.assistants.delete(assistant_id)
        logger.info('Deleted assistant %s', assistant_id)

    def create_vector_store(self, name: str, filename: str, content: bytes) -> str:
        client = self._client_for(retry=True)
        with translate_errors('vector store create'):
            vector_store = client.vector_stores.create(name=name)
            client.vector_stores.files.upload_and_poll(
                vector_store_id=vector_store.id,
                file=(filename, content),
            )
        logger.info('Provisioned vector store %s with %s', vector_store.id, filename)
        return vector_store.id
