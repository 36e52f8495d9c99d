"""
Two-phase tool-calling protocol.

One conversation turn moves through::

    AWAITING_MODEL -> MODEL_RESPONDED -> DONE
                                      -> EXECUTING_TOOLS -> AWAITING_FOLLOWUP -> DONE

with ``FAILED`` reachable from either provider call. The follow-up call is
made with tools disabled, so a turn performs at most two provider calls and
every requested tool runs at most once.
"""

import enum
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Iterable, Optional

from django.conf import settings
from django.utils import timezone
from django.utils.translation import gettext as _

from employee.services.ai.base_provider import BaseProvider
from employee.services.ai.schemas import ProviderResponse, ToolCallRequest, ToolCallResult
from employee.services.base import InvalidTransition, ServiceError, ToolExecutionFailed
from employee.services.cache.response_cache import ResponseCache, make_key
from employee.services.metering.meter import UsageMeter
from employee.services.playbook.models import AgentProfile

from .registry import ToolOutcome, ToolRegistry

logger = logging.getLogger(__name__)

WEEKDAY_NAMES = ('Pazartesi', 'Salı', 'Çarşamba', 'Perşembe', 'Cuma', 'Cumartesi', 'Pazar')

_TURKISH_CHARS = 'çğıöşü'
_TURKISH_WORDS = ('nedir', 'nasıl', 'ne', 'hakkında', 'için', 'ile', 'randevu', 'merhaba', 'saat', 'yarın')
_ENGLISH_WORDS = ('what', 'how', 'about', 'with', 'from', 'the', 'and', 'for', 'are', 'is', 'can', 'will', 'would')


def fallback_message() -> str:
    """User-safe apology returned whenever no trustworthy answer exists."""
    return _('Üzgünüm, şu anda yanıt veremiyorum. Lütfen biraz sonra tekrar deneyin.')


def detect_language(text: str, default: str = 'tr') -> str:
    """Guess whether *text* is Turkish or English from characters and stop words."""
    words = set(text.lower().split())
    if not words:
        return default
    turkish = 2 * sum(1 for char in _TURKISH_CHARS if char in text.lower())
    turkish += sum(1 for word in _TURKISH_WORDS if word in words)
    english = sum(1 for word in _ENGLISH_WORDS if word in words)
    if turkish == english:
        return default
    return 'tr' if turkish > english else 'en'


class State(enum.Enum):
    AWAITING_MODEL = 'awaiting_model'
    MODEL_RESPONDED = 'model_responded'
    EXECUTING_TOOLS = 'executing_tools'
    AWAITING_FOLLOWUP = 'awaiting_followup'
    DONE = 'done'
    FAILED = 'failed'


_TRANSITIONS: dict[State, frozenset[State]] = {
    State.AWAITING_MODEL: frozenset({State.MODEL_RESPONDED, State.FAILED}),
    State.MODEL_RESPONDED: frozenset({State.DONE, State.EXECUTING_TOOLS, State.FAILED}),
    State.EXECUTING_TOOLS: frozenset({State.AWAITING_FOLLOWUP}),
    State.AWAITING_FOLLOWUP: frozenset({State.DONE, State.FAILED}),
    State.DONE: frozenset(),
    State.FAILED: frozenset(),
}


@dataclass
class ConversationResult:
    content: str
    state: State
    tool_results: list[ToolCallResult] = field(default_factory=list)
    fell_back: bool = False
    cache_hit: bool = False
    provider_calls: int = 0
    input_tokens: int = 0
    output_tokens: int = 0


class ConversationTurn:
    """State of one user turn. Not shared between requests."""

    def __init__(self, messages: list[dict]) -> None:
        self.state = State.AWAITING_MODEL
        self.messages = messages
        self.result = ConversationResult(content='', state=self.state)

    def advance(self, target: State) -> None:
        if target not in _TRANSITIONS[self.state]:
            raise InvalidTransition(f'{self.state.name} -> {target.name} is not allowed')
        logger.debug('Conversation turn %s -> %s', self.state.name, target.name)
        self.state = target
        self.result.state = target

    def account(self, response: ProviderResponse) -> None:
        self.result.provider_calls += 1
        self.result.input_tokens += response.input_tokens or 0
        self.result.output_tokens += response.output_tokens or 0

    def finish(self, content: str) -> ConversationResult:
        self.advance(State.DONE)
        self.result.content = content
        return self.result

    def fail(self, reason: str) -> ConversationResult:
        logger.error('Conversation turn failed in %s: %s', self.state.name, reason)
        self.advance(State.FAILED)
        self.result.content = fallback_message()
        self.result.fell_back = True
        return self.result


class ToolOrchestrator:
    """Drives one conversation turn through the provider and the tool handlers.

    Args:
        provider: The language-model provider.
        cache: Optional response cache, consulted for tool-free turns only.
        meter: Optional usage meter; every provider call and cache hit is recorded.
        max_tokens: Completion limit per call (``AI_CHAT_MAX_TOKENS`` by default).
        cache_ttl: Seconds a conversational answer stays cached (``AI_CACHE_TTL_CHAT``).
        clock: Returns the current aware datetime; injectable for tests.
    """

    def __init__(
        self,
        provider: BaseProvider,
        *,
        cache: Optional[ResponseCache] = None,
        meter: Optional[UsageMeter] = None,
        max_tokens: Optional[int] = None,
        cache_ttl: Optional[int] = None,
        clock: Callable[[], datetime] = timezone.now,
    ) -> None:
        self.provider = provider
        self.cache = cache
        self.meter = meter
        self.max_tokens = max_tokens if max_tokens is not None else getattr(settings, 'AI_CHAT_MAX_TOKENS', 1000)
        self.cache_ttl = cache_ttl if cache_ttl is not None else getattr(settings, 'AI_CACHE_TTL_CHAT', 300)
        self.clock = clock

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def run(
        self,
        profile: AgentProfile,
        instructions: str,
        message: str,
        history: Iterable[dict] = (),
        registry: Optional[ToolRegistry] = None,
    ) -> ConversationResult:
        """Answer *message* as the agent described by *profile*.

        Args:
            profile: Agent configuration; supplies model and temperature.
            instructions: Compiled playbook used as the system prompt.
            message: The new user message.
            history: Prior ``{"role": "user"|"assistant", "content": ...}`` turns.
            registry: Tool handlers for this conversation. Only handlers whose
                capability flag is enabled on *profile* are offered to the model.

        Returns:
            :class:`ConversationResult`; ``content`` is always user-safe.
        """
        enabled = registry.enabled_for(profile) if registry is not None else ToolRegistry()
        tools = enabled.schemas()
        turn = ConversationTurn(self._build_messages(profile, instructions, message, history))

        cache_key = None
        if not tools and self.cache is not None:
            cache_key = make_key(json.dumps(turn.messages, ensure_ascii=False, sort_keys=True), profile.model)
            cached = self.cache.get(cache_key)
            if cached is not None:
                self._record(profile.model, None, call_type='chat', cache_hit=True)
                turn.advance(State.MODEL_RESPONDED)
                turn.result.cache_hit = True
                return turn.finish(cached)

        try:
            response = self.provider.chat(
                turn.messages,
                model_id=profile.model,
                temperature=profile.temperature,
                max_tokens=self.max_tokens,
                tools=tools or None,
                retry=not tools,
            )
        except ServiceError as exc:
            return turn.fail(f'initial call: {exc}')
        turn.account(response)
        self._record(profile.model, response, call_type='chat')
        turn.advance(State.MODEL_RESPONDED)

        if not response.tool_calls:
            if not response.text.strip():
                return turn.fail('empty model response')
            if cache_key is not None:
                self.cache.put(cache_key, response.text, self.cache_ttl)
            return turn.finish(response.text)

        turn.advance(State.EXECUTING_TOOLS)
        results = [self._dispatch(enabled, call) for call in response.tool_calls]
        turn.result.tool_results = results
        turn.messages = turn.messages + [self._assistant_turn(response)] + [
            self._tool_message(result) for result in results
        ]
        turn.advance(State.AWAITING_FOLLOWUP)

        try:
            followup = self.provider.chat(
                turn.messages,
                model_id=profile.model,
                temperature=profile.temperature,
                max_tokens=self.max_tokens,
                tools=tools,
                tool_choice='none',
                retry=True,
            )
        except ServiceError as exc:
            return turn.fail(f'follow-up call: {exc}')
        turn.account(followup)
        self._record(profile.model, followup, call_type='chat_followup')

        if followup.tool_calls:
            logger.warning('Ignoring %d tool call(s) requested in follow-up', len(followup.tool_calls))
        if not followup.text.strip():
            return turn.fail('empty follow-up response')
        return turn.finish(followup.text)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _build_messages(
        self,
        profile: AgentProfile,
        instructions: str,
        message: str,
        history: Iterable[dict],
    ) -> list[dict]:
        messages = [
            {'role': 'system', 'content': instructions},
            {'role': 'system', 'content': self._context_message(profile, message)},
        ]
        for entry in history:
            role = entry.get('role')
            if role not in ('user', 'assistant'):
                logger.debug('Skipping history entry with role %r', role)
                continue
            messages.append({'role': role, 'content': str(entry.get('content') or '')})
        messages.append({'role': 'user', 'content': message})
        return messages

    def _context_message(self, profile: AgentProfile, message: str) -> str:
        local_now = self.clock().astimezone(profile.tzinfo)
        if detect_language(message, default=profile.language) == 'tr':
            hint = 'Bu mesajı Türkçe yanıtla.'
        else:
            hint = 'Please respond in English.'
        return (
            f'Şu anki tarih ve saat: {local_now:%Y-%m-%d %H:%M} '
            f'({WEEKDAY_NAMES[local_now.weekday()]}), saat dilimi: {profile.timezone}. '
            f'Göreli tarihleri (ör. "yarın") bu zamana göre hesapla ve araçlara '
            f'ISO 8601 formatında yerel saat olarak ilet. {hint}'
        )

    def _dispatch(self, registry: ToolRegistry, call: ToolCallRequest) -> ToolCallResult:
        """Run one tool call exactly once; failures become unsuccessful results."""
        handler = registry.get(call.name)
        if handler is None:
            logger.warning("Model requested unknown or disabled tool '%s'", call.name)
            return ToolCallResult(call.id, call.name, False, f"'{call.name}' aracı kullanılamıyor.")

        try:
            outcome = ToolOutcome.coerce(handler.execute(dict(call.arguments)))
        except ToolExecutionFailed as exc:
            logger.info("Tool '%s' failed: %s", call.name, exc)
            return ToolCallResult(call.id, call.name, False, str(exc), dict(exc.payload))
        except Exception:
            logger.exception("Tool '%s' raised", call.name)
            return ToolCallResult(call.id, call.name, False, 'İşlem şu anda gerçekleştirilemedi.')

        logger.info("Tool '%s' finished (success=%s)", call.name, outcome.success)
        return ToolCallResult(call.id, call.name, outcome.success, outcome.message, dict(outcome.payload))

    @staticmethod
    def _assistant_turn(response: ProviderResponse) -> dict:
        return {
            'role': 'assistant',
            'content': response.text or None,
            'tool_calls': [
                {
                    'id': call.id,
                    'type': 'function',
                    'function': {
                        'name': call.name,
                        'arguments': call.raw_arguments or json.dumps(call.arguments, ensure_ascii=False),
                    },
                }
                for call in response.tool_calls
            ],
        }

    @staticmethod
    def _tool_message(result: ToolCallResult) -> dict:
        return {
            'role': 'tool',
            'tool_call_id': result.call_id,
            'content': json.dumps(result.as_output(), ensure_ascii=False, default=str),
        }

    def _record(self, model: str, response: Optional[ProviderResponse], *, call_type: str, cache_hit: bool = False):
        if self.meter is None:
            return
        self.meter.record(
            model,
            input_tokens=response.input_tokens if response else 0,
            output_tokens=response.output_tokens if response else 0,
            call_type=call_type,
            cache_hit=cache_hit,
        )
