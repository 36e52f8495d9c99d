"""
Composition root for the digital-employee services.

An :class:`Engine` bundles one provider, one response cache and one usage
meter. It holds no module-level state, so several engines (for example one
per test) can coexist in a process.
"""

import logging
import threading
from typing import Any, Callable, Iterable, Optional

from django.conf import settings

from .ai.base_provider import BaseProvider
from .ai.openai_provider import OpenAIProvider
from .ai.schemas import AIResponse
from .assistants.lifecycle import AssistantLifecycleManager
from .cache.response_cache import ResponseCache
from .metering.meter import UsageMeter, build_usage_report
from .playbook.compiler import InstructionDocument, compile_all, replace_section
from .playbook.models import AgentProfile
from .tools.calendar import CalendarBackend, InMemoryCalendar, calendar_handlers
from .tools.orchestrator import ConversationResult, ToolOrchestrator
from .tools.registry import ToolHandler, ToolRegistry
from .tools.web_search import SearchBackend, WebSearchHandler

logger = logging.getLogger(__name__)

PLAYBOOK_SYSTEM_PROMPT = (
    "Sen Türkiye'deki işletmeler için AI asistan talimatları oluşturan uzman bir sistemsin. "
    'Verilen bölümlü talimat belgesini ayrıntılı, profesyonel ve kullanıcı dostu bir '
    'asistan talimatına dönüştür. Bölüm işaretlerini ve sıralarını aynen koru.'
)
PLAYBOOK_TEMPERATURE = 0.7

ToolFactory = Callable[[AgentProfile], Iterable[ToolHandler]]


class Engine:
    """Entry point for compiling instructions, chatting and reporting usage.

    Args:
        provider: Language-model provider shared by every operation.
        cache: Response cache for playbook synthesis and tool-free chat turns.
        meter: Usage meter fed by every provider call and cache hit.
        tool_factory: Builds the tool handlers for one conversation from the
            profile (handlers often need the profile timezone). ``None`` means
            no tools unless :meth:`chat` is given handlers explicitly.
        clock: Passed to the orchestrator; returns the current aware datetime.
    """

    def __init__(
        self,
        provider: BaseProvider,
        cache: ResponseCache,
        meter: UsageMeter,
        *,
        tool_factory: Optional[ToolFactory] = None,
        clock: Optional[Callable] = None,
    ) -> None:
        self.provider = provider
        self.cache = cache
        self.meter = meter
        self.tool_factory = tool_factory
        self._lifecycle: Optional[AssistantLifecycleManager] = None
        self._lifecycle_lock = threading.Lock()
        self._orchestrator_kwargs: dict[str, Any] = {}
        if clock is not None:
            self._orchestrator_kwargs['clock'] = clock

    # ------------------------------------------------------------------
    # Instructions
    # ------------------------------------------------------------------

    def compile_instructions(self, profile: AgentProfile) -> InstructionDocument:
        return compile_all(profile)

    def replace_section(
        self,
        document: str | InstructionDocument,
        section_name: str,
        profile: AgentProfile,
    ) -> InstructionDocument:
        return replace_section(document, section_name, profile)

    def generate_playbook(self, profile: AgentProfile) -> AIResponse:
        """Have the model polish the compiled document into a long-form playbook.

        The result is cached for ``AI_CACHE_TTL_PLAYBOOK`` seconds, keyed on
        the compiled document and model, so unchanged profiles cost nothing.

        Raises:
            ProviderError: If the provider fails after its retries.
        """
        prompt = compile_all(profile).text
        cached = self.cache.lookup(prompt, profile.model)
        if cached is not None:
            self.meter.record(profile.model, call_type='playbook', cache_hit=True)
            return AIResponse(
                text=cached, raw=None, input_tokens=0, output_tokens=0,
                model=profile.model, cache_hit=True,
            )

        messages = [
            {'role': 'system', 'content': PLAYBOOK_SYSTEM_PROMPT},
            {'role': 'user', 'content': prompt},
        ]
        response = self.provider.chat(
            messages,
            model_id=profile.model,
            temperature=PLAYBOOK_TEMPERATURE,
            max_tokens=getattr(settings, 'AI_PLAYBOOK_MAX_TOKENS', 4000),
            retry=True,
        )
        self.meter.record(
            profile.model,
            input_tokens=response.input_tokens,
            output_tokens=response.output_tokens,
            call_type='playbook',
        )
        if response.text.strip():
            self.cache.store(prompt, profile.model, response.text, getattr(settings, 'AI_CACHE_TTL_PLAYBOOK', 86400))
        else:
            logger.warning(f"Empty playbook returned for profile '{profile.profile_id or profile.name}'")

        return AIResponse(
            text=response.text,
            raw=response.raw,
            input_tokens=response.input_tokens,
            output_tokens=response.output_tokens,
            model=profile.model,
        )

    # ------------------------------------------------------------------
    # Conversation
    # ------------------------------------------------------------------

    def chat(
        self,
        profile: AgentProfile,
        message: str,
        history: Iterable[dict] = (),
        instructions: Optional[str] = None,
        handlers: Optional[Iterable[ToolHandler]] = None,
    ) -> ConversationResult:
        """Run one conversation turn; always returns user-safe content."""
        if handlers is None and self.tool_factory is not None:
            handlers = self.tool_factory(profile)
        registry = ToolRegistry(handlers) if handlers is not None else None
        if instructions is None:
            instructions = compile_all(profile).text

        orchestrator = ToolOrchestrator(
            self.provider, cache=self.cache, meter=self.meter, **self._orchestrator_kwargs
        )
        return orchestrator.run(profile, instructions, message, history=history, registry=registry)

    # ------------------------------------------------------------------
    # Assistants & usage
    # ------------------------------------------------------------------

    def lifecycle(self) -> AssistantLifecycleManager:
        """Return this engine's manager; its content-filter store is shared by all assistants."""
        with self._lifecycle_lock:
            if self._lifecycle is None:
                self._lifecycle = AssistantLifecycleManager(self.provider, tool_factory=self.tool_factory)
            return self._lifecycle

    def get_usage_stats(self, window_hours: float = 24) -> dict[str, Any]:
        return self.meter.get_usage_stats(window_hours)

    def usage_report(self, window_hours: float = 24) -> dict[str, Any]:
        return build_usage_report(self.get_usage_stats(window_hours))


def builtin_tool_factory(calendar: CalendarBackend, search: Optional[SearchBackend] = None) -> ToolFactory:
    """Return a factory for the calendar tools and, given a *search* backend, web search.

    Calendar handlers are bound to each profile's timezone. Which tools the
    model actually sees is still decided by the profile flags.
    """

    def factory(profile: AgentProfile) -> list[ToolHandler]:
        handlers = calendar_handlers(calendar, profile.tzinfo)
        if search is not None:
            handlers.append(WebSearchHandler(search, default_language=profile.language))
        return handlers

    return factory


def build_engine(
    provider: Optional[BaseProvider] = None,
    calendar: Optional[CalendarBackend] = None,
    search: Optional[SearchBackend] = None,
) -> Engine:
    """Build an engine from Django settings.

    Without a *calendar*, bookings go to a fresh :class:`InMemoryCalendar`
    owned by this engine. Web search is offered only when a *search*
    backend is supplied.

    Raises:
        ServiceNotConfigured: On first provider use if ``OPENAI_API_KEY`` is unset.
    """
    return Engine(
        provider or OpenAIProvider(),
        ResponseCache(),
        UsageMeter(),
        tool_factory=builtin_tool_factory(calendar or InMemoryCalendar(), search),
    )
