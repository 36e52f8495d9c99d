"""Tests for the Engine composition root."""

import threading
from datetime import datetime, timezone
from unittest.mock import MagicMock

from django.core.cache.backends.locmem import LocMemCache
from django.test import SimpleTestCase, override_settings

from employee.services.ai.openai_provider import OpenAIProvider
from employee.services.ai.schemas import ProviderResponse, ToolCallRequest
from employee.services.base import ProviderUnavailable
from employee.services.cache.response_cache import ResponseCache
from employee.services.engine import Engine, build_engine, builtin_tool_factory
from employee.services.metering.meter import UsageMeter
from employee.services.playbook.compiler import compile_all
from employee.services.playbook.models import AgentProfile
from employee.services.tools.calendar import InMemoryCalendar
from employee.services.tools.orchestrator import State, fallback_message
from employee.services.tools.web_search import SearchBackend

NOW = datetime(2024, 5, 14, 10, 0, tzinfo=timezone.utc)


def reply(text='', tool_calls=None):
    return ProviderResponse(text=text, raw=None, input_tokens=1000, output_tokens=500, tool_calls=tool_calls or [])


class EngineTest(SimpleTestCase):
    def setUp(self):
        self.provider = MagicMock()
        self.calendar = InMemoryCalendar()
        self.cache = ResponseCache(backend=LocMemCache('engine-test', {}))
        self.cache.clear()
        self.engine = Engine(
            self.provider,
            self.cache,
            UsageMeter(max_entries=100),
            tool_factory=builtin_tool_factory(self.calendar),
            clock=lambda: NOW,
        )
        self.profile = AgentProfile(name='Elif', tools={'calendar_booking': True}, model='gpt-4o-mini')

    def test_compile_and_replace(self):
        """Test that the engine compiles and splices sections like the compiler."""
        document = self.engine.compile_instructions(self.profile)
        self.assertEqual(document.text, compile_all(self.profile).text)
        self.assertEqual(self.engine.replace_section(document.text, 'tools', self.profile).text, document.text)

    def test_generate_playbook_is_cached(self):
        """Test that an unchanged profile's playbook is served from the cache."""
        self.provider.chat.return_value = reply('Uzun talimat')

        first = self.engine.generate_playbook(self.profile)
        second = self.engine.generate_playbook(self.profile)

        self.assertEqual(first.text, 'Uzun talimat')
        self.assertFalse(first.cache_hit)
        self.assertTrue(second.cache_hit)
        self.provider.chat.assert_called_once()
        self.assertTrue(self.provider.chat.call_args.kwargs['retry'])
        metrics = self.engine.meter.snapshot()
        self.assertEqual([m.call_type for m in metrics], ['playbook', 'playbook'])
        self.assertEqual([m.cache_hit for m in metrics], [False, True])

    def test_generate_playbook_error_propagates_and_is_not_cached(self):
        """Test that a failed playbook call raises and leaves no cache entry."""
        self.provider.chat.side_effect = [ProviderUnavailable('down'), reply('Uzun talimat')]
        with self.assertRaises(ProviderUnavailable):
            self.engine.generate_playbook(self.profile)
        self.assertFalse(self.engine.generate_playbook(self.profile).cache_hit)

    def test_empty_playbook_is_not_cached(self):
        """Test that an empty playbook is never cached."""
        self.provider.chat.return_value = reply('')
        self.engine.generate_playbook(self.profile)
        self.engine.generate_playbook(self.profile)
        self.assertEqual(self.provider.chat.call_count, 2)

    def test_chat_uses_tool_factory(self):
        """Test that chat builds its tools from the engine's tool factory."""
        call = ToolCallRequest('call_1', 'create_calendar_event', {'start': '2024-05-15T14:00:00'})
        self.provider.chat.side_effect = [reply(tool_calls=[call]), reply('Randevunuz oluşturuldu.')]

        result = self.engine.chat(self.profile, 'Yarın 14:00 randevu')

        self.assertEqual(result.state, State.DONE)
        self.assertEqual(len(self.calendar.events), 1)
        system_prompt = self.provider.chat.call_args_list[0].args[0][0]['content']
        self.assertEqual(system_prompt, compile_all(self.profile).text)

    def test_chat_with_explicit_instructions_and_no_handlers(self):
        """Test that explicit instructions and an empty handler list are honoured."""
        self.provider.chat.return_value = reply('Merhaba')
        result = self.engine.chat(self.profile, 'Merhaba', instructions='Kısa yanıt ver.', handlers=[])
        self.assertEqual(result.content, 'Merhaba')
        self.assertEqual(self.provider.chat.call_args.args[0][0]['content'], 'Kısa yanıt ver.')
        self.assertIsNone(self.provider.chat.call_args.kwargs['tools'])

    def test_usage_report(self):
        """Test that usage stats and the report reflect a chat turn."""
        self.provider.chat.return_value = reply('Merhaba')
        self.engine.chat(self.profile, 'Merhaba', handlers=[])

        stats = self.engine.get_usage_stats(24)
        report = self.engine.usage_report(24)

        self.assertEqual(stats['totalRequests'], 1)
        self.assertEqual(stats['totalTokens'], 1500)
        self.assertIn('efficiency', report)
        self.assertIn('recommendations', report)

    def test_engines_do_not_share_state(self):
        """Test that two engines keep separate meters."""
        other = Engine(self.provider, ResponseCache(backend=LocMemCache('engine-test-2', {})), UsageMeter(10))
        self.provider.chat.return_value = reply('Merhaba')
        self.engine.chat(self.profile, 'Merhaba', handlers=[])
        self.assertEqual(other.get_usage_stats()['totalRequests'], 0)

    def test_lifecycle_is_bound_to_provider(self):
        """Test that the lifecycle manager is bound to the engine and reused."""
        manager = self.engine.lifecycle()
        self.assertIs(manager.provider, self.provider)
        self.assertIs(manager.tool_factory, self.engine.tool_factory)
        self.assertIs(self.engine.lifecycle(), manager)

    def test_build_engine_from_settings(self):
        """Test that build_engine wires the calendar tools by default."""
        engine = build_engine(provider=self.provider)
        self.assertIs(engine.provider, self.provider)
        self.assertIsNotNone(engine.tool_factory)
        handlers = list(engine.tool_factory(self.profile))
        self.assertEqual(len(handlers), 2)

    @override_settings(OPENAI_API_KEY='')
    def test_chat_without_api_key_returns_fallback(self):
        """Test that a missing API key yields the fallback instead of an exception."""
        engine = Engine(OpenAIProvider(), self.cache, UsageMeter(max_entries=10), clock=lambda: NOW)

        result = engine.chat(AgentProfile(name='Elif'), 'Merhaba')

        self.assertEqual(result.state, State.FAILED)
        self.assertEqual(result.content, fallback_message())

    def test_concurrent_first_lifecycle_calls_share_one_manager(self):
        """Test that concurrent first calls create a single lifecycle manager."""
        barrier = threading.Barrier(8)
        managers = []

        def grab():
            barrier.wait()
            managers.append(self.engine.lifecycle())

        threads = [threading.Thread(target=grab) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(len({id(manager) for manager in managers}), 1)

    def test_build_engine_with_search_backend(self):
        """Test that a search backend adds the web_search tool."""
        search = MagicMock(spec=SearchBackend)
        engine = build_engine(provider=self.provider, search=search)
        names = [handler.name for handler in engine.tool_factory(self.profile)]
        self.assertEqual(names, ['check_calendar_availability', 'create_calendar_event', 'web_search'])
