"""Tests for the assistant lifecycle manager and the content filter."""

import unittest
from unittest.mock import MagicMock

from django.test import SimpleTestCase

from employee.services.assistants.content_filter import contains_banned, denylist_document, load_denylist
from employee.services.assistants.lifecycle import FILE_SEARCH_TOOL, AssistantLifecycleManager
from employee.services.base import InappropriateContent, ProviderUnavailable, ResourceNotFound, UnknownSection
from employee.services.playbook.compiler import compile_all
from employee.services.playbook.models import AgentProfile, WorkingDay
from employee.services.tools.calendar import InMemoryCalendar, calendar_handlers


def make_profile(**overrides):
    fields = dict(
        name='Elif',
        business_name='Moda Kuaför',
        tools={'calendar_booking': True},
        temperature=0.7,
        model='gpt-4o-mini',
    )
    fields.update(overrides)
    return AgentProfile(**fields)


class ContentFilterTest(unittest.TestCase):
    def test_denylist_is_loaded_without_comments(self):
        """Test that comment lines are not part of the denylist."""
        words = load_denylist()
        self.assertIn('aptal', words)
        self.assertFalse(any(word.startswith('#') for word in words))

    def test_whole_words_only(self):
        """Test that only whole words match the denylist."""
        self.assertTrue(contains_banned('Aptal Kuaför'))
        self.assertFalse(contains_banned('Fizik Akademisi'))
        self.assertFalse(contains_banned(''))

    def test_look_alike_characters(self):
        """Test that look-alike characters are normalized before matching."""
        self.assertTrue(contains_banned('4pt4l'))
        self.assertTrue(contains_banned('$alak'))

    def test_document_lists_every_word(self):
        """Test that the uploaded document contains every denylisted word."""
        document = denylist_document().decode('utf-8')
        for word in load_denylist():
            self.assertIn(word, document.splitlines())


class AssistantLifecycleTest(SimpleTestCase):
    def setUp(self):
        self.provider = MagicMock()
        self.provider.create_vector_store.return_value = 'vs_1'
        self.provider.create_assistant.side_effect = ['asst_1', 'asst_2']
        calendar = InMemoryCalendar()
        self.manager = AssistantLifecycleManager(
            self.provider, tool_factory=lambda profile: calendar_handlers(calendar, profile.tzinfo),
        )

    def test_create_attaches_filter_and_enabled_tools(self):
        """Test that create attaches file_search and enabled function tools."""
        profile = make_profile()

        assistant_id = self.manager.create(profile)

        self.assertEqual(assistant_id, 'asst_1')
        kwargs = self.provider.create_assistant.call_args.kwargs
        self.assertEqual(kwargs['name'], 'Moda Kuaför')
        self.assertEqual(kwargs['instructions'], compile_all(profile).text)
        self.assertEqual(kwargs['model_id'], 'gpt-4o-mini')
        self.assertEqual(kwargs['temperature'], 0.7)
        self.assertEqual(kwargs['vector_store_ids'], ['vs_1'])
        self.assertEqual(kwargs['tools'][0], FILE_SEARCH_TOOL)
        names = {tool['function']['name'] for tool in kwargs['tools'][1:]}
        self.assertEqual(names, {'check_calendar_availability', 'create_calendar_event'})

    def test_disabled_tools_are_not_attached(self):
        """Test that tools switched off on the profile are not attached."""
        self.manager.create(make_profile(tools={}))
        self.assertEqual(self.provider.create_assistant.call_args.kwargs['tools'], [FILE_SEARCH_TOOL])

    def test_vector_store_is_provisioned_once(self):
        """Test that the content-filter store is created only once."""
        self.manager.create(make_profile())
        self.manager.create(make_profile(name='Ayşe'))

        self.provider.create_vector_store.assert_called_once()
        self.assertEqual(self.manager.vector_store_id, 'vs_1')

    def test_vector_store_failure_aborts_creation(self):
        """Test that no assistant is created when the store cannot be provisioned."""
        self.provider.create_vector_store.side_effect = ProviderUnavailable('down')
        with self.assertRaises(ProviderUnavailable):
            self.manager.create(make_profile())
        self.provider.create_assistant.assert_not_called()

    def test_content_filter_is_attached_without_tool_factory(self):
        """Test that the content filter is attached even without function tools."""
        manager = AssistantLifecycleManager(self.provider)
        manager.create(make_profile())
        kwargs = self.provider.create_assistant.call_args.kwargs
        self.assertEqual(kwargs['tools'], [FILE_SEARCH_TOOL])
        self.assertEqual(kwargs['vector_store_ids'], ['vs_1'])

    def test_inappropriate_name_is_refused(self):
        """Test that a denylisted name raises InappropriateContent."""
        with self.assertRaises(InappropriateContent):
            self.manager.create(make_profile(business_name='Salak Kafe'))
        self.provider.create_assistant.assert_not_called()

    def test_update_section_pushes_changed_instructions(self):
        """Test that a changed section is pushed to the provider."""
        old = make_profile()
        new = make_profile(weekly_hours={'monday': WorkingDay('10:00', '16:00')})
        current = compile_all(old).text

        self.assertTrue(self.manager.update_section('asst_1', 'working_hours', new, current))

        self.provider.update_assistant.assert_called_once_with('asst_1', instructions=compile_all(new).text)

    def test_update_section_skips_no_op(self):
        """Test that an unchanged section makes no remote call."""
        profile = make_profile()
        current = compile_all(profile).text

        self.assertTrue(self.manager.update_section('asst_1', 'personality', profile, current))

        self.provider.update_assistant.assert_not_called()

    def test_update_section_unknown_name(self):
        """Test that an unknown section name raises UnknownSection."""
        with self.assertRaises(UnknownSection):
            self.manager.update_section('asst_1', 'pricing', make_profile(), '')

    def test_full_update(self):
        """Test that update sends instructions, model and temperature."""
        profile = make_profile()
        self.manager.update('asst_1', profile)
        self.provider.update_assistant.assert_called_once_with(
            'asst_1', instructions=compile_all(profile).text, model='gpt-4o-mini', temperature=0.7,
        )

    def test_delete_is_idempotent(self):
        """Test that deleting a missing assistant still succeeds."""
        self.provider.delete_assistant.side_effect = [None, ResourceNotFound('gone')]
        self.assertTrue(self.manager.delete('asst_1'))
        self.assertTrue(self.manager.delete('asst_1'))
        self.assertEqual(self.provider.delete_assistant.call_count, 2)

    def test_delete_propagates_other_errors(self):
        """Test that provider errors other than not-found propagate."""
        self.provider.delete_assistant.side_effect = ProviderUnavailable('down')
        with self.assertRaises(ProviderUnavailable):
            self.manager.delete('asst_1')
