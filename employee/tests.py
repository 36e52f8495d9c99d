import json
from unittest.mock import MagicMock, patch

from django.conf import settings
from django.core.cache.backends.locmem import LocMemCache
from django.test import SimpleTestCase
from django.urls import reverse

from employee.services.ai.schemas import ProviderResponse
from employee.services.cache.response_cache import ResponseCache
from employee.services.engine import Engine
from employee.services.metering.meter import UsageMeter
from employee.services.playbook.registry import ProfileRegistry
from employee.services.playbook.sections import SECTION_ORDER


class ViewTestCase(SimpleTestCase):
    def setUp(self):
        self.provider = MagicMock()
        self.engine = Engine(
            self.provider,
            ResponseCache(backend=LocMemCache('views-test', {})),
            UsageMeter(max_entries=100),
        )
        self.engine.cache.clear()
        self.registry = ProfileRegistry(directory=settings.BASE_DIR / 'profiles')
        engine_patch = patch('employee.views.get_engine', return_value=self.engine)
        profiles_patch = patch('employee.views.get_profiles', return_value=self.registry)
        engine_patch.start()
        profiles_patch.start()
        self.addCleanup(engine_patch.stop)
        self.addCleanup(profiles_patch.stop)


class UsageViewTest(ViewTestCase):
    def test_empty_report(self):
        """Test the usage report with no recorded calls."""
        response = self.client.get(reverse('employee:usage'))
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data['windowHours'], 24.0)
        self.assertEqual(data['totalRequests'], 0)
        self.assertEqual(data['totalCost'], 0.0)
        self.assertIn('recommendations', data)

    def test_report_after_chat(self):
        """Test that the usage report counts a chat turn."""
        self.provider.chat.return_value = ProviderResponse('Merhaba', None, 1_000_000, 0)
        profile = self.registry.get_profile('kuafor-demo')
        self.engine.chat(profile, 'Merhaba', handlers=[])

        data = self.client.get(reverse('employee:usage'), {'hours': '1'}).json()

        self.assertEqual(data['totalRequests'], 1)
        self.assertAlmostEqual(data['totalCost'], 0.15)
        self.assertEqual(data['byModel']['gpt-4o-mini']['requests'], 1)

    def test_invalid_hours(self):
        """Test that a non-numeric or non-positive window is rejected."""
        self.assertEqual(self.client.get(reverse('employee:usage'), {'hours': 'abc'}).status_code, 400)
        self.assertEqual(self.client.get(reverse('employee:usage'), {'hours': '0'}).status_code, 400)

    def test_post_not_allowed(self):
        """Test that the usage endpoint only accepts GET."""
        self.assertEqual(self.client.post(reverse('employee:usage')).status_code, 405)


class InstructionsViewTest(ViewTestCase):
    def _url(self, profile_id='kuafor-demo'):
        return reverse('employee:profile-instructions', args=[profile_id])

    def test_compile_full_document(self):
        """Test compiling the full instruction document for a profile."""
        response = self.client.post(self._url())
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data['sections'], list(SECTION_ORDER))
        self.assertIn('Moda Kuaför', data['instructions'])
        self.assertEqual(len(data['fingerprint']), 64)

    def test_replace_one_section(self):
        """Test replacing one section of a supplied document."""
        full = self.client.post(self._url()).json()['instructions']
        response = self.client.post(
            self._url(),
            data=json.dumps({'section': 'working_hours', 'document': full}),
            content_type='application/json',
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['instructions'], full)

    def test_unknown_profile(self):
        """Test that an unknown profile returns 404."""
        self.assertEqual(self.client.post(self._url('yok')).status_code, 404)

    def test_unknown_section(self):
        """Test that an unknown section returns 400."""
        response = self.client.post(
            self._url(), data=json.dumps({'section': 'pricing'}), content_type='application/json',
        )
        self.assertEqual(response.status_code, 400)

    def test_invalid_json(self):
        """Test that a malformed JSON body returns 400."""
        response = self.client.post(self._url(), data='{', content_type='application/json')
        self.assertEqual(response.status_code, 400)

    def test_get_not_allowed(self):
        """Test that the instructions endpoint only accepts POST."""
        self.assertEqual(self.client.get(self._url()).status_code, 405)
