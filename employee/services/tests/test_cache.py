"""Tests for the response cache (in-process LocMemCache backend)."""

import unittest
from unittest.mock import patch

from django.core.cache.backends.locmem import LocMemCache
from django.test import SimpleTestCase

from employee.services.cache.response_cache import ResponseCache, canonicalize_prompt, make_key


class CacheKeyTest(unittest.TestCase):
    def test_canonicalization_ignores_cosmetic_differences(self):
        self.assertEqual(canonicalize_prompt('  Merhaba  \r\nDünya \n'), 'Merhaba\nDünya')

    def test_canonicalization_normalizes_unicode(self):
        decomposed = 'Kuafo\u0308r'
        composed = 'Kuaf\u00f6r'
        self.assertEqual(make_key(decomposed, 'gpt-4o-mini'), make_key(composed, 'gpt-4o-mini'))

    def test_model_is_part_of_the_key(self):
        self.assertNotEqual(make_key('soru', 'gpt-4o-mini'), make_key('soru', 'gpt-4o'))

    def test_key_is_prefixed_digest(self):
        key = make_key('soru', 'gpt-4o-mini')
        prefix, digest = key.split(':')
        self.assertEqual(prefix, 'airesp')
        self.assertEqual(len(digest), 64)


class ResponseCacheTest(SimpleTestCase):
    def setUp(self):
        self.cache = ResponseCache(backend=LocMemCache('response-cache-test', {}))
        self.cache.clear()

    def test_miss_returns_none(self):
        self.assertIsNone(self.cache.get(make_key('yok', 'gpt-4o-mini')))

    def test_store_and_lookup(self):
        self.cache.store('Çalışma saatleri?', 'gpt-4o-mini', '09:00-19:00', ttl=60)
        self.assertEqual(self.cache.lookup('Çalışma saatleri? ', 'gpt-4o-mini'), '09:00-19:00')
        self.assertIsNone(self.cache.lookup('Çalışma saatleri?', 'gpt-4o'))

    def test_non_positive_ttl_stores_nothing(self):
        key = make_key('soru', 'gpt-4o-mini')
        self.cache.put(key, 'yanıt', ttl=0)
        self.cache.put(key, 'yanıt', ttl=-5)
        self.assertIsNone(self.cache.get(key))

    def test_entry_expires_after_ttl(self):
        key = make_key('soru', 'gpt-4o-mini')
        with patch('time.time', return_value=1_000_000.0):
            self.cache.put(key, 'yanıt', ttl=300)
        with patch('time.time', return_value=1_000_299.0):
            self.assertEqual(self.cache.get(key), 'yanıt')
        with patch('time.time', return_value=1_000_301.0):
            self.assertIsNone(self.cache.get(key))

    def test_invalidate(self):
        key = make_key('soru', 'gpt-4o-mini')
        self.cache.put(key, 'yanıt', ttl=60)
        self.cache.invalidate(key)
        self.assertIsNone(self.cache.get(key))

    def test_default_backend_is_configured_alias(self):
        cache = ResponseCache()
        cache.clear()
        cache.store('soru', 'gpt-4o-mini', 'yanıt', ttl=60)
        self.assertEqual(ResponseCache().lookup('soru', 'gpt-4o-mini'), 'yanıt')
        cache.clear()
