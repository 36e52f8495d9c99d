"""
Content-addressed cache for generated text.

Keys are SHA-256 digests over the canonicalized prompt and the model id, so
the same prompt sent to two models never shares an entry. Storage is a Django
cache backend (``CACHES['ai_responses']``, ``LocMemCache`` by default), which
is safe for concurrent use, expires entries lazily on read and bounds memory
through ``MAX_ENTRIES`` culling.
"""

import hashlib
import logging
import unicodedata
from typing import Optional

from django.core.cache import BaseCache, caches

logger = logging.getLogger(__name__)

KEY_PREFIX = 'airesp'


def canonicalize_prompt(prompt: str) -> str:
    """Normalize *prompt* so cosmetic differences do not defeat the cache."""
    text = unicodedata.normalize('NFC', prompt).replace('\r\n', '\n').replace('\r', '\n')
    return '\n'.join(line.rstrip() for line in text.split('\n')).strip()


def make_key(prompt: str, model_id: str) -> str:
    """Return the stable cache key for ``(prompt, model_id)``."""
    digest = hashlib.sha256()
    digest.update(model_id.encode('utf-8'))
    digest.update(b'\x00')
    digest.update(canonicalize_prompt(prompt).encode('utf-8'))
    return f'{KEY_PREFIX}:{digest.hexdigest()}'


class ResponseCache:
    """
    TTL cache mapping ``hash(prompt, model)`` to generated text.

    Usage::

        cache = ResponseCache()
        key = make_key(prompt, 'gpt-4o-mini')
        text = cache.get(key)
        if text is None:
            text = call_provider(...)
            cache.put(key, text, ttl=300)
    """

    def __init__(self, backend: Optional[BaseCache] = None, alias: str = 'ai_responses') -> None:
        """
        Args:
            backend: Optional pre-built Django cache (useful for testing).
                     If not provided, ``caches[alias]`` is used.
            alias: Name of the ``CACHES`` entry to use.
        """
        self._backend = backend if backend is not None else caches[alias]

    def get(self, key: str) -> Optional[str]:
        """Return the cached text or ``None`` on a miss or an expired entry."""
        value = self._backend.get(key)
        if value is None:
            logger.debug('Response cache miss: %s', key)
            return None
        logger.debug('Response cache hit: %s', key)
        return value

    def put(self, key: str, text: str, ttl: int) -> None:
        """Store *text* for *ttl* seconds. Non-positive TTLs store nothing."""
        if ttl <= 0:
            return
        self._backend.set(key, text, timeout=ttl)

    def lookup(self, prompt: str, model_id: str) -> Optional[str]:
        return self.get(make_key(prompt, model_id))

    def store(self, prompt: str, model_id: str, text: str, ttl: int) -> None:
        self.put(make_key(prompt, model_id), text, ttl)

    def invalidate(self, key: str) -> None:
        self._backend.delete(key)

    def clear(self) -> None:
        """Drop every entry of the underlying backend. Intended for tests and maintenance."""
        self._backend.clear()
