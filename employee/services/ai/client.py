"""
OpenAI client factory.

Configuration is read from Django settings, which in turn read the
environment:

    OPENAI_API_KEY       – API key                     (required)
    OPENAI_ORGANIZATION  – organization id             (optional)
    OPENAI_TIMEOUT       – request timeout in seconds  (default: 30)
    OPENAI_MAX_RETRIES   – retries for idempotent calls (default: 2)

No network I/O is performed at import time.
"""

import logging

import openai
from django.conf import settings

from employee.services.base import ServiceNotConfigured

logger = logging.getLogger(__name__)


def _load_config() -> dict:
    """Read and validate the OpenAI configuration."""
    api_key = (getattr(settings, 'OPENAI_API_KEY', '') or '').strip()
    if not api_key:
        raise ServiceNotConfigured('OPENAI_API_KEY is not set.')

    try:
        timeout = float(getattr(settings, 'OPENAI_TIMEOUT', 30))
        max_retries = int(getattr(settings, 'OPENAI_MAX_RETRIES', 2))
    except (TypeError, ValueError) as exc:
        raise ServiceNotConfigured(f'Invalid OpenAI timeout/retry setting: {exc}') from exc

    return {
        'api_key': api_key,
        'organization': (getattr(settings, 'OPENAI_ORGANIZATION', '') or '').strip() or None,
        'timeout': timeout,
        'max_retries': max_retries,
    }


def get_client() -> openai.OpenAI:
    """Return a configured :class:`openai.OpenAI` client.

    Raises:
        ServiceNotConfigured: If the API key or numeric settings are missing/invalid.
    """
    config = _load_config()
    logger.debug(
        'Creating OpenAI client (timeout=%ss, max_retries=%d)',
        config['timeout'], config['max_retries'],
    )
    return openai.OpenAI(**config)


def is_available() -> bool:
    """Return ``True`` if an OpenAI client can be configured."""
    try:
        _load_config()
        return True
    except ServiceNotConfigured:
        return False
