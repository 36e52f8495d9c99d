"""
Web search tool for agents with the ``web_search`` capability.

The handler validates the query, caps the result count and trims what the
backend returns before it reaches the model. The search engine itself (for
example a Google Custom Search connector) is a :class:`SearchBackend`
supplied by the caller.
"""

import abc
import logging
from dataclasses import dataclass
from typing import Any

from django.conf import settings

from employee.services.base import ToolExecutionFailed

from .registry import ToolHandler, ToolOutcome

logger = logging.getLogger(__name__)

WEB_SEARCH = 'web_search'
WEB_SEARCH_CAPABILITY = 'web_search'

MIN_QUERY_LENGTH = 2
MAX_QUERY_LENGTH = 500
MAX_SOURCES = 5
MAX_TITLE_LENGTH = 200
MAX_SNIPPET_LENGTH = 300
MAX_SUMMARY_LENGTH = 2000


@dataclass(frozen=True)
class SearchHit:
    title: str
    url: str
    snippet: str = ''


@dataclass(frozen=True)
class SearchResult:
    summary: str
    sources: tuple[SearchHit, ...] = ()


class SearchBackend(abc.ABC):
    """Runs a web search. Implementations may raise any exception on failure."""

    @abc.abstractmethod
    def search(self, query: str, max_results: int, language: str) -> SearchResult:
        """Return up to *max_results* sources for *query*."""


def sanitize_result(result: SearchResult) -> SearchResult:
    """Drop sources without a url or title and bound every text field."""
    sources = tuple(
        SearchHit(
            title=hit.title[:MAX_TITLE_LENGTH],
            url=hit.url,
            snippet=(hit.snippet or '')[:MAX_SNIPPET_LENGTH],
        )
        for hit in result.sources
        if hit.url and hit.title
    )[:MAX_SOURCES]
    return SearchResult(summary=(result.summary or '')[:MAX_SUMMARY_LENGTH], sources=sources)


class WebSearchHandler(ToolHandler):
    name = WEB_SEARCH
    capability = WEB_SEARCH_CAPABILITY
    description = (
        'Search the web for current information, news, prices, or general knowledge. '
        'Use when you need up-to-date information that you might not know.'
    )
    parameters = {
        'type': 'object',
        'properties': {
            'query': {'type': 'string', 'description': 'Search query in Turkish or English'},
            'maxResults': {'type': 'number', 'description': 'Maximum results to return (1-10, default 3)'},
            'language': {'type': 'string', 'description': 'Search language code (tr, en, default tr)'},
        },
        'required': ['query'],
    }

    def __init__(self, backend: SearchBackend, default_language: str = 'tr') -> None:
        self._backend = backend
        self._default_language = default_language

    def execute(self, arguments: dict[str, Any]) -> ToolOutcome:
        query = str(arguments.get('query') or '').strip()
        if len(query) < MIN_QUERY_LENGTH:
            raise ToolExecutionFailed('Arama sorgusu en az 2 karakter olmalı.')
        if len(query) > MAX_QUERY_LENGTH:
            raise ToolExecutionFailed('Arama sorgusu 500 karakterden kısa olmalı.')

        language = str(arguments.get('language') or self._default_language).lower()
        max_results = self._max_results(arguments.get('maxResults', arguments.get('max_results')))

        try:
            result = sanitize_result(self._backend.search(query, max_results, language))
        except Exception as exc:
            logger.warning("Web search failed for '%s': %s", query, exc)
            if language == 'tr':
                message = (
                    f'"{query}" hakkında arama yapıldı ancak şu anda web sonuçları alınamadı. '
                    'Bilgilerimi kullanarak size yardımcı olmaya devam edebilirim.'
                )
            else:
                message = (
                    f'Search was performed for "{query}" but web results could not be retrieved '
                    'at the moment. I can continue to help you using my existing knowledge.'
                )
            raise ToolExecutionFailed(message, {'query': query}) from exc

        logger.info("Web search for '%s' returned %d source(s)", query, len(result.sources))
        return ToolOutcome(
            success=True,
            message=result.summary,
            payload={
                'query': query,
                'sources': [
                    {'title': hit.title, 'url': hit.url, 'snippet': hit.snippet} for hit in result.sources
                ],
            },
        )

    @staticmethod
    def _max_results(value: Any) -> int:
        limit = int(getattr(settings, 'WEB_SEARCH_MAX_RESULTS', 3))
        try:
            requested = int(value)
        except (TypeError, ValueError):
            requested = limit
        return max(1, min(requested, limit))
