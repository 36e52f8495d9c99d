from .calendar import (
    CALENDAR_CAPABILITY,
    CHECK_AVAILABILITY,
    CREATE_EVENT,
    CalendarBackend,
    CalendarEvent,
    CheckAvailabilityHandler,
    CreateCalendarEventHandler,
    InMemoryCalendar,
    calendar_handlers,
)
from .orchestrator import ConversationResult, State, ToolOrchestrator, detect_language, fallback_message
from .registry import ToolHandler, ToolOutcome, ToolRegistry
from .web_search import (
    WEB_SEARCH,
    WEB_SEARCH_CAPABILITY,
    SearchBackend,
    SearchHit,
    SearchResult,
    WebSearchHandler,
    sanitize_result,
)

__all__ = [
    'CALENDAR_CAPABILITY',
    'CHECK_AVAILABILITY',
    'CREATE_EVENT',
    'CalendarBackend',
    'CalendarEvent',
    'CheckAvailabilityHandler',
    'ConversationResult',
    'CreateCalendarEventHandler',
    'InMemoryCalendar',
    'SearchBackend',
    'SearchHit',
    'SearchResult',
    'State',
    'ToolHandler',
    'ToolOrchestrator',
    'ToolOutcome',
    'ToolRegistry',
    'WEB_SEARCH',
    'WEB_SEARCH_CAPABILITY',
    'WebSearchHandler',
    'calendar_handlers',
    'detect_language',
    'fallback_message',
    'sanitize_result',
]
