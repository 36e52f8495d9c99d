"""
Conventional calendar tools: availability check and event creation.

Both handlers delegate to a :class:`CalendarBackend`; the real backend (for
example a Google Calendar connector with its OAuth flow) lives outside this
package. :class:`InMemoryCalendar` is a complete reference backend used for
local development and tests.
"""

import abc
import logging
import threading
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, tzinfo
from typing import Any, Optional

from employee.services.base import ToolExecutionFailed

from .registry import ToolHandler, ToolOutcome

logger = logging.getLogger(__name__)

CHECK_AVAILABILITY = 'check_calendar_availability'
CREATE_EVENT = 'create_calendar_event'
CALENDAR_CAPABILITY = 'calendar_booking'

DEFAULT_EVENT_TITLE = 'Randevu'
DEFAULT_DURATION = timedelta(minutes=60)


def parse_timestamp(value: Any, tz: tzinfo) -> datetime:
    """Parse an ISO-8601 timestamp; naive values are interpreted in *tz*.

    Raises:
        ToolExecutionFailed: If *value* is missing or not ISO-8601.
    """
    if not value:
        raise ToolExecutionFailed('Tarih/saat bilgisi eksik.')
    try:
        parsed = datetime.fromisoformat(str(value).strip())
    except ValueError as exc:
        raise ToolExecutionFailed(f'Geçersiz tarih/saat: {value}') from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tz)
    return parsed.astimezone(tz)


@dataclass(frozen=True)
class CalendarEvent:
    id: str
    title: str
    start: datetime
    end: datetime
    description: str = ''
    attendee: str = ''
    link: str = ''

    def as_dict(self) -> dict[str, Any]:
        return {
            'id': self.id,
            'title': self.title,
            'start': self.start.isoformat(),
            'end': self.end.isoformat(),
        }


class CalendarBackend(abc.ABC):
    """Storage the calendar tools book against."""

    @abc.abstractmethod
    def find_conflicts(self, start: datetime, end: datetime) -> list[CalendarEvent]:
        """Return events overlapping ``[start, end)``."""

    @abc.abstractmethod
    def create_event(
        self,
        *,
        title: str,
        start: datetime,
        end: datetime,
        description: str = '',
        attendee: str = '',
    ) -> CalendarEvent:
        """Persist a new event and return it with its id and link."""


class InMemoryCalendar(CalendarBackend):
    """Thread-safe calendar kept in process memory."""

    def __init__(self, link_base: str = 'https://calendar.local/event/') -> None:
        self._events: list[CalendarEvent] = []
        self._lock = threading.Lock()
        self._link_base = link_base

    @property
    def events(self) -> list[CalendarEvent]:
        with self._lock:
            return list(self._events)

    def find_conflicts(self, start: datetime, end: datetime) -> list[CalendarEvent]:
        with self._lock:
            return [event for event in self._events if event.start < end and start < event.end]

    def create_event(self, *, title, start, end, description='', attendee=''):
        event_id = uuid.uuid4().hex
        event = CalendarEvent(
            id=event_id,
            title=title,
            start=start,
            end=end,
            description=description,
            attendee=attendee,
            link=f'{self._link_base}{event_id}',
        )
        with self._lock:
            self._events.append(event)
        return event


class CheckAvailabilityHandler(ToolHandler):
    name = CHECK_AVAILABILITY
    capability = CALENDAR_CAPABILITY
    description = 'Check whether the business calendar is free between two timestamps.'
    parameters = {
        'type': 'object',
        'properties': {
            'start': {'type': 'string', 'description': 'Start in ISO8601, business local time if no offset'},
            'end': {'type': 'string', 'description': 'End in ISO8601, business local time if no offset'},
        },
        'required': ['start', 'end'],
    }

    def __init__(self, backend: CalendarBackend, tz: tzinfo) -> None:
        self._backend = backend
        self._tz = tz

    def execute(self, arguments: dict[str, Any]) -> ToolOutcome:
        start = parse_timestamp(arguments.get('start'), self._tz)
        end = parse_timestamp(arguments.get('end'), self._tz)
        if end <= start:
            raise ToolExecutionFailed('Bitiş zamanı başlangıçtan sonra olmalı.')

        conflicts = self._backend.find_conflicts(start, end)
        available = not conflicts
        return ToolOutcome(
            success=True,
            message='Bu zaman aralığı müsait.' if available else 'Bu zaman aralığında başka randevu var.',
            payload={'available': available, 'conflicts': [event.as_dict() for event in conflicts]},
        )


class CreateCalendarEventHandler(ToolHandler):
    name = CREATE_EVENT
    capability = CALENDAR_CAPABILITY
    description = (
        'Create an appointment in the business calendar. Always confirm date, time and '
        'contact details with the customer before calling this tool.'
    )
    parameters = {
        'type': 'object',
        'properties': {
            'title': {'type': 'string', 'description': 'Event title'},
            'start': {'type': 'string', 'description': 'Event start in ISO8601'},
            'end': {'type': 'string', 'description': 'Event end in ISO8601 (optional, defaults to one hour)'},
            'description': {'type': 'string', 'description': 'Event description (optional)'},
            'attendee': {'type': 'string', 'description': 'Customer e-mail or phone (optional)'},
        },
        'required': ['start'],
    }

    def __init__(
        self,
        backend: CalendarBackend,
        tz: tzinfo,
        default_duration: timedelta = DEFAULT_DURATION,
    ) -> None:
        self._backend = backend
        self._tz = tz
        self._default_duration = default_duration

    def execute(self, arguments: dict[str, Any]) -> ToolOutcome:
        start = parse_timestamp(arguments.get('start'), self._tz)
        end: Optional[datetime] = None
        if arguments.get('end'):
            end = parse_timestamp(arguments['end'], self._tz)
        end = end or start + self._default_duration
        if end <= start:
            raise ToolExecutionFailed('Bitiş zamanı başlangıçtan sonra olmalı.')

        conflicts = self._backend.find_conflicts(start, end)
        if conflicts:
            return ToolOutcome(
                success=False,
                message='Seçilen saatte başka bir randevu bulunuyor.',
                payload={'conflicts': [event.as_dict() for event in conflicts]},
            )

        event = self._backend.create_event(
            title=str(arguments.get('title') or DEFAULT_EVENT_TITLE),
            start=start,
            end=end,
            description=str(arguments.get('description') or ''),
            attendee=str(arguments.get('attendee') or ''),
        )
        logger.info('Calendar event %s created for %s', event.id, start.isoformat())
        return ToolOutcome(
            success=True,
            message='Randevunuz başarıyla oluşturuldu!',
            payload={'event_id': event.id, 'link': event.link, **event.as_dict()},
        )


def calendar_handlers(backend: CalendarBackend, tz: tzinfo) -> list[ToolHandler]:
    """Return both calendar tools bound to *backend* and the business timezone."""
    return [CheckAvailabilityHandler(backend, tz), CreateCalendarEventHandler(backend, tz)]
