"""Data models for agent profiles."""

import re
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional
from zoneinfo import ZoneInfo

DEFAULT_MODEL = 'gpt-4o-mini'
DEFAULT_TIMEZONE = 'Europe/Istanbul'
DEFAULT_LANGUAGE = 'tr'
DEFAULT_TEMPERATURE = 0.8

WEEKDAYS = ('monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday', 'sunday')

_CAMEL_BOUNDARY = re.compile(r'(?<=[a-z0-9])(?=[A-Z])')


def to_snake_case(key: str) -> str:
    """Return ``calendarBooking`` as ``calendar_booking``; snake_case passes through."""
    return _CAMEL_BOUNDARY.sub('_', key).lower()


def normalize_flags(flags: Optional[Mapping[str, Any]]) -> dict[str, bool]:
    """Migrate a tool/integration flag map to canonical snake_case keys.

    Legacy camelCase keys (``webSearch``) and canonical keys (``web_search``)
    may both be present in old records; an explicit ``True`` wins.
    """
    normalized: dict[str, bool] = {}
    for key, value in (flags or {}).items():
        canonical = to_snake_case(str(key))
        normalized[canonical] = normalized.get(canonical, False) or value is True
    return dict(sorted(normalized.items()))


def clamp_temperature(value: Any, default: float = DEFAULT_TEMPERATURE) -> float:
    try:
        temperature = float(value)
    except (TypeError, ValueError):
        return default
    return min(max(temperature, 0.0), 2.0)


@dataclass(frozen=True)
class WorkingDay:
    """Opening hours for one weekday."""

    open: str = ''
    close: str = ''
    closed: bool = False

    @classmethod
    def from_value(cls, value: Any) -> 'WorkingDay':
        if not isinstance(value, Mapping):
            return cls(closed=True)
        return cls(
            open=str(value.get('open') or ''),
            close=str(value.get('close') or ''),
            closed=bool(value.get('closed', False)),
        )


@dataclass(frozen=True)
class FaqEntry:
    """A question/answer pair. Free-text FAQs are stored with an empty question."""

    question: str
    answer: str


@dataclass(frozen=True)
class Personality:
    """Conversational style of the digital employee."""

    tone: str = ''
    formality: str = ''
    verbosity: str = ''
    greeting_style: str = ''
    temperature: float = DEFAULT_TEMPERATURE
    custom_instructions: str = ''


@dataclass(frozen=True)
class AgentProfile:
    """Read-only snapshot of a business's agent configuration.

    Owned by the caller; the engine only ever reads it.
    """

    name: str
    role: str = ''
    profile_id: str = ''
    business_name: str = ''
    sector: str = ''
    location: str = ''
    address: str = ''
    website: str = ''
    service_type: str = ''
    task_description: str = ''
    products: tuple[str, ...] = ()
    faq: tuple[FaqEntry, ...] = ()
    weekly_hours: Mapping[str, WorkingDay] = field(default_factory=dict)
    holidays: str = ''
    social_media: Mapping[str, str] = field(default_factory=dict)
    personality: Personality = field(default_factory=Personality)
    tools: Mapping[str, bool] = field(default_factory=dict)
    integrations: Mapping[str, bool] = field(default_factory=dict)
    temperature: float = DEFAULT_TEMPERATURE
    model: str = DEFAULT_MODEL
    language: str = DEFAULT_LANGUAGE
    timezone: str = DEFAULT_TIMEZONE

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    @property
    def display_name(self) -> str:
        return self.business_name or self.name

    def tool_enabled(self, flag: str) -> bool:
        return bool(self.tools.get(to_snake_case(flag)))

    def enabled_tools(self) -> list[str]:
        return [key for key, enabled in self.tools.items() if enabled]

    def enabled_integrations(self) -> list[str]:
        return [key for key, enabled in self.integrations.items() if enabled]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], profile_id: str = '') -> 'AgentProfile':
        """Build a profile from wizard-style data (camelCase or snake_case keys)."""
        from django.conf import settings  # local import keeps the model usable without Django setup

        personality_data = _pick(data, 'personality') or {}
        if not isinstance(personality_data, Mapping):
            personality_data = {'custom_instructions': str(personality_data)}

        top_level_temperature = _pick(data, 'temperature')
        personality_temperature = clamp_temperature(
            _pick(personality_data, 'temperature'), clamp_temperature(top_level_temperature)
        )
        # The wizard stores creativity under personality; a top-level value wins.
        temperature = clamp_temperature(top_level_temperature, personality_temperature)
        personality = Personality(
            tone=_text(_pick(personality_data, 'tone') or _pick(data, 'tone', 'tone_of_voice')),
            formality=_text(_pick(personality_data, 'formality') or _pick(data, 'formality')),
            verbosity=_text(
                _pick(personality_data, 'verbosity', 'response_length')
                or _pick(data, 'verbosity', 'response_length')
            ),
            greeting_style=_text(
                _pick(personality_data, 'greeting_style') or _pick(data, 'greeting_style')
            ),
            temperature=personality_temperature,
            custom_instructions=_text(
                _pick(personality_data, 'custom_instructions', 'instructions')
                or _pick(data, 'special_instructions', 'custom_instructions')
            ),
        )

        hours = _pick(data, 'weekly_hours', 'working_hours') or {}
        weekly_hours = {day: WorkingDay.from_value(hours.get(day)) for day in WEEKDAYS} if hours else {}

        social = _pick(data, 'social_media') or {}
        social_media = {str(k): str(v) for k, v in sorted(social.items()) if v}

        return cls(
            name=_text(_pick(data, 'name', 'agent_name', 'business_name')),
            role=_text(_pick(data, 'role')),
            profile_id=profile_id or _text(_pick(data, 'id', 'profile_id')),
            business_name=_text(_pick(data, 'business_name')),
            sector=_text(_pick(data, 'sector')),
            location=_text(_pick(data, 'location')),
            address=_text(_pick(data, 'address')),
            website=_text(_pick(data, 'website')),
            service_type=_text(_pick(data, 'service_type')),
            task_description=_text(_pick(data, 'task_description')),
            products=_products(_pick(data, 'products')),
            faq=_faq(_pick(data, 'faq')),
            weekly_hours=weekly_hours,
            holidays=_text(_pick(data, 'holidays')),
            social_media=social_media,
            personality=personality,
            tools=normalize_flags(_pick(data, 'tools')),
            integrations=normalize_flags(_pick(data, 'integrations')),
            temperature=temperature,
            model=_text(_pick(data, 'model')) or getattr(settings, 'AI_DEFAULT_MODEL', DEFAULT_MODEL),
            language=(_text(_pick(data, 'language', 'preferred_language')) or DEFAULT_LANGUAGE).lower(),
            timezone=_text(_pick(data, 'timezone')) or getattr(settings, 'TIME_ZONE', DEFAULT_TIMEZONE),
        )


def _pick(data: Mapping[str, Any], *keys: str) -> Any:
    """Return the first non-empty value among *keys*, matching snake or camel case."""
    by_snake = {to_snake_case(str(k)): v for k, v in data.items()}
    for key in keys:
        value = by_snake.get(key)
        if value not in (None, ''):
            return value
    return None


def _text(value: Any) -> str:
    return str(value).strip() if value is not None else ''


def _products(value: Any) -> tuple[str, ...]:
    if not value:
        return ()
    if isinstance(value, str):
        return (value.strip(),)
    return tuple(str(item).strip() for item in value if str(item).strip())


def _faq(value: Any) -> tuple[FaqEntry, ...]:
    if not value:
        return ()
    if isinstance(value, str):
        return (FaqEntry(question='', answer=value.strip()),)
    entries = []
    for item in value:
        if isinstance(item, Mapping):
            entries.append(FaqEntry(
                question=_text(item.get('question') or item.get('q')),
                answer=_text(item.get('answer') or item.get('a')),
            ))
        elif str(item).strip():
            entries.append(FaqEntry(question='', answer=str(item).strip()))
    return tuple(entries)
