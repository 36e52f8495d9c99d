"""Request / response dataclasses for the AI provider layer."""

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass(frozen=True)
class ToolCallRequest:
    """A model-requested invocation of a named tool."""

    id: str
    name: str
    arguments: dict[str, Any]
    raw_arguments: str = ''


@dataclass(frozen=True)
class ToolCallResult:
    """Outcome of one tool invocation, fed back to the model as a ``tool`` message."""

    call_id: str
    name: str
    success: bool
    message: str
    payload: dict[str, Any] = field(default_factory=dict)

    def as_output(self) -> dict[str, Any]:
        return {'success': self.success, 'message': self.message, 'data': self.payload}


@dataclass
class ProviderResponse:
    """Raw response returned by a provider implementation."""

    text: str
    raw: Any
    input_tokens: Optional[int]
    output_tokens: Optional[int]
    tool_calls: list[ToolCallRequest] = field(default_factory=list)

    @property
    def total_tokens(self) -> int:
        return (self.input_tokens or 0) + (self.output_tokens or 0)


@dataclass
class AIResponse:
    """Structured response returned to callers of the engine."""

    text: str
    raw: Any
    input_tokens: Optional[int]
    output_tokens: Optional[int]
    model: str
    cache_hit: bool = False
