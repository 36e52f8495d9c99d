"""Tool handler contract and the per-conversation dispatch registry."""

import abc
import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional

from employee.services.playbook.models import AgentProfile

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolOutcome:
    """What a handler reports back: success flag, human-readable message, payload."""

    success: bool
    message: str
    payload: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def coerce(cls, value: Any) -> 'ToolOutcome':
        """Accept a ToolOutcome or a ``{success, message, payload}`` mapping.

        Raises:
            TypeError: For any other return value.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, Mapping):
            payload = value.get('payload') or {}
            if not isinstance(payload, Mapping):
                raise TypeError(f"Tool payload must be a mapping, got {type(payload).__name__}")
            return cls(bool(value.get('success')), str(value.get('message') or ''), dict(payload))
        raise TypeError(f"Tool handlers must return ToolOutcome, got {type(value).__name__}")


class ToolHandler(abc.ABC):
    """A named side-effecting capability the model may invoke.

    Subclasses declare the function schema the model sees and the profile
    flag (``capability``) that must be enabled for the tool to be offered.
    """

    name: str = ''
    capability: str = ''
    description: str = ''
    parameters: dict[str, Any] = {'type': 'object', 'properties': {}, 'required': []}

    @abc.abstractmethod
    def execute(self, arguments: dict[str, Any]) -> ToolOutcome:
        """Run the side effect.

        Raises:
            ToolExecutionFailed: (or any exception) when the action fails; the
                orchestrator turns it into a failed tool result.
        """

    def schema(self) -> dict[str, Any]:
        return {
            'type': 'function',
            'function': {
                'name': self.name,
                'description': self.description,
                'parameters': self.parameters,
            },
        }


class ToolRegistry:
    """Maps tool names to handlers for one conversation."""

    def __init__(self, handlers: Optional[Iterable[ToolHandler]] = None) -> None:
        self._handlers: dict[str, ToolHandler] = {}
        for handler in handlers or ():
            self.register(handler)

    def register(self, handler: ToolHandler) -> None:
        if not handler.name:
            raise ValueError(f'{type(handler).__name__} has no tool name')
        if handler.name in self._handlers:
            logger.warning("Replacing handler for tool '%s'", handler.name)
        self._handlers[handler.name] = handler

    def get(self, name: str) -> Optional[ToolHandler]:
        return self._handlers.get(name)

    def __contains__(self, name: str) -> bool:
        return name in self._handlers

    def __len__(self) -> int:
        return len(self._handlers)

    def enabled_for(self, profile: AgentProfile) -> 'ToolRegistry':
        """Return a registry holding only the handlers *profile* has switched on."""
        return ToolRegistry(
            handler for handler in self._handlers.values()
            if not handler.capability or profile.tool_enabled(handler.capability)
        )

    def schemas(self) -> list[dict[str, Any]]:
        return [handler.schema() for handler in self._handlers.values()]
