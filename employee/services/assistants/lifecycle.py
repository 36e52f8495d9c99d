"""Create, update and delete the remote assistant that backs an agent."""

import logging
import threading
from typing import Callable, Iterable, Optional

from employee.services.ai.base_provider import BaseProvider
from employee.services.base import InappropriateContent, ResourceNotFound
from employee.services.playbook.compiler import compile_all, replace_section
from employee.services.playbook.models import AgentProfile
from employee.services.tools.registry import ToolHandler, ToolRegistry

from .content_filter import DENYLIST_FILENAME, contains_banned, denylist_document

logger = logging.getLogger(__name__)

FILE_SEARCH_TOOL = {'type': 'file_search'}

ToolFactory = Callable[[AgentProfile], Iterable[ToolHandler]]


class AssistantLifecycleManager:
    """Keeps a remote assistant's instructions in sync with an :class:`AgentProfile`.

    The content-filter vector store is provisioned lazily on the first
    :meth:`create` and reused for every assistant this manager creates.
    """

    def __init__(
        self,
        provider: BaseProvider,
        *,
        tool_factory: Optional[ToolFactory] = None,
    ) -> None:
        self.provider = provider
        self.tool_factory = tool_factory
        self._vector_store_id: Optional[str] = None
        self._lock = threading.Lock()

    @property
    def vector_store_id(self) -> Optional[str]:
        return self._vector_store_id

    def create(self, profile: AgentProfile) -> str:
        """Compile *profile* and create a remote assistant for it.

        Raises:
            InappropriateContent: If the agent's display name is on the denylist.
            ProviderError: If the provider refuses or cannot be reached.
        """
        if contains_banned(profile.name) or contains_banned(profile.business_name):
            raise InappropriateContent('İsim uygunsuz kelimeler içeriyor. Lütfen daha uygun bir isim seçin.')

        vector_store_id = self._ensure_vector_store()
        tools = [FILE_SEARCH_TOOL] + self._function_tools(profile)

        document = compile_all(profile)
        assistant_id = self.provider.create_assistant(
            name=profile.display_name,
            instructions=document.text,
            model_id=profile.model,
            temperature=profile.temperature,
            tools=tools,
            vector_store_ids=[vector_store_id],
        )
        logger.info(f"Assistant {assistant_id} created for profile '{profile.profile_id or profile.name}'")
        return assistant_id

    def update_section(
        self,
        assistant_id: str,
        section_name: str,
        profile: AgentProfile,
        current_instructions: str,
    ) -> bool:
        """Rebuild one section and push the instructions if they changed.

        Raises:
            UnknownSection: If *section_name* is not a known section.
        """
        updated = replace_section(current_instructions, section_name, profile).text
        if updated == current_instructions:
            logger.debug(f"Section '{section_name}' unchanged for assistant {assistant_id}; skipping update")
            return True

        self.provider.update_assistant(assistant_id, instructions=updated)
        return True

    def update(self, assistant_id: str, profile: AgentProfile) -> bool:
        """Recompile every section and push instructions, model and temperature."""
        self.provider.update_assistant(
            assistant_id,
            instructions=compile_all(profile).text,
            model=profile.model,
            temperature=profile.temperature,
        )
        return True

    def delete(self, assistant_id: str) -> bool:
        """Delete the remote assistant; an already missing assistant counts as deleted."""
        try:
            self.provider.delete_assistant(assistant_id)
        except ResourceNotFound:
            logger.info(f'Assistant {assistant_id} already deleted')
        return True

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _function_tools(self, profile: AgentProfile) -> list[dict]:
        if self.tool_factory is None:
            return []
        return ToolRegistry(self.tool_factory(profile)).enabled_for(profile).schemas()

    def _ensure_vector_store(self) -> str:
        with self._lock:
            if self._vector_store_id is None:
                self._vector_store_id = self.provider.create_vector_store(
                    name='content-filter',
                    filename=DENYLIST_FILENAME,
                    content=denylist_document(),
                )
            return self._vector_store_id
