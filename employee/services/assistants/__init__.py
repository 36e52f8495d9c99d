from .content_filter import contains_banned, denylist_document, load_denylist
from .lifecycle import AssistantLifecycleManager

__all__ = ['AssistantLifecycleManager', 'contains_banned', 'denylist_document', 'load_denylist']
