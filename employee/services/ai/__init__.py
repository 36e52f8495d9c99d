from .base_provider import BaseProvider
from .openai_provider import OpenAIProvider
from .schemas import AIResponse, ProviderResponse, ToolCallRequest, ToolCallResult

__all__ = ['AIResponse', 'BaseProvider', 'OpenAIProvider', 'ProviderResponse', 'ToolCallRequest', 'ToolCallResult']
