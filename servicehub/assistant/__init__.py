from .chat import ChatAssistant, ChatAssistantError

__all__ = ["ChatAssistant", "ChatAssistantError"]
