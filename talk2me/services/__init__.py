"""Services layer for Talk2Me application logic."""

from .conversation_service import ConversationService

__all__ = [
    "ConversationService",
]
