from .context import ConversationContext

__all__ = ["ConversationContext"]
