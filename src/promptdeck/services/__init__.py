from .greeting_service import build_greeting_messages, get_greeting

__all__ = ["build_greeting_messages", "get_greeting"]
