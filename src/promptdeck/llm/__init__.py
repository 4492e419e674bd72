from .client import AIClientError, OpenAIClient, create_ai_client

__all__ = ["AIClientError", "OpenAIClient", "create_ai_client"]
