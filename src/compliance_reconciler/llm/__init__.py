from .openai_client import CompletionClient, OpenAICompletionClient, classify_error

__all__ = ["CompletionClient", "OpenAICompletionClient", "classify_error"]
