"""External service integrations."""

from .openai_client import OpenAIClassifier

__all__ = ['OpenAIClassifier']
