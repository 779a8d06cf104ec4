"""
Abstract interface for Large Language Model (LLM) services.

Defines the standard interface that all LLM providers must implement
for consistent interaction patterns across different language model services.
"""

from abc import ABC, abstractmethod
from typing import Any


class LLMInterface(ABC):
    """
    Abstract Base Class for Large Language Model services.
    Defines a common interface for interacting with different LLM providers.
    """

    @abstractmethod
    async def generate_chat_completion(
        self,
        messages: list[dict[str, str]],
        temperature: float = 0.0,
        max_tokens: int | None = None,
        **kwargs: Any,
    ) -> dict[str, Any]:
        """
        Generates a chat completion based on a list of messages.

        Returns the provider response as a plain dict with OpenAI's
        ``choices[0].message.content`` layout.
        """

    async def close(self):
        """
        Optional method to close any underlying connections or clients.
        Providers that don't need explicit closing can have an empty implementation.
        """
        return
