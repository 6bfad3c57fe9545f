from __future__ import annotations

from abc import ABC, abstractmethod


class LLMProvider(ABC):
    @abstractmethod
    async def generate(
        self,
        prompt: str,
        temperature: float = 0.7,
        system: str | None = None,
        schema: dict | None = None,
    ) -> str:
        """Return the raw completion text.

        *schema* is a JSON Schema the response should follow; providers that
        support structured output pass it on, the rest rely on the prompt.
        """
        ...

    @abstractmethod
    def name(self) -> str:
        ...
