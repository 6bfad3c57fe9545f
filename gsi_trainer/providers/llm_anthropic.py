from __future__ import annotations

import logging
import os
import time

from gsi_trainer.providers.base import LLMProvider

log = logging.getLogger("gsi_trainer.llm")


class AnthropicProvider(LLMProvider):
    def __init__(self, model: str = "claude-sonnet-4-20250514", max_tokens: int = 30000):
        import anthropic
        self.client = anthropic.AsyncAnthropic(
            api_key=os.environ.get("ANTHROPIC_API_KEY", ""),
        )
        self.model = model
        self.max_tokens = max_tokens

    async def generate(
        self,
        prompt: str,
        temperature: float = 0.7,
        system: str | None = None,
        schema: dict | None = None,
    ) -> str:
        kwargs = {}
        if system:
            kwargs["system"] = system
        t0 = time.monotonic()
        # The SDK refuses non-streaming requests with a max_tokens this large.
        async with self.client.messages.stream(
            model=self.model,
            max_tokens=self.max_tokens,
            temperature=temperature,
            messages=[{"role": "user", "content": prompt}],
            **kwargs,
        ) as stream:
            message = await stream.get_final_message()
        text = "".join(block.text for block in message.content if block.type == "text")
        log.info("── RESPONSE (%s, %.1fs, %d chars) ──",
                 self.model, time.monotonic() - t0, len(text))
        return text

    def name(self) -> str:
        return f"anthropic/{self.model}"
