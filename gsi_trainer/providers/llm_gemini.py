from __future__ import annotations

import logging
import os
import time

from gsi_trainer.providers.base import LLMProvider

log = logging.getLogger("gsi_trainer.llm")


class GeminiProvider(LLMProvider):
    def __init__(self, model: str = "gemini-2.5-pro", max_tokens: int = 30000):
        self.model = model
        self.max_tokens = max_tokens
        self._client = None

    @property
    def client(self):
        # Created on first use so the server can start before GEMINI_API_KEY is set.
        if self._client is None:
            from google import genai
            self._client = genai.Client(api_key=os.environ.get("GEMINI_API_KEY"))
        return self._client

    async def generate(
        self,
        prompt: str,
        temperature: float = 0.7,
        system: str | None = None,
        schema: dict | None = None,
    ) -> str:
        config: dict = {
            "temperature": temperature,
            "max_output_tokens": self.max_tokens,
        }
        if system:
            config["system_instruction"] = system
        if schema is not None:
            config["response_mime_type"] = "application/json"
            config["response_schema"] = schema

        t0 = time.monotonic()
        response = await self.client.aio.models.generate_content(
            model=self.model,
            contents=prompt,
            config=config,
        )
        text = response.text or ""
        log.info("── RESPONSE (%s, %.1fs, %d chars) ──",
                 self.model, time.monotonic() - t0, len(text))
        return text

    def name(self) -> str:
        return f"gemini/{self.model}"
