from __future__ import annotations

import logging
import time

import httpx

from gsi_trainer.providers.base import LLMProvider

log = logging.getLogger("gsi_trainer.llm")


class OllamaProvider(LLMProvider):
    def __init__(
        self,
        base_url: str = "http://localhost:11434",
        model: str = "qwen3:8b",
        timeout: float = 600.0,
        max_tokens: int = 30000,
    ):
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout
        self.max_tokens = max_tokens

    async def generate(
        self,
        prompt: str,
        temperature: float = 0.7,
        system: str | None = None,
        schema: dict | None = None,
    ) -> str:
        log.info("── PROMPT (%s) ──\n%s", self.model, prompt)
        body: dict = {
            "model": self.model,
            "prompt": prompt,
            "stream": False,
            "think": False,
            "options": {"temperature": temperature, "num_predict": self.max_tokens},
        }
        if system:
            body["system"] = system
        if schema is not None:
            body["format"] = schema

        t0 = time.monotonic()
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            resp = await client.post(f"{self.base_url}/api/generate", json=body)
            resp.raise_for_status()
            data = resp.json()
        elapsed = time.monotonic() - t0
        response = data["response"]
        tokens = data.get("eval_count", "?")
        log.info("── RESPONSE (%.1fs, %s tokens) ──", elapsed, tokens)
        log.debug("%s", response)
        return response

    def name(self) -> str:
        return f"ollama/{self.model}"
