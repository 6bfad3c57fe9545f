from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path

CONFIG_PATH = Path(__file__).resolve().parent.parent / "config.json"

DEFAULTS = {
    "llm_provider": "gemini",
    "llm_model": "gemini-2.5-pro",
    "ollama_url": "http://localhost:11434",
    "llm_temperature": 0.7,
    "llm_timeout": 600.0,
    "max_output_tokens": 30000,
    "default_question_count": 20,
    "question_count_choices": [10, 20, 50, 100],
    "max_question_count": 100,
    "mock_question_count": 100,
    "mock_duration_seconds": 5400,
    "pass_threshold": 50.0,
    "count_mismatch": "accept",  # accept | strict
}

COUNT_MISMATCH_POLICIES = ("accept", "strict")


@dataclass
class Settings:
    llm_provider: str = DEFAULTS["llm_provider"]
    llm_model: str = DEFAULTS["llm_model"]
    ollama_url: str = DEFAULTS["ollama_url"]
    llm_temperature: float = DEFAULTS["llm_temperature"]
    llm_timeout: float = DEFAULTS["llm_timeout"]
    max_output_tokens: int = DEFAULTS["max_output_tokens"]
    default_question_count: int = DEFAULTS["default_question_count"]
    question_count_choices: list[int] = field(
        default_factory=lambda: list(DEFAULTS["question_count_choices"])
    )
    max_question_count: int = DEFAULTS["max_question_count"]
    mock_question_count: int = DEFAULTS["mock_question_count"]
    mock_duration_seconds: int = DEFAULTS["mock_duration_seconds"]
    pass_threshold: float = DEFAULTS["pass_threshold"]
    count_mismatch: str = DEFAULTS["count_mismatch"]

    @property
    def strict_count(self) -> bool:
        return self.count_mismatch == "strict"

    def to_dict(self) -> dict:
        return {
            "llm_provider": self.llm_provider,
            "llm_model": self.llm_model,
            "ollama_url": self.ollama_url,
            "llm_temperature": self.llm_temperature,
            "llm_timeout": self.llm_timeout,
            "max_output_tokens": self.max_output_tokens,
            "default_question_count": self.default_question_count,
            "question_count_choices": self.question_count_choices,
            "max_question_count": self.max_question_count,
            "mock_question_count": self.mock_question_count,
            "mock_duration_seconds": self.mock_duration_seconds,
            "pass_threshold": self.pass_threshold,
            "count_mismatch": self.count_mismatch,
        }


def load_settings() -> Settings:
    if CONFIG_PATH.exists():
        raw = json.loads(CONFIG_PATH.read_text())
        known = {f.name for f in Settings.__dataclass_fields__.values()}
        filtered = {k: v for k, v in raw.items() if k in known}
        return Settings(**filtered)
    return Settings()


def coerce_setting(key: str, value):
    """Return *value* converted to the type of setting *key*.

    Raises ValueError when the value does not fit. Ints are accepted for
    float fields; nothing is parsed out of strings.
    """
    default = DEFAULTS[key]
    if isinstance(value, bool):
        raise ValueError(f"{key} must not be a boolean")
    if isinstance(default, float):
        if isinstance(value, (int, float)):
            return float(value)
    elif isinstance(default, int):
        if isinstance(value, int):
            return value
    elif isinstance(default, list):
        if isinstance(value, list) and all(
            isinstance(v, int) and not isinstance(v, bool) for v in value
        ):
            return list(value)
    elif isinstance(value, str):
        return value
    raise ValueError(f"{key} must be {type(default).__name__}, got {type(value).__name__}")


def save_settings(settings: Settings) -> None:
    CONFIG_PATH.write_text(json.dumps(settings.to_dict(), indent=4) + "\n")
