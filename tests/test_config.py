"""Tests for configuration loading and saving."""
from __future__ import annotations

import json
from unittest.mock import patch

import pytest

from gsi_trainer.config import DEFAULTS, Settings, coerce_setting, load_settings, save_settings


class TestSettings:
    def test_defaults(self):
        s = Settings()
        assert s.llm_provider == "gemini"
        assert s.mock_question_count == 100
        assert s.mock_duration_seconds == 5400
        assert s.pass_threshold == 50.0
        assert s.count_mismatch == "accept"
        assert not s.strict_count

    def test_to_dict(self):
        d = Settings().to_dict()
        assert set(d) == set(DEFAULTS)
        assert d["question_count_choices"] == [10, 20, 50, 100]

    def test_to_dict_roundtrip(self):
        s = Settings(llm_provider="ollama", count_mismatch="strict")
        s2 = Settings(**s.to_dict())
        assert s2.llm_provider == "ollama"
        assert s2.strict_count

    def test_count_choices_not_shared(self):
        a, b = Settings(), Settings()
        a.question_count_choices.append(7)
        assert 7 not in b.question_count_choices


class TestLoadSaveSettings:
    def test_load_from_file(self, tmp_path):
        config_path = tmp_path / "config.json"
        config_path.write_text(json.dumps({"llm_provider": "openai", "default_question_count": 50}))

        with patch("gsi_trainer.config.CONFIG_PATH", config_path):
            s = load_settings()
        assert s.llm_provider == "openai"
        assert s.default_question_count == 50
        assert s.mock_question_count == 100

    def test_load_missing_file(self, tmp_path):
        with patch("gsi_trainer.config.CONFIG_PATH", tmp_path / "nonexistent.json"):
            s = load_settings()
        assert s.llm_provider == "gemini"

    def test_save_creates_file(self, tmp_path):
        config_path = tmp_path / "config.json"
        with patch("gsi_trainer.config.CONFIG_PATH", config_path):
            save_settings(Settings(llm_provider="anthropic"))

        data = json.loads(config_path.read_text())
        assert data["llm_provider"] == "anthropic"

    def test_unknown_keys_ignored(self, tmp_path):
        config_path = tmp_path / "config.json"
        config_path.write_text(json.dumps({"llm_provider": "ollama", "unknown_key": "value"}))

        with patch("gsi_trainer.config.CONFIG_PATH", config_path):
            s = load_settings()
        assert s.llm_provider == "ollama"
        assert not hasattr(s, "unknown_key")



class TestCoerceSetting:
    def test_int_field(self):
        assert coerce_setting("max_question_count", 50) == 50

    def test_int_accepted_for_float_field(self):
        value = coerce_setting("llm_temperature", 1)
        assert value == 1.0
        assert isinstance(value, float)

    def test_list_of_ints(self):
        assert coerce_setting("question_count_choices", [5, 10]) == [5, 10]

    def test_string_field(self):
        assert coerce_setting("llm_model", "qwen3:8b") == "qwen3:8b"

    @pytest.mark.parametrize("key,value", [
        ("max_question_count", "100"),
        ("max_question_count", 100.0),
        ("mock_duration_seconds", True),
        ("pass_threshold", "50"),
        ("question_count_choices", [10, "20"]),
        ("question_count_choices", 10),
        ("llm_model", 7),
    ])
    def test_mismatch_rejected(self, key, value):
        with pytest.raises(ValueError, match=key):
            coerce_setting(key, value)
