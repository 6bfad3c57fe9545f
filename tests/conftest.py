"""Shared test fixtures."""
from __future__ import annotations

import json

import pytest

from gsi_trainer.config import Settings
from gsi_trainer.models import OPTION_KEYS, Question


def _record(i: int, correct: str = "a", **overrides) -> dict:
    rec = {
        "pregunta_id": str(i + 1),
        "bloque": "Bloque II",
        "enunciado": f"¿Qué capa del modelo OSI ocupa el protocolo número {i + 1}?",
        "opciones": {
            "a": "Capa de red",
            "b": "Capa de transporte",
            "c": "Capa de sesión",
            "d": "Capa de aplicación",
        },
        "respuesta_correcta": correct,
        "justificacion": "Según la norma ISO/IEC 7498-1.",
        "dificultad": "media",
    }
    rec.update(overrides)
    return rec


@pytest.fixture
def wire_record():
    """Factory for one valid wire record as the LLM would send it."""
    return _record


@pytest.fixture
def wire_response():
    """Factory for a JSON array of *n* valid records; correct option cycles a, b, c, d."""
    def make(n: int) -> str:
        return json.dumps([_record(i, OPTION_KEYS[i % 4]) for i in range(n)], ensure_ascii=False)
    return make


@pytest.fixture
def sample_questions():
    """Three questions whose correct options are a, b, c."""
    return [
        Question(
            id=str(i + 1),
            block="Bloque I" if i == 0 else "Bloque III",
            statement=f"Pregunta {i + 1}",
            options={"a": "uno", "b": "dos", "c": "tres", "d": "cuatro"},
            correct_option=correct,
            justification=f"Justificación {i + 1}",
            difficulty="baja",
        )
        for i, correct in enumerate(("a", "b", "c"))
    ]


@pytest.fixture
def settings():
    """Settings with a small mock exam so timed tests stay fast."""
    return Settings(mock_question_count=4, mock_duration_seconds=5400)
