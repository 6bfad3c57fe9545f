"""Tests for question generation (JSON extraction, validating decode, provider call)."""
from __future__ import annotations

import json

import httpx
import pytest

from gsi_trainer.errors import CountMismatch, GenerationFailure, SchemaViolation
from gsi_trainer.prompts import QUESTION_SCHEMA, SYSTEM_INSTRUCTION
from gsi_trainer.question_source import _extract_json, decode_questions, generate_exam


class FakeLLM:
    """Returns canned responses (or raises) and records every call."""

    def __init__(self, response: str = "[]", error: Exception | None = None):
        self.response = response
        self.error = error
        self.calls: list[dict] = []

    async def generate(self, prompt, temperature=0.7, system=None, schema=None):
        self.calls.append({"prompt": prompt, "system": system, "schema": schema})
        if self.error is not None:
            raise self.error
        return self.response

    def name(self) -> str:
        return "fake-llm"


class TestExtractJson:
    def test_bare_array(self):
        assert _extract_json('[{"a": 1}]') == [{"a": 1}]

    def test_code_fence(self):
        text = 'Aquí tienes:\n```json\n[{"a": 1}]\n```'
        assert _extract_json(text) == [{"a": 1}]

    def test_think_block_stripped(self):
        text = '<think>draft [{"a": 0}]</think>\n[{"a": 2}]'
        assert _extract_json(text) == [{"a": 2}]

    def test_surrounding_prose(self):
        text = 'Claro, aquí está el examen:\n\n[{"a": 1}, {"a": 2}]\n\n¡Suerte!'
        assert _extract_json(text) == [{"a": 1}, {"a": 2}]

    def test_prefers_last_block(self):
        text = 'Borrador: [1] y final: [{"a": 3}]'
        assert _extract_json(text) == [{"a": 3}]

    def test_brackets_inside_strings(self):
        text = 'x [{"enunciado": "¿Qué hace ] en regex?"}] y'
        assert _extract_json(text) == [{"enunciado": "¿Qué hace ] en regex?"}]

    def test_mismatched_brackets(self):
        assert _extract_json("oops [} nothing here") is None

    def test_not_json(self):
        assert _extract_json("No puedo generar preguntas ahora.") is None

    def test_empty(self):
        assert _extract_json("") is None


class TestDecodeQuestions:
    def test_valid(self, wire_response):
        qs = decode_questions(wire_response(4))
        assert len(qs) == 4
        assert [q.correct_option for q in qs] == ["a", "b", "c", "d"]
        assert qs[0].id == "1"
        assert set(qs[0].options) == {"a", "b", "c", "d"}

    def test_numeric_id_becomes_string(self, wire_record):
        qs = decode_questions(json.dumps([wire_record(0, pregunta_id=7)]))
        assert qs[0].id == "7"

    def test_case_insensitive_keys(self, wire_record):
        rec = wire_record(0, respuesta_correcta=" B ", dificultad="Alta")
        rec["opciones"] = {k.upper(): v for k, v in rec["opciones"].items()}
        q = decode_questions(json.dumps([rec]))[0]
        assert q.correct_option == "b"
        assert q.difficulty == "alta"
        assert list(q.options) == ["a", "b", "c", "d"]

    def test_object_envelope(self, wire_record):
        qs = decode_questions(json.dumps({"preguntas": [wire_record(0)]}))
        assert len(qs) == 1

    def test_other_object_rejected(self, wire_record):
        with pytest.raises(SchemaViolation, match="JSON array"):
            decode_questions(json.dumps(wire_record(0)))

    def test_not_json(self):
        with pytest.raises(SchemaViolation, match="valid JSON"):
            decode_questions("Lo siento, no puedo.")

    def test_truncated_array(self, wire_record):
        text = json.dumps([wire_record(0), wire_record(1)])[:-40]
        with pytest.raises(SchemaViolation):
            decode_questions(text)

    def test_empty_array(self):
        with pytest.raises(SchemaViolation, match="no questions"):
            decode_questions("[]")

    def test_missing_field(self, wire_record):
        rec = wire_record(0)
        del rec["justificacion"]
        with pytest.raises(SchemaViolation, match="missing justificacion"):
            decode_questions(json.dumps([rec]))

    def test_three_options(self, wire_record):
        rec = wire_record(0)
        del rec["opciones"]["d"]
        with pytest.raises(SchemaViolation, match="exactly keys a-d"):
            decode_questions(json.dumps([rec]))

    def test_options_not_object(self, wire_record):
        rec = wire_record(0, opciones=["uno", "dos", "tres", "cuatro"])
        with pytest.raises(SchemaViolation, match="opciones must be an object"):
            decode_questions(json.dumps([rec]))

    def test_empty_option_text(self, wire_record):
        rec = wire_record(0)
        rec["opciones"]["c"] = "  "
        with pytest.raises(SchemaViolation, match="non-empty text"):
            decode_questions(json.dumps([rec]))

    def test_correct_option_outside_keys(self, wire_record):
        with pytest.raises(SchemaViolation, match="respuesta_correcta"):
            decode_questions(json.dumps([wire_record(0, respuesta_correcta="e")]))

    def test_bad_difficulty(self, wire_record):
        with pytest.raises(SchemaViolation, match="dificultad"):
            decode_questions(json.dumps([wire_record(0, dificultad="extrema")]))

    def test_empty_statement(self, wire_record):
        with pytest.raises(SchemaViolation, match="enunciado"):
            decode_questions(json.dumps([wire_record(0, enunciado="")]))

    def test_duplicate_ids(self, wire_record):
        with pytest.raises(SchemaViolation, match="duplicate pregunta_id"):
            decode_questions(json.dumps([wire_record(0), wire_record(0)]))

    def test_one_bad_record_rejects_all(self, wire_record):
        records = [wire_record(0), wire_record(1), wire_record(2, respuesta_correcta=None)]
        with pytest.raises(SchemaViolation) as exc:
            decode_questions(json.dumps(records))
        assert len(exc.value.errors) == 1
        assert exc.value.errors[0].startswith("question[2]")

    def test_non_object_record(self, wire_record):
        with pytest.raises(SchemaViolation, match="expected object"):
            decode_questions(json.dumps([wire_record(0), "texto"]))

    def test_error_summary_is_capped(self, wire_record):
        records = [wire_record(i, dificultad="x") for i in range(8)]
        with pytest.raises(SchemaViolation, match=r"\+3 more") as exc:
            decode_questions(json.dumps(records))
        assert len(exc.value.errors) == 8


class TestGenerateExam:
    @pytest.mark.asyncio
    async def test_single_call_with_schema(self, wire_response):
        llm = FakeLLM(wire_response(5))
        qs = await generate_exam(llm, "BL3", 5)
        assert len(qs) == 5
        assert len(llm.calls) == 1
        call = llm.calls[0]
        assert call["system"] == SYSTEM_INSTRUCTION
        assert call["schema"] == QUESTION_SCHEMA
        assert "Bloque III" in call["prompt"]

    @pytest.mark.asyncio
    async def test_mock_prompt(self, wire_response):
        llm = FakeLLM(wire_response(3))
        await generate_exam(llm, "MOCK", 3)
        assert "SIMULACRO" in llm.calls[0]["prompt"]

    @pytest.mark.asyncio
    async def test_network_error_is_generation_failure(self):
        err = httpx.ConnectError("connection refused")
        llm = FakeLLM(error=err)
        with pytest.raises(GenerationFailure) as exc:
            await generate_exam(llm, "BL1", 10)
        assert exc.value.__cause__ is err
        assert not isinstance(exc.value, SchemaViolation)
        assert len(llm.calls) == 1

    @pytest.mark.asyncio
    async def test_malformed_response_not_retried(self):
        llm = FakeLLM("no es JSON")
        with pytest.raises(SchemaViolation):
            await generate_exam(llm, "BL1", 10)
        assert len(llm.calls) == 1

    @pytest.mark.asyncio
    async def test_none_response(self):
        llm = FakeLLM(None)
        with pytest.raises(SchemaViolation):
            await generate_exam(llm, "BL1", 10)

    @pytest.mark.asyncio
    async def test_count_mismatch_accepted_by_default(self, wire_response):
        llm = FakeLLM(wire_response(97))
        qs = await generate_exam(llm, "MOCK", 100)
        assert len(qs) == 97

    @pytest.mark.asyncio
    async def test_count_mismatch_strict(self, wire_response):
        llm = FakeLLM(wire_response(97))
        with pytest.raises(CountMismatch) as exc:
            await generate_exam(llm, "MOCK", 100, strict_count=True)
        assert (exc.value.requested, exc.value.received) == (100, 97)
        assert isinstance(exc.value, SchemaViolation)
