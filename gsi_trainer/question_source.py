"""Ask the LLM for an exam and decode its answer into ``Question`` records."""
from __future__ import annotations

import json
import logging
import re
from typing import TYPE_CHECKING

from gsi_trainer.errors import CountMismatch, GenerationFailure, SchemaViolation
from gsi_trainer.models import DIFFICULTIES, OPTION_KEYS, Question
from gsi_trainer.prompts import QUESTION_SCHEMA, SYSTEM_INSTRUCTION, WIRE_FIELDS, build_prompt

if TYPE_CHECKING:
    from gsi_trainer.providers.base import LLMProvider

_log = logging.getLogger("gsi_trainer.source")

# Keys a provider may wrap the question array in when it insists on an object.
ENVELOPE_KEYS = ("preguntas", "questions")

MAX_REPORTED_ERRORS = 5


def _extract_json(text: str) -> object | None:
    """Extract the JSON payload from an LLM response.

    Strips ``<think>`` blocks, then tries the whole text, a code-fenced
    block, and finally balanced top-level ``[…]`` / ``{…}`` substrings,
    preferring the *last* one since models often draft before answering.
    """
    text = re.sub(r"<think>.*?</think>", "", text, flags=re.DOTALL).strip()
    if not text:
        return None

    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    m = re.search(r"```(?:json)?\s*\n?([\[{].*?[\]}])\s*\n?```", text, re.DOTALL)
    if m:
        try:
            return json.loads(m.group(1))
        except json.JSONDecodeError:
            pass

    for candidate in reversed(_find_json_blocks(text)):
        try:
            return json.loads(candidate)
        except json.JSONDecodeError:
            continue
    return None


def _find_json_blocks(text: str) -> list[str]:
    """Find balanced top-level ``[…]`` or ``{…}`` substrings in *text*."""
    results: list[str] = []
    i = 0
    while i < len(text):
        if text[i] in _CLOSERS:
            end = _match_close(text, i)
            if end is not None:
                results.append(text[i : end + 1])
                i = end + 1
                continue
        i += 1
    return results


_CLOSERS = {"[": "]", "{": "}"}


def _match_close(text: str, start: int) -> int | None:
    """Index of the bracket closing the one at *start*, or None if unbalanced."""
    stack: list[str] = []
    in_str = False
    escape = False
    for j in range(start, len(text)):
        ch = text[j]
        if escape:
            escape = False
            continue
        if ch == "\\":
            escape = True
            continue
        if ch == '"':
            in_str = not in_str
            continue
        if in_str:
            continue
        if ch in _CLOSERS:
            stack.append(_CLOSERS[ch])
        elif ch in ("]", "}"):
            if not stack or stack.pop() != ch:
                return None
            if not stack:
                return j
    return None


def _unwrap(payload: object) -> list:
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        for key in ENVELOPE_KEYS:
            if isinstance(payload.get(key), list):
                return payload[key]
    raise SchemaViolation(
        f"expected a JSON array of questions, got {type(payload).__name__}"
    )


def _text(value: object) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _validate_record(record: object) -> tuple[Question | None, list[str]]:
    """Check one wire record. Returns (question, []) or (None, problems)."""
    if not isinstance(record, dict):
        return None, [f"expected object, got {type(record).__name__}"]

    problems: list[str] = []
    missing = set(WIRE_FIELDS) - record.keys()
    if missing:
        return None, [f"missing {', '.join(sorted(missing))}"]

    qid = record["pregunta_id"]
    if isinstance(qid, bool) or not isinstance(qid, (str, int)) or str(qid).strip() == "":
        problems.append(f"pregunta_id must be a string or number (got {qid!r})")

    for name in ("bloque", "enunciado", "justificacion"):
        if _text(record[name]) is None:
            problems.append(f"{name} must be a non-empty string")

    options: dict[str, str] = {}
    raw_options = record["opciones"]
    if not isinstance(raw_options, dict):
        problems.append(f"opciones must be an object (got {type(raw_options).__name__})")
    else:
        for k, v in raw_options.items():
            key = str(k).strip().lower()
            if key in options:
                problems.append(f"duplicate option key {k!r}")
            options[key] = _text(v) or ""
        if sorted(options) != list(OPTION_KEYS):
            problems.append(f"opciones must have exactly keys a-d (got {sorted(raw_options)})")
        elif not all(options.values()):
            problems.append("every option needs non-empty text")

    correct = record["respuesta_correcta"]
    correct = correct.strip().lower() if isinstance(correct, str) else correct
    if correct not in OPTION_KEYS:
        problems.append(f"respuesta_correcta must be one of a-d (got {record['respuesta_correcta']!r})")

    difficulty = record["dificultad"]
    difficulty = difficulty.strip().lower() if isinstance(difficulty, str) else difficulty
    if difficulty not in DIFFICULTIES:
        problems.append(f"dificultad must be one of {', '.join(DIFFICULTIES)} (got {record['dificultad']!r})")

    if problems:
        return None, problems
    return Question(
        id=str(qid).strip(),
        block=record["bloque"].strip(),
        statement=record["enunciado"].strip(),
        options={k: options[k] for k in OPTION_KEYS},
        correct_option=correct,
        justification=record["justificacion"].strip(),
        difficulty=difficulty,
    ), []


def decode_questions(text: str) -> list[Question]:
    """Decode a provider response into questions, all or nothing.

    Raises ``SchemaViolation`` when the text holds no JSON, the payload is
    not an array of questions, the array is empty, or any record is
    malformed. No record is ever repaired or dropped.
    """
    payload = _extract_json(text)
    if payload is None:
        raise SchemaViolation("response did not contain valid JSON")

    records = _unwrap(payload)
    if not records:
        raise SchemaViolation("response contained no questions")

    questions: list[Question] = []
    errors: list[str] = []
    for i, record in enumerate(records):
        q, problems = _validate_record(record)
        if problems:
            errors.extend(f"question[{i}]: {p}" for p in problems)
            continue
        questions.append(q)

    seen: set[str] = set()
    for q in questions:
        if q.id in seen:
            errors.append(f"duplicate pregunta_id {q.id!r}")
        seen.add(q.id)

    if errors:
        shown = errors[:MAX_REPORTED_ERRORS]
        more = len(errors) - len(shown)
        summary = "; ".join(shown) + (f" (+{more} more)" if more else "")
        raise SchemaViolation(f"malformed questions: {summary}", errors)
    return questions


async def generate_exam(
    llm: LLMProvider,
    block_id: str,
    count: int,
    temperature: float = 0.7,
    strict_count: bool = False,
) -> list[Question]:
    """Issue exactly one generation request and return the decoded questions.

    A count mismatch is accepted with a warning unless *strict_count* is
    set, in which case it raises ``CountMismatch``.
    """
    prompt = build_prompt(block_id, count)
    _log.info("Generating %d questions for %s with %s", count, block_id, llm.name())
    try:
        response = await llm.generate(
            prompt,
            temperature=temperature,
            system=SYSTEM_INSTRUCTION,
            schema=QUESTION_SCHEMA,
        )
    except Exception as e:
        _log.warning("Generation request failed: %s", e)
        raise GenerationFailure(f"{type(e).__name__}: {e}") from e

    try:
        questions = decode_questions(response or "")
    except SchemaViolation as e:
        _log.warning("Rejected response: %s", e)
        _log.debug("  Raw response: %.300s", response)
        raise

    if len(questions) != count:
        if strict_count:
            _log.warning("Rejected response: %d questions instead of %d", len(questions), count)
            raise CountMismatch(count, len(questions))
        _log.warning("Requested %d questions, received %d; using them as-is", count, len(questions))
    else:
        _log.info("Received %d questions", len(questions))
    return questions
