"""FastAPI application with all routes."""
from __future__ import annotations

import logging
from pathlib import Path

logging.basicConfig(level=logging.INFO, format="%(name)s | %(message)s")

from fastapi import FastAPI, Request
from fastapi.responses import FileResponse, JSONResponse

from gsi_trainer.config import (
    COUNT_MISMATCH_POLICIES,
    Settings,
    coerce_setting,
    load_settings,
    save_settings,
)
from gsi_trainer.errors import ConfirmationRequired, InvalidSetup, InvalidTransition
from gsi_trainer.models import BLOCKS, MOCK_BLOCK, get_block
from gsi_trainer.providers import PROVIDERS, create_provider
from gsi_trainer.scoring import passed, verdict
from gsi_trainer.session import Phase, QuizController

app = FastAPI(title="GSI Trainer")

# Global state (initialized in startup)
_settings: Settings | None = None
_controller: QuizController | None = None

LLM_FIELDS = {"llm_provider", "llm_model", "ollama_url", "llm_timeout", "max_output_tokens"}


def get_settings() -> Settings:
    assert _settings is not None
    return _settings


def get_controller() -> QuizController:
    assert _controller is not None
    return _controller


@app.on_event("startup")
async def startup():
    global _settings, _controller
    if _controller is not None:
        return  # Already initialized (e.g. by tests)
    _settings = load_settings()
    _controller = QuizController(create_provider(_settings), _settings)


@app.on_event("shutdown")
async def shutdown():
    if _controller:
        _controller.close()


# ── Errors ────────────────────────────────────────────────────────────────

@app.exception_handler(InvalidSetup)
async def invalid_setup_handler(request: Request, exc: InvalidSetup):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(ConfirmationRequired)
async def confirmation_handler(request: Request, exc: ConfirmationRequired):
    return JSONResponse(status_code=409, content={"detail": str(exc), "confirm_required": True})


@app.exception_handler(InvalidTransition)
async def invalid_transition_handler(request: Request, exc: InvalidTransition):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


# ── Static files ──────────────────────────────────────────────────────────

static_dir = Path(__file__).parent / "static"


@app.get("/")
async def index():
    return FileResponse(static_dir / "index.html")


@app.get("/style.css")
async def style():
    return FileResponse(static_dir / "style.css", media_type="text/css")


@app.get("/app.js")
async def script():
    return FileResponse(static_dir / "app.js", media_type="application/javascript")


# ── Payloads ──────────────────────────────────────────────────────────────

def _results_payload(controller: QuizController) -> dict:
    report = controller.report()
    threshold = controller.settings.pass_threshold
    return {
        "total": report.total,
        "correct": report.correct,
        "incorrect": report.incorrect,
        "skipped": report.skipped,
        "raw_score": round(report.raw_score, 2),
        "normalized_score": round(report.normalized_score, 2),
        "pass_threshold": threshold,
        "passed": passed(report, threshold),
        "verdict": verdict(report, threshold),
        "by_block": {
            name: {"correct": b.correct, "incorrect": b.incorrect, "skipped": b.skipped}
            for name, b in report.by_block.items()
        },
    }


def _session_payload(controller: QuizController) -> dict:
    error = controller.take_error()
    s = controller.session
    block = get_block(s.block) if s.block else None
    total = len(s.questions)
    idx = s.current_index

    payload = {
        "phase": s.phase.value,
        "block": s.block,
        "block_name": block.name if block else None,
        "requested_count": s.requested_count,
        "timed": s.timed,
        "armed": s.armed,
        "awaiting_arm": s.awaiting_arm,
        "time_remaining": s.time_remaining,
        "time_display": s.countdown.display if s.countdown else None,
        "low_time": bool(s.countdown and s.countdown.armed and s.countdown.low_time),
        "progress": {
            "current": idx + 1 if total else 0,
            "total": total,
            "percent": round((idx + 1) / total * 100) if total else 0,
        },
        "question": None,
        "answered": False,
        "feedback": None,
        "results": None,
        "error": error,
    }

    q = s.current_question
    if q is not None and not s.awaiting_arm:
        question = q.to_dict(include_answer=False)
        question["number"] = idx + 1
        payload["question"] = question
        payload["answered"] = idx in s.answers

    if s.phase is Phase.SHOWING_FEEDBACK:
        chosen = s.answers.get(idx)
        payload["feedback"] = {
            "chosen": chosen,
            "skipped": chosen is None,
            "correct_option": q.correct_option,
            "justification": q.justification,
            "is_last": s.is_last,
        }

    if s.phase is Phase.FINISHED:
        payload["results"] = _results_payload(controller)
    return payload


# ── API: Blocks ───────────────────────────────────────────────────────────

@app.get("/api/blocks")
async def api_blocks():
    s = get_settings()
    return {
        "blocks": [{"id": b.id, "name": b.name, "mock": b.id == MOCK_BLOCK} for b in BLOCKS],
        "count_choices": s.question_count_choices,
        "default_count": s.default_question_count,
        "mock": {
            "question_count": s.mock_question_count,
            "duration_seconds": s.mock_duration_seconds,
        },
    }


# ── API: Session ──────────────────────────────────────────────────────────

@app.get("/api/session")
async def api_session():
    return _session_payload(get_controller())


@app.post("/api/session/start")
async def api_session_start(request: Request):
    body = await request.json() if await request.body() else {}
    s = get_settings()
    controller = get_controller()
    await controller.start(body.get("block", MOCK_BLOCK), body.get("count", s.default_question_count))
    return _session_payload(controller)


@app.post("/api/session/arm")
async def api_session_arm():
    controller = get_controller()
    controller.arm()
    return _session_payload(controller)


@app.post("/api/session/answer")
async def api_session_answer(request: Request):
    body = await request.json()
    controller = get_controller()
    controller.answer(body.get("option"))
    return _session_payload(controller)


@app.post("/api/session/skip")
async def api_session_skip():
    controller = get_controller()
    controller.skip()
    return _session_payload(controller)


@app.post("/api/session/continue")
async def api_session_continue():
    controller = get_controller()
    controller.next()
    return _session_payload(controller)


@app.post("/api/session/restart")
async def api_session_restart(request: Request):
    body = await request.json() if await request.body() else {}
    controller = get_controller()
    controller.restart(confirmed=bool(body.get("confirmed", False)))
    return _session_payload(controller)


@app.get("/api/session/results")
async def api_session_results():
    controller = get_controller()
    s = controller.session
    if s.phase is not Phase.FINISHED:
        raise InvalidTransition(f"results are not available while {s.phase.value}")

    review = []
    for i, q in enumerate(s.questions):
        chosen = s.answers.get(i)
        if chosen is None:
            outcome = "skipped"
        elif q.is_correct(chosen):
            outcome = "correct"
        else:
            outcome = "incorrect"
        review.append({
            "number": i + 1,
            **q.to_dict(),
            "chosen": chosen,
            "outcome": outcome,
        })

    block = get_block(s.block) if s.block else None
    return {
        "block": s.block,
        "block_name": block.name if block else None,
        "timed": s.timed,
        "time_remaining": s.time_remaining,
        **_results_payload(controller),
        "questions": review,
    }


# ── API: Settings ─────────────────────────────────────────────────────────

@app.get("/api/settings")
async def api_get_settings():
    return get_settings().to_dict()


@app.put("/api/settings")
async def api_update_settings(request: Request):
    body = await request.json()
    s = get_settings()
    if "llm_provider" in body and body["llm_provider"] not in PROVIDERS:
        raise InvalidSetup(f"unknown LLM provider: {body['llm_provider']!r}")
    if "count_mismatch" in body and body["count_mismatch"] not in COUNT_MISMATCH_POLICIES:
        raise InvalidSetup(f"count_mismatch must be one of {', '.join(COUNT_MISMATCH_POLICIES)}")

    known = {f.name for f in Settings.__dataclass_fields__.values()}
    updates = {}
    for k, v in body.items():
        if k in known:
            try:
                updates[k] = coerce_setting(k, v)
            except ValueError as e:
                raise InvalidSetup(str(e)) from e
    for k, v in updates.items():
        setattr(s, k, v)
    changed = set(updates)
    save_settings(s)
    if changed & LLM_FIELDS:
        get_controller().llm = create_provider(s)
    return s.to_dict()
