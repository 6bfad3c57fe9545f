"""CLI entry point for gsi-trainer.

Usage:
  python -m gsi_trainer serve [--port PORT] [--host HOST]
  python -m gsi_trainer stop
  python -m gsi_trainer restart [--port PORT]
  python -m gsi_trainer status
  python -m gsi_trainer generate [--block BL2] [--count N]
"""
from __future__ import annotations

import asyncio
import os
import signal
import sys
from pathlib import Path

PID_FILE = Path(__file__).resolve().parent.parent / ".server.pid"


def main():
    args = sys.argv[1:]
    command = args[0] if args else "serve"

    if command == "serve":
        _serve(args[1:])
    elif command == "stop":
        _stop()
    elif command == "restart":
        _restart(args[1:])
    elif command == "status":
        _status()
    elif command == "generate":
        _generate(args[1:])
    else:
        print(f"Unknown command: {command}")
        print("Commands: serve, stop, restart, status, generate")
        sys.exit(1)


def _parse_flag(args: list[str], name: str, default: str) -> str:
    for i, a in enumerate(args):
        if a == name and i + 1 < len(args):
            return args[i + 1]
    return default


def _read_pid() -> int | None:
    """PID of the running server, or None (a stale PID file is removed)."""
    try:
        pid = int(PID_FILE.read_text().strip())
    except (FileNotFoundError, ValueError):
        _remove_pid()
        return None
    try:
        os.kill(pid, 0)
    except (ProcessLookupError, PermissionError):
        _remove_pid()
        return None
    return pid


def _write_pid() -> None:
    PID_FILE.write_text(str(os.getpid()))


def _remove_pid() -> None:
    PID_FILE.unlink(missing_ok=True)


def _describe_llm() -> str:
    from gsi_trainer.config import load_settings

    s = load_settings()
    return f"{s.llm_provider}/{s.llm_model}"


def _stop() -> bool:
    """Stop a running server. Returns True if a server was stopped."""
    pid = _read_pid()
    if pid is None:
        print("Server is not running.")
        return False
    try:
        os.kill(pid, signal.SIGTERM)
    except ProcessLookupError:
        print("Server was not running (stale PID file removed).")
        return False
    finally:
        _remove_pid()
    print(f"Stopped server (PID {pid}).")
    return True


def _status():
    pid = _read_pid()
    state = "not running" if pid is None else f"running (PID {pid})"
    print(f"Server is {state}.")
    print(f"Question source: {_describe_llm()}")


def _restart(args: list[str]):
    import time

    if _stop():
        time.sleep(1)
    _serve(args)


def _serve(args: list[str]):
    import uvicorn

    existing = _read_pid()
    if existing is not None:
        print(f"Server already running (PID {existing}). Use 'restart' or 'stop' first.")
        sys.exit(1)

    port = int(_parse_flag(args, "--port", "8766"))
    host = _parse_flag(args, "--host", "127.0.0.1")

    print(f"Starting GSI Trainer on http://{host}:{port} (questions from {_describe_llm()})")
    print("Press Ctrl+C to stop\n")
    _write_pid()
    try:
        uvicorn.run(
            "gsi_trainer.app:app",
            host=host,
            port=port,
            reload=False,
            timeout_graceful_shutdown=5,
        )
    finally:
        _remove_pid()


def _generate(args: list[str]):
    from gsi_trainer.config import load_settings
    from gsi_trainer.errors import GenerationFailure
    from gsi_trainer.models import MOCK_BLOCK, get_block
    from gsi_trainer.providers import create_provider
    from gsi_trainer.question_source import generate_exam

    settings = load_settings()
    block_id = _parse_flag(args, "--block", "BL1")
    if get_block(block_id) is None:
        print(f"Unknown block: {block_id}")
        sys.exit(1)
    if block_id == MOCK_BLOCK:
        count = settings.mock_question_count
    else:
        count = int(_parse_flag(args, "--count", "5"))

    try:
        llm = create_provider(settings)
    except ValueError as e:
        print(e)
        sys.exit(1)

    print(f"Generating {count} questions for {block_id} using {llm.name()}...")
    try:
        questions = asyncio.run(generate_exam(
            llm, block_id, count,
            temperature=settings.llm_temperature,
            strict_count=settings.strict_count,
        ))
    except GenerationFailure as e:
        print(f"Generation failed: {e}")
        sys.exit(1)

    for i, q in enumerate(questions, 1):
        print(f"\n[{i}] ({q.block}, {q.difficulty}) {q.statement}")
        for key, text in q.options.items():
            mark = "*" if key == q.correct_option else " "
            print(f"   {mark} {key}) {text}")
        print(f"   → {q.justification}")
    print(f"\nReceived {len(questions)}/{count} questions")


if __name__ == "__main__":
    main()
