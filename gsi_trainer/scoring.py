"""Penalised exam scoring.

Each wrong answer subtracts a third of a point; blanks cost nothing.
"""
from __future__ import annotations

from collections.abc import Mapping, Sequence

from gsi_trainer.models import BlockScore, Question, ScoreReport

PENALTY = 1 / 3
PASS_THRESHOLD = 50.0

PASS_VERDICT = (
    "APTO. Resultados excelentes. Tu nivel de preparación es adecuado para la fase "
    "de oposición. Sigue repasando las guías CCN-STIC y el ENS 2022."
)
FAIL_VERDICT = (
    "NO APTO. Necesitas reforzar el temario. Recuerda que los errores descuentan 0,33. "
    "La estrategia de saltar preguntas dudosas es clave para el éxito."
)


def raw_score(correct: int, incorrect: int) -> float:
    return correct - incorrect * PENALTY


def normalize(raw: float, total: int) -> float:
    """Scale a raw score to 0-100. Negative when errors dominate; 0 for an empty exam."""
    if total == 0:
        return 0.0
    return raw * 100 / total


def score(questions: Sequence[Question], answers: Mapping[int, str | None]) -> ScoreReport:
    correct = incorrect = skipped = 0
    by_block: dict[str, BlockScore] = {}
    for idx, q in enumerate(questions):
        bs = by_block.setdefault(q.block, BlockScore())
        ans = answers.get(idx)
        if ans is None:
            skipped += 1
            bs.skipped += 1
        elif ans == q.correct_option:
            correct += 1
            bs.correct += 1
        else:
            incorrect += 1
            bs.incorrect += 1

    raw = raw_score(correct, incorrect)
    return ScoreReport(
        total=len(questions),
        correct=correct,
        incorrect=incorrect,
        skipped=skipped,
        raw_score=raw,
        normalized_score=normalize(raw, len(questions)),
        by_block=by_block,
    )


def passed(report: ScoreReport, threshold: float = PASS_THRESHOLD) -> bool:
    return report.total > 0 and report.normalized_score >= threshold


def verdict(report: ScoreReport, threshold: float = PASS_THRESHOLD) -> str:
    return PASS_VERDICT if passed(report, threshold) else FAIL_VERDICT
