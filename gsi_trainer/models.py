from __future__ import annotations

from dataclasses import dataclass, field

OPTION_KEYS = ("a", "b", "c", "d")
DIFFICULTIES = ("baja", "media", "alta")

MOCK_BLOCK = "MOCK"


@dataclass(frozen=True)
class Block:
    id: str
    name: str
    mock_weight: float = 0.0  # approximate share in a full mock exam


BLOCKS = (
    Block("BL1", "Bloque I: Organización del Estado y Administración electrónica", 0.15),
    Block("BL2", "Bloque II: Tecnología básica", 0.25),
    Block("BL3", "Bloque III: Desarrollo de sistemas", 0.30),
    Block("BL4", "Bloque IV: Sistemas y comunicaciones", 0.30),
    Block(MOCK_BLOCK, "Simulacro Completo (100 Preguntas - 90 min)"),
)


def get_block(block_id: str) -> Block | None:
    return next((b for b in BLOCKS if b.id == block_id), None)


@dataclass(frozen=True)
class Question:
    id: str
    block: str
    statement: str
    options: dict[str, str]
    correct_option: str  # a | b | c | d
    justification: str
    difficulty: str  # baja | media | alta

    def is_correct(self, option: str | None) -> bool:
        return option is not None and option == self.correct_option

    def to_dict(self, include_answer: bool = True) -> dict:
        d = {
            "id": self.id,
            "block": self.block,
            "statement": self.statement,
            "options": dict(self.options),
            "difficulty": self.difficulty,
        }
        if include_answer:
            d["correct_option"] = self.correct_option
            d["justification"] = self.justification
        return d


@dataclass
class BlockScore:
    correct: int = 0
    incorrect: int = 0
    skipped: int = 0

    @property
    def total(self) -> int:
        return self.correct + self.incorrect + self.skipped


@dataclass
class ScoreReport:
    total: int
    correct: int
    incorrect: int
    skipped: int
    raw_score: float
    normalized_score: float
    by_block: dict[str, BlockScore] = field(default_factory=dict)
