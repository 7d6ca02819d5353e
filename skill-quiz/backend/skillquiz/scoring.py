from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Tuple

from .errors import InvalidAnswer
from .models import OPTION_LABELS

_TWO_PLACES = Decimal("0.01")


def _is_correct(record: Any) -> bool:
    if isinstance(record, dict):
        return bool(record.get("is_correct"))
    return bool(getattr(record, "is_correct", False))


def normalize_label(selected_answer: Any) -> str:
    label = str(selected_answer or "").strip().upper()
    if label not in OPTION_LABELS:
        raise InvalidAnswer()
    return label


def is_correct_answer(selected_answer: str, correct_answer: str) -> bool:
    return (selected_answer or "").strip().upper() == (correct_answer or "").strip().upper()


def percentage(correct: int, total: int) -> float:
    if total <= 0:
        return 0.0
    raw = Decimal(correct) * Decimal(100) / Decimal(total)
    return float(raw.quantize(_TWO_PLACES, rounding=ROUND_HALF_UP))


def score(answer_records: Iterable[Any], total_questions: int) -> Tuple[int, float]:
    """Count correct records and turn them into a percentage of ``total_questions``.

    Pure: the same ledger slice always yields the same result, so a stored
    score can be recomputed from the answers that produced it.
    """
    correct = sum(1 for r in answer_records if _is_correct(r))
    return correct, percentage(correct, total_questions)
