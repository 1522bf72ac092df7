"""Scoring engine: aggregate answers into a score, percentage and grade.

Everything here is pure. Each answer is scored on its question's own
``[min_score, max_score]`` range (``[0, scale_max]`` when the answer carries
no range). The reported score aggregates the raw answer scores; the
percentage aggregates each answer's position within its range on 0-100, and
grade thresholds operate on that percentage. Rounding to 2 dp happens once,
on the final values.
"""

from __future__ import annotations

from collections.abc import Callable
from collections.abc import Iterable
from dataclasses import dataclass
from decimal import ROUND_HALF_UP
from decimal import Decimal
from typing import Any

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

TWO_PLACES = Decimal("0.01")
DEFAULT_SCALE_MAX = 5

# Descending (inclusive lower bound, letter).
GRADE_THRESHOLDS: tuple[tuple[Decimal, str], ...] = (
    (Decimal(90), "A"),
    (Decimal(80), "B+"),
    (Decimal(70), "B"),
    (Decimal(60), "C+"),
    (Decimal(50), "C"),
    (Decimal(40), "D+"),
    (Decimal(30), "D"),
)
FAIL_GRADE = "F"

Aggregator = Callable[[list[Any], Callable[[Any], Decimal]], Decimal]


@dataclass(frozen=True)
class ScoreResult:
    score: Decimal
    percentage: Decimal
    grade: str


def _quantize(value: Decimal) -> Decimal:
    return value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def _decimal(raw, default) -> Decimal:
    return Decimal(str(raw if raw is not None else default))


def _score_of(answer: Any) -> Decimal:
    raw = answer.get("score") if isinstance(answer, dict) else answer.score
    return Decimal(str(raw))


def _weight_of(answer: Any) -> Decimal:
    if isinstance(answer, dict):
        raw = answer.get("weight", 1)
    else:
        question = getattr(answer, "question", None)
        raw = getattr(question, "weight", 1) if question is not None else 1
    return _decimal(raw, 1)


def _range_of(answer: Any, scale_max) -> tuple[Decimal, Decimal]:
    if isinstance(answer, dict):
        low, high = answer.get("min_score"), answer.get("max_score")
    else:
        question = getattr(answer, "question", None)
        low = getattr(question, "min_score", None)
        high = getattr(question, "max_score", None)
    return _decimal(low, 0), _decimal(high, scale_max)


def _percent_within(score, low, high) -> Decimal:
    low, high = Decimal(str(low)), Decimal(str(high))
    if high <= low:
        msg = "score range must have max above min"
        raise ValueError(msg)
    return (Decimal(str(score)) - low) * 100 / (high - low)


def answer_percentage(answer: Any, scale_max=DEFAULT_SCALE_MAX) -> Decimal:
    """Unrounded position of one answer within its question's range, 0-100."""

    low, high = _range_of(answer, scale_max)
    return _percent_within(_score_of(answer), low, high)


def mean_of(answers: list[Any], value: Callable[[Any], Decimal]) -> Decimal:
    if not answers:
        return Decimal(0)
    return sum((value(a) for a in answers), Decimal(0)) / len(answers)


def weighted_mean_of(answers: list[Any], value: Callable[[Any], Decimal]) -> Decimal:
    """Weighted by each question's ``weight``; plain mean when weights sum to 0."""

    weights = [_weight_of(a) for a in answers]
    total_weight = sum(weights, Decimal(0))
    if not total_weight:
        return mean_of(answers, value)
    pairs = zip(answers, weights, strict=True)
    total = sum((value(a) * w for a, w in pairs), Decimal(0))
    return total / total_weight


def average_score(answers: Iterable[Any]) -> Decimal:
    """Arithmetic mean of the answer scores, 2 dp; 0 for no answers.

    Accepts Answer instances or mappings with a ``score`` key.
    """

    return _quantize(mean_of(list(answers), _score_of))


def weighted_score(answers: Iterable[Any]) -> Decimal:
    return _quantize(weighted_mean_of(list(answers), _score_of))


def to_percentage(score, scale_max=DEFAULT_SCALE_MAX) -> Decimal:
    scale = Decimal(str(scale_max))
    if scale <= 0:
        msg = "scale_max must be positive"
        raise ValueError(msg)
    return _quantize(_percent_within(score, 0, scale))


def grade_of(percentage) -> str:
    value = Decimal(str(percentage))
    for threshold, letter in GRADE_THRESHOLDS:
        if value >= threshold:
            return letter
    return FAIL_GRADE


AGGREGATORS: dict[str, Aggregator] = {
    "mean": mean_of,
    "weighted": weighted_mean_of,
}


def get_aggregator(name: str | None = None) -> Aggregator:
    key = name or getattr(settings, "EVALIFY_SCORE_AGGREGATOR", "mean")
    try:
        return AGGREGATORS[key]
    except KeyError as exc:
        msg = f"Unknown EVALIFY_SCORE_AGGREGATOR {key!r}"
        raise ImproperlyConfigured(msg) from exc


def compute_result(
    answers: Iterable[Any],
    *,
    aggregator: str | None = None,
    scale_max=None,
) -> ScoreResult:
    """Score, percentage and grade for one evaluation's answers."""

    if scale_max is None:
        scale_max = getattr(settings, "EVALIFY_SCORE_SCALE_MAX", DEFAULT_SCALE_MAX)
    items = list(answers)
    aggregate = get_aggregator(aggregator)
    score = _quantize(aggregate(items, _score_of))
    percentage = _quantize(
        aggregate(items, lambda answer: answer_percentage(answer, scale_max))
    )
    return ScoreResult(score=score, percentage=percentage, grade=grade_of(percentage))
