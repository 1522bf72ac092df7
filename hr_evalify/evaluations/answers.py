"""Answer ingestion: atomic replace-all of an evaluation's scored answers."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from decimal import InvalidOperation
from typing import Any

from django.db import transaction
from rest_framework.exceptions import NotFound
from rest_framework.exceptions import PermissionDenied
from rest_framework.exceptions import ValidationError

from hr_evalify.audit.utils import log_action

from .exceptions import StateConflict
from .models import Answer
from .models import Evaluation
from .models import Question

logger = logging.getLogger(__name__)

EDITABLE_STATUSES = frozenset(
    {Evaluation.Status.EVALUATOR_EVALUATING, Evaluation.Status.REJECTED}
)


@dataclass(frozen=True)
class AnswerInput:
    question_id: int
    score: Decimal
    comment: str = ""


def _question_id_of(item: dict[str, Any]):
    for key in ("questionId", "question_id", "question"):
        if key in item:
            return item[key]
    return None


def _as_int(value) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def _as_decimal(value) -> Decimal | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = Decimal(str(value).strip())
    except InvalidOperation:
        return None
    if not number.is_finite():
        return None
    return number


def validate_answers(raw_answers) -> list[AnswerInput]:
    """Parse and check an answer payload, collecting every violation.

    Raises ``ValidationError`` whose ``answers`` entry lists one dict per
    offending item and field.
    """

    if not isinstance(raw_answers, list) or not raw_answers:
        raise ValidationError({"answers": ["A non-empty list of answers is required."]})

    violations: list[dict[str, Any]] = []
    parsed: list[tuple[int, int | None, Decimal | None, str]] = []

    def violation(index, question_id, field, error):
        violations.append(
            {"index": index, "questionId": question_id, "field": field, "error": error}
        )

    for index, item in enumerate(raw_answers):
        if not isinstance(item, dict):
            violation(index, None, "non_field_errors", "Each answer must be an object.")
            continue
        raw_qid = _question_id_of(item)
        question_id = _as_int(raw_qid)
        if question_id is None:
            violation(index, raw_qid, "questionId", "A valid question id is required.")
        score = _as_decimal(item.get("score"))
        if score is None:
            violation(index, raw_qid, "score", "A numeric score is required.")
        comment = item.get("comment") or ""
        if not isinstance(comment, str):
            violation(index, raw_qid, "comment", "Comment must be text.")
            comment = ""
        parsed.append((index, question_id, score, comment))

    ids = {qid for _, qid, _, _ in parsed if qid is not None}
    questions = Question.objects.in_bulk(ids)
    seen: set[int] = set()
    for index, question_id, score, _comment in parsed:
        if question_id is None:
            continue
        if question_id in seen:
            violation(index, question_id, "questionId", "Question answered twice.")
        seen.add(question_id)
        question = questions.get(question_id)
        if question is None or not question.is_active:
            violation(index, question_id, "questionId", "Unknown or inactive question.")
            continue
        if score is not None and not (question.min_score <= score <= question.max_score):
            violation(
                index,
                question_id,
                "score",
                f"Score must be between {question.min_score} and {question.max_score}.",
            )

    if violations:
        raise ValidationError({"answers": violations})
    return [
        AnswerInput(question_id=qid, score=score, comment=comment)
        for _, qid, score, comment in parsed
    ]


def _can_write_answers(caller, evaluation: Evaluation) -> bool:
    if caller.is_elevated:
        return True
    return caller.employee_id is not None and caller.employee_id == evaluation.evaluator_id


def replace_answers(evaluation_id: int, caller, raw_answers) -> list[Answer]:
    """Replace the full answer set of an evaluation.

    Checks run in the order not found, forbidden, state conflict, invalid
    payload. The delete and insert happen in one transaction with the
    evaluation row locked.
    """

    evaluation = Evaluation.objects.filter(pk=evaluation_id).first()
    if evaluation is None:
        raise NotFound
    if not _can_write_answers(caller, evaluation):
        raise PermissionDenied
    if evaluation.status not in EDITABLE_STATUSES:
        raise StateConflict(
            "Answers can only be changed while the evaluator is evaluating.",
            current_status=evaluation.status,
        )
    items = validate_answers(raw_answers)

    with transaction.atomic():
        locked = Evaluation.objects.select_for_update().get(pk=evaluation.pk)
        if locked.status not in EDITABLE_STATUSES:
            raise StateConflict(current_status=locked.status)
        before = list(
            locked.answers.values_list("question_id", "score").order_by("question_id")
        )
        Answer.objects.filter(evaluation=locked).delete()
        Answer.objects.bulk_create(
            [
                Answer(
                    evaluation=locked,
                    question_id=item.question_id,
                    score=item.score,
                    comment=item.comment,
                )
                for item in items
            ]
        )
        log_action(
            "evaluation.answers.replace",
            actor=caller.user,
            model_name="Evaluation",
            record_id=locked.pk,
            before=[{"question": q, "score": str(s)} for q, s in before],
            after=[{"question": i.question_id, "score": str(i.score)} for i in items],
        )
    logger.info(
        "Replaced answers of evaluation %s (%d items)", evaluation.pk, len(items)
    )
    return list(
        Answer.objects.filter(evaluation_id=evaluation.pk).select_related(
            "question", "question__category"
        )
    )
