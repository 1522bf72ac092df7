"""Role-scoped read access to evaluations."""

from __future__ import annotations

from collections import OrderedDict

from django.db.models import Prefetch
from django.db.models import Q
from django.db.models import QuerySet
from rest_framework.exceptions import NotFound
from rest_framework.exceptions import PermissionDenied

from hr_evalify.employees.api.permissions import ROLE_EVALUATOR
from hr_evalify.employees.api.permissions import ROLE_MANAGER
from hr_evalify.employees.api.permissions import ROLE_REVIEWER
from hr_evalify.employees.api.permissions import Caller

from .models import Answer
from .models import Evaluation

Status = Evaluation.Status

# Approver roles see the rows where they hold the matching slot.
ROLE_SLOTS = {
    ROLE_MANAGER: "manager",
    ROLE_REVIEWER: "reviewer",
    ROLE_EVALUATOR: "evaluator",
}


def evaluee_visible_q(prefix: str = "") -> Q:
    """Statuses in which the evaluee may look at their own evaluation."""

    return Q(**{f"{prefix}status": Status.COMPLETED}) | Q(
        **{
            f"{prefix}status": Status.SELF_EVALUATING,
            f"{prefix}allow_self_evaluation": True,
        }
    )


def evaluation_queryset() -> QuerySet[Evaluation]:
    return Evaluation.objects.select_related(
        "evaluee__user",
        "evaluee__department",
        "evaluator__user",
        "reviewer__user",
        "manager__user",
    )


def scope_for(caller: Caller, qs: QuerySet[Evaluation]) -> QuerySet[Evaluation]:
    if caller.is_elevated:
        return qs
    employee_id = caller.employee_id
    if employee_id is None:
        return qs.none()
    own = Q(evaluee_id=employee_id) & evaluee_visible_q()
    slot = ROLE_SLOTS.get(caller.role)
    if slot is None:
        return qs.filter(own)
    return qs.filter(Q(**{f"{slot}_id": employee_id}) | own)


def can_view(caller: Caller, evaluation: Evaluation) -> bool:
    if caller.is_elevated:
        return True
    employee_id = caller.employee_id
    if employee_id is None:
        return False
    if employee_id in {
        evaluation.evaluator_id,
        evaluation.reviewer_id,
        evaluation.manager_id,
    }:
        return True
    if employee_id != evaluation.evaluee_id:
        return False
    if evaluation.status == Status.COMPLETED:
        return True
    return (
        evaluation.status == Status.SELF_EVALUATING
        and evaluation.allow_self_evaluation
    )


def can_view_answers(caller: Caller, evaluation: Evaluation) -> bool:
    if caller.is_elevated:
        return True
    employee_id = caller.employee_id
    if employee_id is None:
        return False
    if employee_id in {
        evaluation.evaluator_id,
        evaluation.reviewer_id,
        evaluation.manager_id,
    }:
        return True
    return (
        employee_id == evaluation.evaluee_id
        and evaluation.status == Status.COMPLETED
    )


def _answers_prefetch() -> Prefetch:
    return Prefetch(
        "answers",
        queryset=Answer.objects.select_related("question", "question__category"),
    )


def get_evaluation(evaluation_id: int, caller: Caller) -> Evaluation:
    """Load one evaluation for ``caller``: 404 when missing, 403 out of scope."""

    evaluation = (
        evaluation_queryset()
        .prefetch_related(_answers_prefetch())
        .filter(pk=evaluation_id)
        .first()
    )
    if evaluation is None:
        raise NotFound
    if not can_view(caller, evaluation):
        raise PermissionDenied
    return evaluation


def get_evaluation_answers(evaluation_id: int, caller: Caller) -> Evaluation:
    evaluation = (
        evaluation_queryset()
        .prefetch_related(_answers_prefetch())
        .filter(pk=evaluation_id)
        .first()
    )
    if evaluation is None:
        raise NotFound
    if not can_view_answers(caller, evaluation):
        raise PermissionDenied
    return evaluation


def group_by_category(answers) -> list[dict]:
    """Group answers under their question's category, keeping category order."""

    groups: OrderedDict[int, dict] = OrderedDict()
    ordered = sorted(
        answers,
        key=lambda a: (
            a.question.category.order,
            a.question.category_id,
            a.question.order,
            a.question_id,
        ),
    )
    for answer in ordered:
        category = answer.question.category
        group = groups.setdefault(
            category.pk,
            {"id": category.pk, "name": category.name, "answers": []},
        )
        group["answers"].append(answer)
    return list(groups.values())
