"""Evaluation workflow: creation, stage transitions, admin edits, deletion.

Every mutating operation runs in one transaction. Stage transitions lock the
evaluation row and write with a compare-and-set on the status they were
validated against, so two callers racing from the same status cannot both
advance it. Notifications are queued with ``transaction.on_commit``.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from dataclasses import field
from typing import Any

from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import NotFound
from rest_framework.exceptions import PermissionDenied
from rest_framework.exceptions import ValidationError

from hr_evalify.audit.utils import log_action
from hr_evalify.employees.api.permissions import CREATOR_ROLES
from hr_evalify.employees.api.permissions import ROLE_EVALUATOR
from hr_evalify.employees.api.permissions import Caller
from hr_evalify.employees.models import Employee
from hr_evalify.notifications.models import Notification
from hr_evalify.notifications.services import notify_admin_channel_on_commit
from hr_evalify.notifications.services import send_notification_on_commit

from .exceptions import RoutingNotConfigured
from .exceptions import StateConflict
from .models import MAX_YEAR
from .models import MIN_YEAR
from .models import Answer
from .models import Evaluation
from .routing import lookup_routing
from .scoring import compute_result

logger = logging.getLogger(__name__)

Status = Evaluation.Status
Kind = Notification.Type


# --------------------------------------------------------------------------
# Creation
# --------------------------------------------------------------------------


class CreationError(Exception):
    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


@dataclass
class CreationReport:
    created: list[Evaluation] = field(default_factory=list)
    failed: list[dict[str, Any]] = field(default_factory=list)


def initial_status(allow_self_evaluation: bool) -> str:
    if allow_self_evaluation:
        return Status.SELF_EVALUATING
    return Status.EVALUATOR_EVALUATING


def notification_payload(evaluation: Evaluation, **extra) -> dict[str, Any]:
    evaluee = evaluation.evaluee
    payload = {
        "evaluation_id": evaluation.pk,
        "evaluee_name": evaluee.display_name if evaluee else "-",
        "year": evaluation.year,
        "period": evaluation.get_period_display(),
    }
    payload.update(extra)
    return payload


def _create_one(
    caller: Caller,
    evaluee_id: int,
    *,
    year: int,
    period: str,
    allow_self_evaluation: bool,
) -> Evaluation:
    evaluee = (
        Employee.objects.select_for_update()
        .select_related("user")
        .filter(pk=evaluee_id)
        .first()
    )
    if evaluee is None or not evaluee.is_evaluable:
        raise CreationError("not_found", f"Employee {evaluee_id} not found.")
    try:
        route = lookup_routing(evaluee.department_id)
    except RoutingNotConfigured as exc:
        raise CreationError(exc.default_code, str(exc.detail)) from exc

    duplicate = (
        Evaluation.objects.filter(evaluee=evaluee, year=year, period=period)
        .exclude(status=Status.COMPLETED)
        .exists()
    )
    if duplicate:
        raise CreationError(
            "duplicate_open_evaluation",
            f"An open evaluation for {period} {year} already exists.",
        )

    evaluator_id = route.evaluator_id
    if caller.role == ROLE_EVALUATOR:
        evaluator_id = caller.employee_id
    return Evaluation.objects.create(
        year=year,
        period=period,
        evaluee=evaluee,
        evaluator_id=evaluator_id,
        reviewer_id=route.reviewer_id,
        manager_id=route.manager_id,
        allow_self_evaluation=allow_self_evaluation,
        status=initial_status(allow_self_evaluation),
        created_by=caller.employee,
    )


def create_evaluations(
    caller: Caller,
    *,
    year: int,
    period: str,
    evaluee_ids: Iterable[int],
    allow_self_evaluation: bool = False,
) -> CreationReport:
    """Open one evaluation per evaluee, reporting failures per evaluee.

    Each evaluee runs in its own transaction; a failure for one never rolls
    back its siblings.
    """

    if caller.role not in CREATOR_ROLES:
        raise PermissionDenied
    if caller.role == ROLE_EVALUATOR and caller.employee is None:
        raise PermissionDenied

    report = CreationReport()
    for evaluee_id in dict.fromkeys(evaluee_ids):
        try:
            with transaction.atomic():
                evaluation = _create_one(
                    caller,
                    evaluee_id,
                    year=year,
                    period=period,
                    allow_self_evaluation=allow_self_evaluation,
                )
                payload = notification_payload(evaluation)
                if allow_self_evaluation:
                    send_notification_on_commit(
                        Kind.SELF_EVALUATION_REQUESTED, evaluation.evaluee, payload
                    )
                else:
                    send_notification_on_commit(
                        Kind.EVALUATION_REQUESTED, evaluation.evaluator, payload
                    )
                log_action(
                    "evaluation.create",
                    actor=caller.user,
                    model_name="Evaluation",
                    record_id=evaluation.pk,
                    after={
                        "evaluee": evaluation.evaluee_id,
                        "evaluator": evaluation.evaluator_id,
                        "reviewer": evaluation.reviewer_id,
                        "manager": evaluation.manager_id,
                        "status": evaluation.status,
                    },
                )
        except CreationError as exc:
            logger.info("Evaluation for employee %s not created: %s", evaluee_id, exc)
            report.failed.append(
                {"evaluee_id": evaluee_id, "code": exc.code, "error": exc.message}
            )
        except Exception:
            logger.exception("Unexpected error creating evaluation for %s", evaluee_id)
            report.failed.append(
                {
                    "evaluee_id": evaluee_id,
                    "code": "error",
                    "error": "Unexpected error, see server logs.",
                }
            )
        else:
            report.created.append(evaluation)

    if report.created:
        notify_admin_channel_on_commit(
            Kind.NEW_CYCLE_CREATED,
            {
                "count": len(report.created),
                "year": year,
                "period": Evaluation.Period(period).label,
                "actor_name": getattr(caller.user, "display_name", caller.user),
            },
        )
    logger.info(
        "Evaluation batch %s %s: %d created, %d failed",
        period,
        year,
        len(report.created),
        len(report.failed),
    )
    return report


# --------------------------------------------------------------------------
# Stage payloads
# --------------------------------------------------------------------------

STAGE_EVALUATOR = "evaluator"
STAGE_REVIEWER = "reviewer"
STAGE_MANAGER = "manager"


@dataclass(frozen=True)
class EvaluatorStage:
    approved: bool | None = None
    comment: str | None = None
    stage = STAGE_EVALUATOR

    @property
    def rejected_reason(self) -> str | None:
        return None


@dataclass(frozen=True)
class ReviewerStage:
    approved: bool | None = None
    comment: str | None = None
    rejected_reason: str | None = None
    stage = STAGE_REVIEWER


@dataclass(frozen=True)
class ManagerStage:
    approved: bool | None = None
    comment: str | None = None
    rejected_reason: str | None = None
    stage = STAGE_MANAGER


@dataclass(frozen=True)
class AdminEdit:
    changes: dict[str, Any]


StagePayload = EvaluatorStage | ReviewerStage | ManagerStage | AdminEdit

# variant -> {request key: attribute}; snake_case aliases accepted as well.
_VARIANT_KEYS: dict[type, dict[str, str]] = {
    EvaluatorStage: {
        "evaluatorApproved": "approved",
        "evaluatorComment": "comment",
    },
    ReviewerStage: {
        "reviewerApproved": "approved",
        "reviewerComment": "comment",
        "reviewerRejectedReason": "rejected_reason",
    },
    ManagerStage: {
        "managerApproved": "approved",
        "managerComment": "comment",
        "managerRejectedReason": "rejected_reason",
    },
    AdminEdit: {
        "year": "year",
        "period": "period",
        "evalueeId": "evaluee_id",
        "evaluatorId": "evaluator_id",
        "reviewerId": "reviewer_id",
        "managerId": "manager_id",
        "status": "status",
        "allowSelfEvaluation": "allow_self_evaluation",
    },
}
_EXPECTED_STATUS_KEYS = ("expectedStatus", "expected_status")


def _snake(key: str) -> str:
    return "".join(f"_{c.lower()}" if c.isupper() else c for c in key)


def _coerce_bool(value, key: str, errors: dict) -> bool | None:
    if value is None or isinstance(value, bool):
        return value
    if isinstance(value, str) and value.lower() in {"true", "false"}:
        return value.lower() == "true"
    errors[key] = ["Must be a boolean."]
    return None


def _coerce_text(value, key: str, errors: dict) -> str | None:
    if value is None or isinstance(value, str):
        return value
    errors[key] = ["Must be a string."]
    return None


def parse_stage_payload(data: dict[str, Any]) -> tuple[StagePayload, str | None]:
    """Map a PATCH body to exactly one payload variant.

    Returns the variant and the optional ``expectedStatus`` the client saw.
    """

    if not isinstance(data, dict):
        raise ValidationError({"non_field_errors": ["Expected an object."]})
    matched: dict[type, dict[str, Any]] = {}
    for variant, keys in _VARIANT_KEYS.items():
        for key, attr in keys.items():
            for alias in (key, _snake(key)):
                if alias in data:
                    matched.setdefault(variant, {})[attr] = data[alias]
    expected = next((data[k] for k in _EXPECTED_STATUS_KEYS if k in data), None)

    if not matched:
        raise ValidationError({"non_field_errors": ["Nothing to update."]})
    if len(matched) > 1:
        names = sorted(v.__name__ for v in matched)
        raise ValidationError(
            {
                "non_field_errors": [
                    f"Only one stage may be updated per request, got {', '.join(names)}."
                ]
            }
        )
    if expected is not None and expected not in Status.values:
        raise ValidationError({"expectedStatus": ["Unknown status."]})

    variant, values = next(iter(matched.items()))
    if variant is AdminEdit:
        return AdminEdit(changes=values), expected

    errors: dict[str, list[str]] = {}
    prefix = variant.stage
    values["approved"] = _coerce_bool(
        values.get("approved"), f"{prefix}Approved", errors
    )
    for attr, suffix in (("comment", "Comment"), ("rejected_reason", "RejectedReason")):
        if attr in values:
            values[attr] = _coerce_text(values[attr], f"{prefix}{suffix}", errors)
    if errors:
        raise ValidationError(errors)
    return variant(**values), expected


# --------------------------------------------------------------------------
# Transition table
# --------------------------------------------------------------------------

EDITABLE = frozenset({Status.EVALUATOR_EVALUATING, Status.REJECTED})


@dataclass(frozen=True)
class Rule:
    sources: frozenset[str]
    target: str | None = None
    requires_reason: bool = False
    computes_score: bool = False
    notify_kind: str | None = None
    notify_slot: str | None = None
    admin_kind: str | None = None


RULES: dict[tuple[str, bool | None], Rule] = {
    (STAGE_EVALUATOR, True): Rule(
        EDITABLE,
        Status.REVIEWER_REVIEWING,
        notify_kind=Kind.REVIEW_REQUESTED,
        notify_slot="reviewer",
    ),
    (STAGE_EVALUATOR, False): Rule(EDITABLE),
    (STAGE_EVALUATOR, None): Rule(EDITABLE),
    (STAGE_REVIEWER, True): Rule(
        frozenset({Status.REVIEWER_REVIEWING}),
        Status.MANAGER_REVIEWING,
        notify_kind=Kind.REVIEW_REQUESTED,
        notify_slot="manager",
    ),
    (STAGE_REVIEWER, False): Rule(
        frozenset({Status.REVIEWER_REVIEWING}),
        Status.REJECTED,
        requires_reason=True,
        notify_kind=Kind.REJECTED_RETURNED,
        notify_slot="evaluator",
    ),
    (STAGE_REVIEWER, None): Rule(frozenset({Status.REVIEWER_REVIEWING})),
    (STAGE_MANAGER, True): Rule(
        frozenset({Status.MANAGER_REVIEWING}),
        Status.COMPLETED,
        computes_score=True,
        notify_kind=Kind.RESULT_READY,
        notify_slot="evaluee",
        admin_kind=Kind.EVALUATION_COMPLETED,
    ),
    (STAGE_MANAGER, False): Rule(
        frozenset({Status.MANAGER_REVIEWING}),
        Status.REVIEWER_REVIEWING,
        requires_reason=True,
        notify_kind=Kind.REJECTED_RETURNED,
        notify_slot="reviewer",
    ),
    (STAGE_MANAGER, None): Rule(frozenset({Status.MANAGER_REVIEWING})),
}


def _get_locked(evaluation_id: int) -> Evaluation:
    evaluation = (
        Evaluation.objects.select_for_update()
        .filter(pk=evaluation_id)
        .first()
    )
    if evaluation is None:
        raise NotFound
    return evaluation


def _write(evaluation: Evaluation, expected_status: str, updates: dict[str, Any]):
    updates["updated_at"] = timezone.now()
    rows = Evaluation.objects.filter(pk=evaluation.pk, status=expected_status).update(
        **updates
    )
    if rows == 0:
        current = (
            Evaluation.objects.filter(pk=evaluation.pk)
            .values_list("status", flat=True)
            .first()
        )
        raise StateConflict(current_status=current)


def _stage_update(payload, rule: Rule, evaluation: Evaluation) -> dict[str, Any]:
    stage = payload.stage
    updates: dict[str, Any] = {}
    if payload.approved is not None:
        updates[f"{stage}_approved"] = payload.approved
    if payload.comment:
        updates[f"{stage}_comment"] = payload.comment
    if payload.approved is False and rule.requires_reason:
        updates[f"{stage}_rejected_reason"] = payload.rejected_reason.strip()
    if rule.target is not None:
        updates["status"] = rule.target
    if rule.computes_score:
        answers = Answer.objects.filter(evaluation=evaluation).select_related(
            "question"
        )
        result = compute_result(answers)
        updates["final_score"] = result.score
        updates["final_percentage"] = result.percentage
        updates["final_grade"] = result.grade
    return updates


def _queue_notifications(evaluation: Evaluation, payload, rule: Rule) -> None:
    extra: dict[str, Any] = {}
    if rule.requires_reason:
        extra["reason"] = evaluation_reason(evaluation, payload.stage)
    if rule.computes_score:
        extra.update(
            score=evaluation.final_score,
            percentage=evaluation.final_percentage,
            grade=evaluation.final_grade,
        )
    message = notification_payload(evaluation, **extra)
    if rule.notify_kind and rule.notify_slot:
        recipient = getattr(evaluation, rule.notify_slot)
        send_notification_on_commit(rule.notify_kind, recipient, message)
    if rule.admin_kind:
        notify_admin_channel_on_commit(rule.admin_kind, message)


def evaluation_reason(evaluation: Evaluation, stage: str) -> str:
    return getattr(evaluation, f"{stage}_rejected_reason", "") or ""


def _apply_stage(evaluation: Evaluation, caller: Caller, payload, expected):
    stage = payload.stage
    bound_id = getattr(evaluation, f"{stage}_id")
    if not (caller.is_elevated or caller.employee_id == bound_id):
        raise PermissionDenied(f"Only the assigned {stage} may act on this stage.")
    if expected is not None and expected != evaluation.status:
        raise StateConflict(current_status=evaluation.status)

    rule = RULES[(stage, payload.approved)]
    if evaluation.status not in rule.sources:
        raise StateConflict(
            f"The {stage} stage cannot act while the evaluation is "
            f"{evaluation.status}.",
            current_status=evaluation.status,
        )
    if rule.requires_reason and not (payload.rejected_reason or "").strip():
        raise ValidationError(
            {f"{stage}RejectedReason": ["A reason is required when rejecting."]}
        )

    source = evaluation.status
    updates = _stage_update(payload, rule, evaluation)
    if not updates and not caller.is_elevated:
        raise ValidationError({"non_field_errors": ["Nothing to update."]})
    _write(evaluation, source, updates)
    evaluation.refresh_from_db()
    log_action(
        f"evaluation.{stage}.{_verb(payload.approved)}",
        actor=caller.user,
        model_name="Evaluation",
        record_id=evaluation.pk,
        before={"status": source},
        after={
            "status": evaluation.status,
            "final_score": _str_or_none(evaluation.final_score),
            "final_grade": evaluation.final_grade,
        },
    )
    logger.info(
        "Evaluation %s %s by %s: %s -> %s",
        evaluation.pk,
        _verb(payload.approved),
        stage,
        source,
        evaluation.status,
    )
    _queue_notifications(evaluation, payload, rule)
    return evaluation


def _verb(approved: bool | None) -> str:
    if approved is None:
        return "comment"
    return "approve" if approved else "reject"


def _str_or_none(value):
    return None if value is None else str(value)


# --------------------------------------------------------------------------
# Admin/HR edits
# --------------------------------------------------------------------------

_PARTICIPANT_FIELDS = ("evaluee_id", "evaluator_id", "reviewer_id", "manager_id")


def _clean_admin_changes(changes: dict[str, Any]) -> dict[str, Any]:
    errors: dict[str, list[str]] = {}
    cleaned: dict[str, Any] = {}

    if "year" in changes:
        year = changes["year"]
        if isinstance(year, bool) or not isinstance(year, int):
            errors["year"] = ["Must be an integer."]
        elif not MIN_YEAR <= year <= MAX_YEAR:
            errors["year"] = [f"Must be between {MIN_YEAR} and {MAX_YEAR}."]
        else:
            cleaned["year"] = year
    if "period" in changes:
        if changes["period"] not in Evaluation.Period.values:
            errors["period"] = ["Unknown period."]
        else:
            cleaned["period"] = changes["period"]
    if "status" in changes:
        if changes["status"] not in Status.values:
            errors["status"] = ["Unknown status."]
        else:
            cleaned["status"] = changes["status"]
    if "allow_self_evaluation" in changes:
        value = changes["allow_self_evaluation"]
        if not isinstance(value, bool):
            errors["allowSelfEvaluation"] = ["Must be a boolean."]
        else:
            cleaned["allow_self_evaluation"] = value

    wanted = {
        name: changes[name] for name in _PARTICIPANT_FIELDS if name in changes
    }
    existing = set(
        Employee.objects.filter(
            pk__in=[v for v in wanted.values() if isinstance(v, int)]
        ).values_list("pk", flat=True)
    )
    for name, value in wanted.items():
        if isinstance(value, bool) or value not in existing:
            camel = name.split("_")[0] + "Id"
            errors[camel] = ["Unknown employee."]
        else:
            cleaned[name] = value

    if errors:
        raise ValidationError(errors)
    return cleaned


def _apply_admin_edit(evaluation: Evaluation, caller: Caller, payload: AdminEdit, expected):
    if not caller.is_elevated:
        raise PermissionDenied("Only Admin or HR may edit evaluation fields.")
    if expected is not None and expected != evaluation.status:
        raise StateConflict(current_status=evaluation.status)
    cleaned = _clean_admin_changes(payload.changes)
    before = {
        name: _str_or_none(getattr(evaluation, name)) for name in cleaned
    }
    _write(evaluation, evaluation.status, dict(cleaned))
    evaluation.refresh_from_db()
    log_action(
        "evaluation.admin_edit",
        actor=caller.user,
        model_name="Evaluation",
        record_id=evaluation.pk,
        before=before,
        after={name: _str_or_none(getattr(evaluation, name)) for name in cleaned},
    )
    logger.info("Evaluation %s edited by %s: %s", evaluation.pk, caller.role, cleaned)
    return evaluation


def transition(evaluation_id: int, caller: Caller, data: dict[str, Any]) -> Evaluation:
    """Apply exactly one stage action or Admin/HR edit to an evaluation."""

    payload, expected = parse_stage_payload(data)
    with transaction.atomic():
        evaluation = _get_locked(evaluation_id)
        if isinstance(payload, AdminEdit):
            return _apply_admin_edit(evaluation, caller, payload, expected)
        return _apply_stage(evaluation, caller, payload, expected)


# --------------------------------------------------------------------------
# Deletion
# --------------------------------------------------------------------------


def delete_evaluation(evaluation_id: int, caller: Caller) -> None:
    if not caller.is_elevated:
        raise PermissionDenied("Only Admin or HR may delete evaluations.")
    with transaction.atomic():
        evaluation = _get_locked(evaluation_id)
        answer_count, _ = Answer.objects.filter(evaluation=evaluation).delete()
        snapshot = {
            "evaluee": evaluation.evaluee_id,
            "year": evaluation.year,
            "period": evaluation.period,
            "status": evaluation.status,
            "answers": answer_count,
        }
        record_id = evaluation.pk
        evaluation.delete()
        log_action(
            "evaluation.delete",
            actor=caller.user,
            model_name="Evaluation",
            record_id=record_id,
            before=snapshot,
        )
    logger.info("Evaluation %s deleted by %s", record_id, caller.role)
